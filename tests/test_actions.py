"""Tests for ActionExecutor."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from jsonuicli.core.actions import ActionExecutor, dialog_accepted
from jsonuicli.core.driver import BoundingBox
from jsonuicli.core.errors import (
    ActionError,
    ElementNotFoundError,
    MissingFieldError,
    UnknownOperationError,
)
from jsonuicli.models.test import Step


@pytest.fixture
def element():
    """Mock element handle with a 200x100 box at (10, 20)."""
    handle = MagicMock()
    handle.bounding_box.return_value = BoundingBox(x=10, y=20, width=200, height=100)
    handle.is_visible.return_value = True
    return handle


@pytest.fixture
def driver(element):
    """Mock element driver."""
    mock = MagicMock()
    mock.wait_visible.return_value = element
    mock.locate.return_value = [element]
    return mock


@pytest.fixture
def executor(driver, tmp_path):
    return ActionExecutor(driver, default_timeout=5000, poll_interval=1, screenshot_dir=tmp_path)


class TestActionDispatch:
    """Tests for action lookup and field validation."""

    def test_unknown_action(self, executor):
        with pytest.raises(UnknownOperationError, match="Unknown action: fly"):
            executor.execute(Step(action="fly"))

    def test_step_without_action(self, executor):
        with pytest.raises(MissingFieldError):
            executor.execute(Step(assertion="visible", id="x"))

    @pytest.mark.parametrize(
        "step,field",
        [
            (Step(action="tap"), "id"),
            (Step(action="doubleTap"), "id"),
            (Step(action="longPress"), "id"),
            (Step(action="input", value="x"), "id"),
            (Step(action="input", id="name"), "value"),
            (Step(action="clear"), "id"),
            (Step(action="scroll", direction="down"), "id"),
            (Step(action="scroll", id="list"), "direction"),
            (Step(action="swipe", id="card"), "direction"),
            (Step(action="waitFor"), "id"),
            (Step(action="wait"), "ms"),
            (Step(action="alertTap"), "button"),
            (Step(action="selectOption", value="a"), "id"),
            (Step(action="tapItem", id="row"), "index"),
            (Step(action="selectTab", label="Home"), "id"),
        ],
    )
    def test_missing_required_field(self, executor, driver, step, field):
        """Required fields are checked before the driver is touched."""
        with pytest.raises(MissingFieldError) as exc_info:
            executor.execute(step)

        assert exc_info.value.operation == step.action
        assert field in exc_info.value.fields
        assert f"'{field}'" in str(exc_info.value)
        driver.wait_visible.assert_not_called()

    def test_wait_for_any_requires_ids(self, executor):
        with pytest.raises(MissingFieldError, match="non-empty 'ids'"):
            executor.execute(Step(action="waitForAny", ids=[]))

    def test_select_option_requires_choice(self, executor):
        with pytest.raises(MissingFieldError, match="'value' or 'label' or 'index'"):
            executor.execute(Step(action="selectOption", id="country"))

    def test_select_tab_requires_index_or_label(self, executor):
        with pytest.raises(MissingFieldError, match="'index' or 'label'"):
            executor.execute(Step(action="selectTab", id="tabs"))

    def test_step_timeout_overrides_default(self, executor, driver):
        executor.execute(Step(action="tap", id="submit", timeout=1234))

        driver.wait_visible.assert_called_with("submit", 1234)

    def test_default_timeout_used(self, executor, driver):
        executor.execute(Step(action="tap", id="submit"))

        driver.wait_visible.assert_called_with("submit", 5000)


class TestElementActions:
    """Tests for actions on a single element."""

    def test_tap(self, executor, element):
        executor.execute(Step(action="tap", id="submit"))

        element.click.assert_called_once()

    def test_tap_missing_element_propagates(self, executor, driver):
        driver.wait_visible.side_effect = ElementNotFoundError("submit", 5000)

        with pytest.raises(ActionError, match="Element 'submit' not found"):
            executor.execute(Step(action="tap", id="submit"))

    def test_double_tap(self, executor, element):
        executor.execute(Step(action="doubleTap", id="like"))

        element.double_click.assert_called_once()

    def test_long_press_default_duration(self, executor, element):
        executor.execute(Step(action="longPress", id="item"))

        element.long_press.assert_called_with(500)

    def test_long_press_custom_duration(self, executor, element):
        executor.execute(Step(action="longPress", id="item", duration=1200))

        element.long_press.assert_called_with(1200)

    def test_input(self, executor, element):
        executor.execute(Step(action="input", id="email", value="a@b.c"))

        element.fill.assert_called_with("a@b.c")

    def test_clear(self, executor, element):
        executor.execute(Step(action="clear", id="email"))

        element.clear.assert_called_once()

    def test_wait_for(self, executor, driver):
        executor.execute(Step(action="waitFor", id="title", timeout=200))

        driver.wait_visible.assert_called_with("title", 200)


class TestGestureActions:
    """Tests for scroll and swipe."""

    @pytest.mark.parametrize(
        "direction,offset",
        [("up", (0, -300)), ("down", (0, 300)), ("left", (-300, 0)), ("right", (300, 0))],
    )
    def test_scroll_default_amount(self, executor, element, direction, offset):
        executor.execute(Step(action="scroll", id="list", direction=direction))

        element.scroll_by.assert_called_with(*offset)

    def test_scroll_custom_amount(self, executor, element):
        executor.execute(Step(action="scroll", id="list", direction="down", amount=50))

        element.scroll_by.assert_called_with(0, 50)

    def test_scroll_invalid_direction(self, executor):
        with pytest.raises(ActionError, match="Invalid scroll direction: sideways"):
            executor.execute(Step(action="scroll", id="list", direction="sideways"))

    def test_scroll_without_bounding_box(self, executor, element):
        element.bounding_box.return_value = None

        with pytest.raises(ActionError, match="no bounding box"):
            executor.execute(Step(action="scroll", id="list", direction="down"))

    def test_swipe_up_moves_from_below_center(self, executor, driver):
        # Center (110, 70), half of the shorter side is 50
        executor.execute(Step(action="swipe", id="card", direction="up"))

        driver.drag.assert_called_with((110, 120), (110, 20))

    def test_swipe_right(self, executor, driver):
        executor.execute(Step(action="swipe", id="card", direction="right"))

        driver.drag.assert_called_with((60, 70), (160, 70))

    def test_swipe_invalid_direction(self, executor, driver):
        with pytest.raises(ActionError, match="Invalid swipe direction"):
            executor.execute(Step(action="swipe", id="card", direction="diagonal"))

        driver.drag.assert_not_called()


class TestWaitActions:
    """Tests for wait, waitForAny and back."""

    def test_wait(self, executor, driver):
        executor.execute(Step(action="wait", ms=250))

        driver.wait.assert_called_with(250)

    def test_back(self, executor, driver):
        executor.execute(Step(action="back"))

        driver.back.assert_called_once()

    def test_wait_for_any_finds_second(self, executor, driver):
        hidden = MagicMock()
        hidden.is_visible.return_value = False
        shown = MagicMock()
        shown.is_visible.return_value = True
        driver.locate.side_effect = lambda element_id: {
            "error": [hidden],
            "success": [shown],
        }.get(element_id, [])

        executor.execute(Step(action="waitForAny", ids=["error", "success"]))

        assert driver.locate.call_args_list[-1].args == ("success",)

    def test_wait_for_any_times_out(self, executor, driver):
        driver.locate.return_value = []

        with pytest.raises(ActionError, match=r"None of elements \[a, b\] appeared within 20ms"):
            executor.execute(Step(action="waitForAny", ids=["a", "b"], timeout=20))


class TestMiscActions:
    """Tests for screenshot and selectOption."""

    def test_screenshot_named(self, executor, driver, tmp_path):
        executor.execute(Step(action="screenshot", name="home"))

        driver.screenshot.assert_called_with(tmp_path / "home.png")

    def test_screenshot_explicit_path(self, executor, driver):
        executor.execute(Step(action="screenshot", path="out/shot.png"))

        driver.screenshot.assert_called_with(Path("out/shot.png"))

    def test_screenshot_unnamed(self, executor, driver, tmp_path):
        executor.execute(Step(action="screenshot"))

        path = driver.screenshot.call_args.args[0]
        assert path.parent == tmp_path
        assert path.name.startswith("screenshot_")

    def test_select_option_by_label(self, executor, element):
        executor.execute(Step(action="selectOption", id="country", label="Japan"))

        element.select_option.assert_called_with(value=None, label="Japan", index=None)


def _known_elements(driver, elements: dict):
    """Make the driver only find the given ids."""

    def wait_visible(element_id, timeout):
        if element_id not in elements:
            raise ElementNotFoundError(element_id, timeout)
        return elements[element_id]

    driver.wait_visible.side_effect = wait_visible
    driver.locate.side_effect = lambda element_id: [elements[element_id]] if element_id in elements else []


class TestCollectionActions:
    """Tests for tapItem and selectTab generated ids."""

    def test_tap_item_targets_item_id(self, executor, driver):
        item = MagicMock()
        _known_elements(driver, {"list_item_2": item})

        executor.execute(Step(action="tapItem", id="list", index=2))

        driver.wait_visible.assert_called_with("list_item_2", 5000)
        item.click.assert_called_once()

    def test_tap_item_missing(self, executor, driver):
        _known_elements(driver, {"list_item_0": MagicMock()})

        with pytest.raises(ElementNotFoundError, match="'list_item_3'"):
            executor.execute(Step(action="tapItem", id="list", index=3))

    def test_select_tab_by_index(self, executor, driver):
        tab = MagicMock()
        _known_elements(driver, {"tabs_tab_1": tab})

        executor.execute(Step(action="selectTab", id="tabs", index=1, timeout=800))

        driver.wait_visible.assert_called_with("tabs_tab_1", 800)
        tab.click.assert_called_once()

    def test_select_tab_by_label(self, executor, driver):
        home, profile = MagicMock(), MagicMock()
        home.read_text.return_value = "Home"
        profile.read_text.return_value = " Profile \n"
        _known_elements(driver, {"tabs_tab_0": home, "tabs_tab_1": profile})

        executor.execute(Step(action="selectTab", id="tabs", label="Profile"))

        profile.click.assert_called_once()
        home.click.assert_not_called()

    def test_select_tab_label_not_found(self, executor, driver):
        home = MagicMock()
        home.read_text.return_value = "Home"
        _known_elements(driver, {"tabs_tab_0": home})

        with pytest.raises(ActionError, match="Tab 'Settings' not found in 'tabs'"):
            executor.execute(Step(action="selectTab", id="tabs", label="Settings"))

    def test_select_tab_label_without_tabs(self, executor, driver):
        _known_elements(driver, {})

        with pytest.raises(ElementNotFoundError, match="'tabs_tab_0'"):
            executor.execute(Step(action="selectTab", id="tabs", label="Home"))


class TestAlertTap:
    """Tests for answering dialogs."""

    @pytest.fixture
    def dialog(self, driver):
        mock = driver.wait_dialog.return_value
        mock.type = "confirm"
        mock.message = "Delete item?"
        return mock

    def test_waits_with_step_timeout(self, executor, driver, dialog):
        executor.execute(Step(action="alertTap", button="OK", timeout=2000))

        driver.wait_dialog.assert_called_with(2000)

    def test_confirm_accept(self, executor, dialog):
        executor.execute(Step(action="alertTap", button="OK"))

        dialog.accept.assert_called_once_with()
        dialog.dismiss.assert_not_called()

    @pytest.mark.parametrize("button", ["Cancel", "no", "Dismiss", "いいえ", "キャンセル"])
    def test_confirm_dismiss(self, executor, dialog, button):
        executor.execute(Step(action="alertTap", button=button))

        dialog.dismiss.assert_called_once()
        dialog.accept.assert_not_called()

    def test_alert_always_accepted(self, executor, dialog):
        dialog.type = "alert"

        executor.execute(Step(action="alertTap", button="Cancel"))

        dialog.accept.assert_called_once_with()

    def test_prompt_submit_with_text(self, executor, dialog):
        dialog.type = "prompt"

        executor.execute(Step(action="alertTap", button="Submit", text="hello"))

        dialog.accept.assert_called_once_with("hello")

    def test_prompt_other_button_dismisses(self, executor, dialog):
        dialog.type = "prompt"

        executor.execute(Step(action="alertTap", button="Later", text="hello"))

        dialog.dismiss.assert_called_once()
        dialog.accept.assert_not_called()

    def test_no_dialog_propagates(self, executor, driver):
        driver.wait_dialog.side_effect = ActionError("Alert did not appear within 5000ms")

        with pytest.raises(ActionError, match="Alert did not appear within 5000ms"):
            executor.execute(Step(action="alertTap", button="OK"))


class TestDialogAccepted:
    @pytest.mark.parametrize(
        "dialog_type,button,accepted",
        [
            ("confirm", "OK", True),
            ("confirm", " CANCEL ", False),
            ("confirm", "Delete", True),
            ("alert", "No", True),
            ("prompt", "確認", True),
            ("prompt", "はい", True),
            ("prompt", "Cancel", False),
            ("beforeunload", "Leave", True),
        ],
    )
    def test_heuristics(self, dialog_type, button, accepted):
        assert dialog_accepted(dialog_type, button) is accepted
