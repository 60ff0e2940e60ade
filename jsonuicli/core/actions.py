"""Action step execution."""

from __future__ import annotations

import logging
import time
from pathlib import Path

from jsonuicli.core.driver import ElementDriver
from jsonuicli.core.errors import ActionError, MissingFieldError, UnknownOperationError
from jsonuicli.models.test import Step

logger = logging.getLogger("jsonui.actions")

DEFAULT_LONG_PRESS_MS = 500
DEFAULT_SCROLL_AMOUNT = 300

# Button texts that answer a confirm dialog negatively
CONFIRM_DISMISS_BUTTONS = {"cancel", "no", "dismiss", "いいえ", "キャンセル"}
# Button texts that submit a prompt dialog
PROMPT_ACCEPT_BUTTONS = {"ok", "submit", "yes", "はい", "確認"}


def require(step: Step, operation: str, *fields: str) -> None:
    """Raise MissingFieldError for the first absent field."""
    for name in fields:
        if getattr(step, name) is None:
            raise MissingFieldError(operation, name)


def item_id(collection_id: str, index: int) -> str:
    """Generated id of a collection item."""
    return f"{collection_id}_item_{index}"


def tab_id(tab_view_id: str, index: int) -> str:
    """Generated id of a tab in a tab view."""
    return f"{tab_view_id}_tab_{index}"


def dialog_accepted(dialog_type: str, button: str) -> bool:
    """Whether tapping ``button`` accepts a dialog of the given type.

    Alerts only have one button and are always accepted. Confirms are
    accepted unless the button reads as a refusal; prompts only for a
    submit-like button.
    """
    text = button.strip().lower()
    if dialog_type == "confirm":
        return text not in CONFIRM_DISMISS_BUTTONS
    if dialog_type == "prompt":
        return text in PROMPT_ACCEPT_BUTTONS
    return True


class ActionExecutor:
    """Perform action steps through an element driver."""

    # JSON action name -> handler suffix
    ACTIONS = {
        "tap": "tap",
        "doubleTap": "double_tap",
        "longPress": "long_press",
        "input": "input",
        "clear": "clear",
        "scroll": "scroll",
        "swipe": "swipe",
        "waitFor": "wait_for",
        "waitForAny": "wait_for_any",
        "wait": "wait",
        "back": "back",
        "screenshot": "screenshot",
        "alertTap": "alert_tap",
        "selectOption": "select_option",
        "tapItem": "tap_item",
        "selectTab": "select_tab",
    }

    def __init__(
        self,
        driver: ElementDriver,
        default_timeout: int = 5000,
        poll_interval: int = 100,
        screenshot_dir: Path | None = None,
    ):
        """Initialize executor.

        Args:
            driver: Element driver to act through
            default_timeout: Timeout in ms for steps without their own
            poll_interval: Polling interval in ms for waitForAny
            screenshot_dir: Directory for screenshot steps without a path
        """
        self._driver = driver
        self._default_timeout = default_timeout
        self._poll_interval = poll_interval
        self._screenshot_dir = screenshot_dir

    def execute(self, step: Step) -> None:
        """Execute an action step.

        Raises:
            StepError: If the step is malformed
            ActionError: If the action could not be performed
        """
        if step.action is None:
            raise MissingFieldError("step", "action")

        suffix = self.ACTIONS.get(step.action)
        if suffix is None:
            raise UnknownOperationError("action", step.action)

        timeout = step.timeout if step.timeout is not None else self._default_timeout
        logger.debug("Action %s (id=%s, timeout=%sms)", step.action, step.id, timeout)
        getattr(self, f"_action_{suffix}")(step, timeout)

    def _action_tap(self, step: Step, timeout: int) -> None:
        require(step, "tap", "id")
        self._driver.wait_visible(step.id, timeout).click()

    def _action_double_tap(self, step: Step, timeout: int) -> None:
        require(step, "doubleTap", "id")
        self._driver.wait_visible(step.id, timeout).double_click()

    def _action_long_press(self, step: Step, timeout: int) -> None:
        require(step, "longPress", "id")
        duration = step.duration if step.duration is not None else DEFAULT_LONG_PRESS_MS
        self._driver.wait_visible(step.id, timeout).long_press(int(duration))

    def _action_input(self, step: Step, timeout: int) -> None:
        require(step, "input", "id", "value")
        self._driver.wait_visible(step.id, timeout).fill(str(step.value))

    def _action_clear(self, step: Step, timeout: int) -> None:
        require(step, "clear", "id")
        self._driver.wait_visible(step.id, timeout).clear()

    def _action_scroll(self, step: Step, timeout: int) -> None:
        require(step, "scroll", "id", "direction")
        element = self._driver.wait_visible(step.id, timeout)
        if element.bounding_box() is None:
            raise ActionError(f"Element '{step.id}' has no bounding box")

        amount = step.amount if step.amount is not None else DEFAULT_SCROLL_AMOUNT
        offsets = {
            "up": (0, -amount),
            "down": (0, amount),
            "left": (-amount, 0),
            "right": (amount, 0),
        }
        if step.direction not in offsets:
            raise ActionError(f"Invalid scroll direction: {step.direction}")

        dx, dy = offsets[step.direction]
        element.scroll_by(dx, dy)

    def _action_swipe(self, step: Step, timeout: int) -> None:
        require(step, "swipe", "id", "direction")
        element = self._driver.wait_visible(step.id, timeout)
        box = element.bounding_box()
        if box is None:
            raise ActionError(f"Element '{step.id}' has no bounding box")

        cx, cy = box.center
        distance = min(box.width, box.height) / 2

        # Swipe "up" moves the finger upward, so it starts below the center
        points = {
            "up": ((cx, cy + distance), (cx, cy - distance)),
            "down": ((cx, cy - distance), (cx, cy + distance)),
            "left": ((cx + distance, cy), (cx - distance, cy)),
            "right": ((cx - distance, cy), (cx + distance, cy)),
        }
        if step.direction not in points:
            raise ActionError(f"Invalid swipe direction: {step.direction}")

        start, end = points[step.direction]
        self._driver.drag(start, end)

    def _action_wait_for(self, step: Step, timeout: int) -> None:
        require(step, "waitFor", "id")
        self._driver.wait_visible(step.id, timeout)

    def _action_wait_for_any(self, step: Step, timeout: int) -> None:
        if not step.ids:
            raise MissingFieldError("waitForAny", "ids", qualifier="non-empty ")

        start = time.monotonic()
        while (time.monotonic() - start) * 1000 < timeout:
            for element_id in step.ids:
                elements = self._driver.locate(element_id)
                if elements and elements[0].is_visible():
                    logger.debug("waitForAny: '%s' appeared", element_id)
                    return
            time.sleep(self._poll_interval / 1000)

        raise ActionError(
            f"None of elements [{', '.join(step.ids)}] appeared within {timeout}ms"
        )

    def _action_wait(self, step: Step, timeout: int) -> None:
        require(step, "wait", "ms")
        self._driver.wait(int(step.ms))

    def _action_back(self, step: Step, timeout: int) -> None:
        self._driver.back()

    def _action_screenshot(self, step: Step, timeout: int) -> None:
        if step.path:
            path = Path(step.path)
        else:
            name = step.name or f"screenshot_{int(time.time() * 1000)}"
            path = (self._screenshot_dir or Path.cwd()) / f"{name}.png"
        self._driver.screenshot(path)
        logger.debug("Screenshot saved: %s", path)

    def _action_alert_tap(self, step: Step, timeout: int) -> None:
        require(step, "alertTap", "button")
        dialog = self._driver.wait_dialog(timeout)
        if not dialog_accepted(dialog.type, str(step.button)):
            logger.debug("Dismissing %s dialog: %s", dialog.type, dialog.message)
            dialog.dismiss()
            return

        logger.debug("Accepting %s dialog: %s", dialog.type, dialog.message)
        if step.text is not None:
            dialog.accept(str(step.text))
        else:
            dialog.accept()

    def _action_select_option(self, step: Step, timeout: int) -> None:
        require(step, "selectOption", "id")
        if step.value is None and step.label is None and step.index is None:
            raise MissingFieldError("selectOption", "value", "label", "index")
        element = self._driver.wait_visible(step.id, timeout)
        element.select_option(value=step.value, label=step.label, index=step.index)

    def _action_tap_item(self, step: Step, timeout: int) -> None:
        require(step, "tapItem", "id", "index")
        self._driver.wait_visible(item_id(step.id, step.index), timeout).click()

    def _action_select_tab(self, step: Step, timeout: int) -> None:
        require(step, "selectTab", "id")
        if step.index is None and step.label is None:
            raise MissingFieldError("selectTab", "index", "label")

        if step.index is not None:
            self._driver.wait_visible(tab_id(step.id, step.index), timeout).click()
            return

        # Walk <id>_tab_0, <id>_tab_1, ... until a tab is missing
        self._driver.wait_visible(tab_id(step.id, 0), timeout)
        index = 0
        while True:
            tabs = self._driver.locate(tab_id(step.id, index))
            if not tabs:
                break
            if tabs[0].read_text().strip() == step.label:
                tabs[0].click()
                return
            index += 1
        raise ActionError(f"Tab '{step.label}' not found in '{step.id}'")
