"""Tests for CLI commands."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from jsonuicli import __version__
from jsonuicli.cli import app
from jsonuicli.core.config import RunnerConfig
from jsonuicli.core.errors import ElementNotFoundError

runner = CliRunner()


@pytest.fixture
def tests_dir(tmp_path: Path) -> Path:
    """Directory with one screen test and one flow referencing it."""
    root = tmp_path / "tests"
    (root / "screens").mkdir(parents=True)
    (root / "flows").mkdir()
    (root / "screens" / "login.test.json").write_text(
        json.dumps(
            {
                "type": "screen",
                "source": "login.json",
                "metadata": {"name": "Login"},
                "cases": [
                    {"name": "happyPath", "steps": [{"action": "tap", "id": "submit"}]},
                    {"name": "legacy", "skip": True, "steps": []},
                ],
            }
        )
    )
    (root / "flows" / "checkout.test.json").write_text(
        json.dumps(
            {
                "type": "flow",
                "metadata": {"name": "Checkout"},
                "steps": [
                    {"file": "login", "case": "happyPath"},
                    {"block": "cart", "steps": [{"action": "tap", "id": "add"}]},
                    {"assert": "visible", "id": "done"},
                ],
            }
        )
    )
    return root


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestValidateCommand:
    """Tests for the validate command."""

    def test_validate_directory(self, tests_dir: Path) -> None:
        result = runner.invoke(app, ["validate", str(tests_dir)])

        assert result.exit_code == 0
        assert "Login" in result.stdout
        assert "Checkout" in result.stdout
        assert "2 test file(s) valid" in result.stdout

    def test_validate_invalid_file(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.test.json"
        bad.write_text(json.dumps({"type": "screen", "metadata": {"name": "Bad"}}))

        result = runner.invoke(app, ["validate", str(bad)])

        assert result.exit_code == 2
        assert "Parse error" in result.stdout

    def test_validate_missing_path(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["validate", str(tmp_path / "nope")])

        assert result.exit_code == 2
        assert "not found" in result.stdout


class TestListCommand:
    """Tests for the list command."""

    def test_lists_cases_and_flow_steps(self, tests_dir: Path) -> None:
        result = runner.invoke(app, ["list", str(tests_dir)])

        assert result.exit_code == 0
        assert "happyPath" in result.stdout
        assert "legacy" in result.stdout
        assert "(skip)" in result.stdout
        assert "login" in result.stdout
        assert "cart" in result.stdout


class TestRunCommand:
    """Tests for the run command with a mocked browser session."""

    @pytest.fixture
    def controller(self) -> MagicMock:
        return MagicMock()

    @pytest.fixture
    def session_class(self, controller: MagicMock):
        with patch("jsonuicli.core.browser_controller.BrowserSession") as mock_class:
            mock_class.return_value.__enter__.return_value = controller
            yield mock_class

    @pytest.fixture(autouse=True)
    def config(self, tmp_path: Path):
        config = RunnerConfig(screenshot_dir=tmp_path / "shots", settle_delay=0)
        with patch("jsonuicli.core.config.ConfigLoader.load", return_value=config):
            yield config

    def test_run_all_passing(self, tests_dir: Path, session_class, controller) -> None:
        result = runner.invoke(app, ["run", str(tests_dir)])

        assert result.exit_code == 0
        assert "2 suite(s)" in result.stdout
        assert "3 passed" in result.stdout
        session_class.assert_called_once()
        controller.wait_visible.assert_any_call("submit", 5000)

    def test_run_options_reach_browser_config(self, tests_dir: Path, session_class) -> None:
        result = runner.invoke(
            app,
            ["run", str(tests_dir), "--url", "http://localhost:3000", "--headed", "--timeout", "2s"],
        )

        assert result.exit_code == 0
        browser_config = session_class.call_args.args[0]
        assert browser_config.base_url == "http://localhost:3000"
        assert browser_config.headless is False

    def test_run_failure_exit_code(self, tests_dir: Path, session_class, controller) -> None:
        controller.wait_visible.side_effect = ElementNotFoundError("submit", 5000)

        result = runner.invoke(app, ["run", str(tests_dir / "screens"), "--no-screenshots"])

        assert result.exit_code == 1
        assert "1 failed" in result.stdout
        controller.screenshot.assert_not_called()

    def test_run_writes_reports(self, tests_dir: Path, session_class, tmp_path: Path) -> None:
        output = tmp_path / "out"
        junit = tmp_path / "ci" / "junit.xml"

        result = runner.invoke(
            app, ["run", str(tests_dir), "--output", str(output), "--junit", str(junit)]
        )

        assert result.exit_code == 0
        data = json.loads((output / "report.json").read_text())
        assert data["summary"]["suites"] == 2
        assert junit.exists()

    def test_run_browser_failure(self, tests_dir: Path, session_class) -> None:
        session_class.side_effect = RuntimeError("Executable doesn't exist")

        result = runner.invoke(app, ["run", str(tests_dir)])

        assert result.exit_code == 2
        assert "Browser error" in result.stdout

    def test_run_empty_directory(self, tmp_path: Path, session_class) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()

        result = runner.invoke(app, ["run", str(empty)])

        assert result.exit_code == 0
        assert "No test files found" in result.stdout
        session_class.assert_not_called()

    def test_run_platform_skips_suites(self, tests_dir: Path, session_class, controller) -> None:
        (tests_dir / "screens" / "ios.test.json").write_text(
            json.dumps(
                {
                    "type": "screen",
                    "source": "ios.json",
                    "platform": "ios",
                    "metadata": {"name": "IOS only"},
                    "cases": [{"name": "a", "steps": [{"action": "tap", "id": "never"}]}],
                }
            )
        )

        result = runner.invoke(app, ["run", str(tests_dir / "screens")])

        assert result.exit_code == 0
        called_ids = [c.args[0] for c in controller.wait_visible.call_args_list]
        assert "never" not in called_ids
