"""Configuration loader with layered priority.

Priority order (highest to lowest):
1. Command line options (applied by the CLI with ``dataclasses.replace``)
2. Environment variables (JSONUI_PLATFORM, JSONUI_TIMEOUT, JSONUI_VERBOSE, ...)
3. Project config (.jsonui.yaml in current directory)
4. Global config (~/.jsonui.yaml)
5. Default values
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from rich.logging import RichHandler

# Config file paths
GLOBAL_CONFIG = Path.home() / ".jsonui.yaml"
PROJECT_CONFIG = Path.cwd() / ".jsonui.yaml"

DEFAULT_TIMEOUT_MS = 5000


def _safe_int(value: Any, default: int) -> int:
    """Convert value to int, returning default if None or invalid."""
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_bool(value: Any, default: bool = False) -> bool:
    """Parse boolean value from various formats.

    Handles:
    - None -> default
    - bool -> as-is
    - str -> "true", "1", "yes", "on" are True
    - other -> bool(value)
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on")
    return bool(value)


def parse_duration_ms(value: Any, default: int) -> int:
    """Parse duration value from string (e.g., '5s', '500ms') or number.

    Args:
        value: Duration as string ('5s', '500ms', '1.5s') or number (milliseconds)
        default: Default value if parsing fails

    Returns:
        Duration in milliseconds
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        value = value.strip().lower()
        try:
            if value.endswith("ms"):
                return int(float(value[:-2]))
            if value.endswith("s"):
                return int(float(value[:-1]) * 1000)
            return int(float(value))
        except ValueError:
            return default
    return default


@dataclass(frozen=True)
class BrowserConfig:
    """Browser the CLI launches for a run."""

    base_url: str | None = None
    browser: str = "chromium"  # chromium, firefox or webkit
    headless: bool = True
    viewport_width: int = 1280
    viewport_height: int = 720
    test_id_attribute: str = "data-testid"


@dataclass(frozen=True)
class RunnerConfig:
    """Settings for one test run. Immutable once the executor is built."""

    default_timeout: int = DEFAULT_TIMEOUT_MS  # ms, used when a step has no timeout
    screenshot_on_failure: bool = True
    screenshot_dir: Path = Path("screenshots")
    platform: str = "web"
    verbose: bool = False
    poll_interval: int = 100  # ms between waitForAny probes
    settle_delay: int = 500  # ms to wait after the page goes idle
    browser: BrowserConfig = field(default_factory=BrowserConfig)


class ConfigLoader:
    """Loads and merges configuration from multiple sources."""

    @classmethod
    def load(cls) -> RunnerConfig:
        """Load configuration with layered priority.

        Returns:
            Merged RunnerConfig instance.
        """
        # Start with defaults
        config_dict: dict[str, Any] = {}

        # Layer 1: Global config (~/.jsonui.yaml)
        if GLOBAL_CONFIG.exists():
            global_data = cls._load_yaml(GLOBAL_CONFIG)
            config_dict = cls._deep_merge(config_dict, global_data)

        # Layer 2: Project config (.jsonui.yaml)
        if PROJECT_CONFIG.exists():
            project_data = cls._load_yaml(PROJECT_CONFIG)
            config_dict = cls._deep_merge(config_dict, project_data)

        # Layer 3: Environment variables (highest priority)
        env_overrides = cls._get_env_overrides()
        config_dict = cls._deep_merge(config_dict, env_overrides)

        return cls._build_config(config_dict)

    @classmethod
    def _load_yaml(cls, path: Path) -> dict[str, Any]:
        """Load YAML file safely."""
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except (yaml.YAMLError, OSError) as e:
            logging.getLogger("jsonui.config").warning("Ignoring config %s: %s", path, e)
            return {}

    @classmethod
    def _get_env_overrides(cls) -> dict[str, Any]:
        """Get configuration overrides from environment variables."""
        overrides: dict[str, Any] = {}

        if "JSONUI_PLATFORM" in os.environ:
            overrides["platform"] = os.environ["JSONUI_PLATFORM"]

        if "JSONUI_TIMEOUT" in os.environ:
            overrides["default_timeout"] = os.environ["JSONUI_TIMEOUT"]

        if "JSONUI_SCREENSHOT_DIR" in os.environ:
            overrides["screenshot_dir"] = os.environ["JSONUI_SCREENSHOT_DIR"]

        # Boolean parsing for verbose
        if "JSONUI_VERBOSE" in os.environ:
            overrides["verbose"] = _parse_bool(os.environ["JSONUI_VERBOSE"])

        # Browser overrides
        browser_overrides: dict[str, Any] = {}
        if "JSONUI_BASE_URL" in os.environ:
            browser_overrides["base_url"] = os.environ["JSONUI_BASE_URL"]
        if "JSONUI_HEADLESS" in os.environ:
            browser_overrides["headless"] = os.environ["JSONUI_HEADLESS"]
        if browser_overrides:
            overrides["browser"] = browser_overrides

        return overrides

    @classmethod
    def _deep_merge(cls, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries, with override taking precedence."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    @classmethod
    def _build_config(cls, config_dict: dict[str, Any]) -> RunnerConfig:
        """Build RunnerConfig from dictionary."""
        browser_dict = config_dict.get("browser") or {}
        defaults = BrowserConfig()

        browser = BrowserConfig(
            base_url=browser_dict.get("base_url"),
            browser=str(browser_dict.get("browser") or defaults.browser),
            headless=_parse_bool(browser_dict.get("headless"), defaults.headless),
            viewport_width=_safe_int(browser_dict.get("viewport_width"), defaults.viewport_width),
            viewport_height=_safe_int(
                browser_dict.get("viewport_height"), defaults.viewport_height
            ),
            test_id_attribute=str(
                browser_dict.get("test_id_attribute") or defaults.test_id_attribute
            ),
        )

        screenshot_dir = config_dict.get("screenshot_dir")

        return RunnerConfig(
            default_timeout=parse_duration_ms(config_dict.get("default_timeout"), DEFAULT_TIMEOUT_MS),
            screenshot_on_failure=_parse_bool(config_dict.get("screenshot_on_failure"), True),
            screenshot_dir=Path(screenshot_dir) if screenshot_dir else Path("screenshots"),
            platform=str(config_dict.get("platform") or "web"),
            verbose=_parse_bool(config_dict.get("verbose"), False),
            poll_interval=parse_duration_ms(config_dict.get("poll_interval"), 100),
            settle_delay=parse_duration_ms(config_dict.get("settle_delay"), 500),
            browser=browser,
        )


def setup_logging(verbose: bool, log_dir: Path | None = None) -> Path | None:
    """Configure DEBUG logging for the jsonui loggers.

    Args:
        verbose: Enable logging when True
        log_dir: Directory to write debug.log; logs go to the console when None

    Returns:
        Path to log file if created, None otherwise
    """
    if not verbose:
        return None

    # Configure root jsonui logger (clear existing handlers to prevent duplicates)
    jsonui_logger = logging.getLogger("jsonui")
    jsonui_logger.handlers.clear()
    jsonui_logger.setLevel(logging.DEBUG)

    if log_dir is None:
        jsonui_logger.addHandler(RichHandler(show_path=False, rich_tracebacks=True))
        return None

    log_file = log_dir / "debug.log"
    log_dir.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_file, mode="w")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s.%(msecs)03d [%(levelname)-5s] %(name)-20s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    jsonui_logger.addHandler(handler)

    return log_file
