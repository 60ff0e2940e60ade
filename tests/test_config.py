"""Tests for ConfigLoader."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from jsonuicli.core.config import ConfigLoader, parse_duration_ms

NOWHERE = Path("/nonexistent/.jsonui.yaml")


def load(global_config=NOWHERE, project_config=NOWHERE, env=None):
    """Load config from the given files and a clean environment."""
    with patch("jsonuicli.core.config.GLOBAL_CONFIG", global_config):
        with patch("jsonuicli.core.config.PROJECT_CONFIG", project_config):
            with patch.dict(os.environ, env or {}, clear=True):
                return ConfigLoader.load()


class TestConfigDefaults:
    """Test default configuration values."""

    def test_loads_default_config_when_no_files(self):
        """Returns defaults when no config files exist."""
        config = load()

        assert config.default_timeout == 5000
        assert config.platform == "web"
        assert config.screenshot_on_failure is True
        assert config.screenshot_dir == Path("screenshots")
        assert config.verbose is False
        assert config.poll_interval == 100
        assert config.settle_delay == 500

    def test_browser_defaults(self):
        config = load()

        assert config.browser.base_url is None
        assert config.browser.browser == "chromium"
        assert config.browser.headless is True
        assert config.browser.test_id_attribute == "data-testid"
        assert (config.browser.viewport_width, config.browser.viewport_height) == (1280, 720)


class TestConfigMerging:
    """Test configuration merging from multiple sources."""

    def test_project_config_overrides_defaults(self, tmp_path):
        """Project .jsonui.yaml overrides defaults."""
        project = tmp_path / ".jsonui.yaml"
        project.write_text("""
platform: ios
default_timeout: 3s
browser:
  base_url: http://localhost:3000
""")

        config = load(project_config=project)

        assert config.platform == "ios"
        assert config.default_timeout == 3000
        assert config.browser.base_url == "http://localhost:3000"
        assert config.browser.headless is True  # Still default

    def test_project_overrides_global(self, tmp_path):
        """Project config overrides global config, nested keys merge."""
        global_config = tmp_path / "global.yaml"
        global_config.write_text("""
platform: android
browser:
  browser: firefox
  headless: false
""")
        project = tmp_path / "project.yaml"
        project.write_text("""
platform: web
browser:
  base_url: http://app.test
""")

        config = load(global_config=global_config, project_config=project)

        assert config.platform == "web"
        assert config.browser.browser == "firefox"  # From global
        assert config.browser.headless is False
        assert config.browser.base_url == "http://app.test"

    def test_env_overrides_all(self, tmp_path):
        """Environment variables have highest priority."""
        project = tmp_path / ".jsonui.yaml"
        project.write_text("""
platform: ios
verbose: false
browser:
  base_url: http://file.test
""")
        env = {
            "JSONUI_PLATFORM": "web",
            "JSONUI_VERBOSE": "true",
            "JSONUI_TIMEOUT": "750ms",
            "JSONUI_SCREENSHOT_DIR": "out/shots",
            "JSONUI_BASE_URL": "http://env.test",
            "JSONUI_HEADLESS": "0",
        }

        config = load(project_config=project, env=env)

        assert config.platform == "web"
        assert config.verbose is True
        assert config.default_timeout == 750
        assert config.screenshot_dir == Path("out/shots")
        assert config.browser.base_url == "http://env.test"
        assert config.browser.headless is False


class TestConfigErrorHandling:
    """Test configuration error handling for edge cases."""

    def test_malformed_yaml_returns_defaults(self, tmp_path):
        """Malformed YAML should be ignored, returning defaults."""
        project = tmp_path / ".jsonui.yaml"
        project.write_text("""
this is not valid yaml:
  - [unclosed bracket
  indentation: wrong
""")

        config = load(project_config=project)

        assert config.platform == "web"
        assert config.default_timeout == 5000

    def test_non_mapping_yaml_ignored(self, tmp_path):
        project = tmp_path / ".jsonui.yaml"
        project.write_text("- just\n- a list\n")

        config = load(project_config=project)

        assert config.platform == "web"

    def test_invalid_values_fall_back(self, tmp_path):
        project = tmp_path / ".jsonui.yaml"
        project.write_text("""
default_timeout: soon
browser:
  viewport_width: wide
""")

        config = load(project_config=project)

        assert config.default_timeout == 5000
        assert config.browser.viewport_width == 1280


class TestParseDuration:
    """Test duration parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (2500, 2500),
            (1.5, 1),
            ("5s", 5000),
            ("1.5s", 1500),
            ("500ms", 500),
            (" 250 ", 250),
            ("10S", 10000),
        ],
    )
    def test_valid(self, value, expected):
        assert parse_duration_ms(value, 5000) == expected

    @pytest.mark.parametrize("value", [None, True, "later", "ms", [1]])
    def test_invalid_uses_default(self, value):
        assert parse_duration_ms(value, 5000) == 5000
