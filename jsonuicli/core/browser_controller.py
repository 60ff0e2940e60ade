"""Browser interaction via Playwright.

Elements are matched by their test id attribute (``data-testid`` by
default), which is how JsonUI web apps expose component ids.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from playwright.sync_api import Browser, Dialog, Locator, Page, Playwright, sync_playwright
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from jsonuicli.core.config import BrowserConfig
from jsonuicli.core.driver import BoundingBox
from jsonuicli.core.errors import ActionError, ElementNotFoundError

logger = logging.getLogger("jsonui.browser")

# Value of the element itself, or of a nested input/textarea, else its text
_READ_TEXT_JS = """
el => {
  if (el instanceof HTMLInputElement || el instanceof HTMLTextAreaElement) {
    return el.value;
  }
  const input = el.querySelector('input, textarea');
  if (input instanceof HTMLInputElement || input instanceof HTMLTextAreaElement) {
    return input.value;
  }
  return el.textContent ?? '';
}
"""

_IS_DISABLED_JS = """
el => {
  if (el instanceof HTMLButtonElement || el instanceof HTMLInputElement
      || el instanceof HTMLSelectElement || el instanceof HTMLTextAreaElement) {
    return el.disabled;
  }
  return el.getAttribute('aria-disabled') === 'true' || el.hasAttribute('disabled');
}
"""

_SCROLL_BY_JS = """
(el, offset) => {
  el.scrollLeft += offset.dx;
  el.scrollTop += offset.dy;
}
"""


class PlaywrightElement:
    """ElementHandle backed by a Playwright locator."""

    def __init__(self, page: Page, locator: Locator):
        self._page = page
        self._locator = locator

    @property
    def locator(self) -> Locator:
        return self._locator

    def click(self) -> None:
        self._locator.click()

    def double_click(self) -> None:
        self._locator.dblclick()

    def long_press(self, duration_ms: int) -> None:
        # No built-in long press, hold the mouse over the element
        self._locator.hover()
        self._page.mouse.down()
        self._page.wait_for_timeout(duration_ms)
        self._page.mouse.up()

    def fill(self, text: str) -> None:
        self._editable().fill(text)

    def clear(self) -> None:
        self._editable().clear()

    def read_text(self) -> str:
        return str(self._locator.evaluate(_READ_TEXT_JS))

    def is_visible(self) -> bool:
        return self._locator.is_visible()

    def is_enabled(self) -> bool:
        return not self._locator.evaluate(_IS_DISABLED_JS)

    def bounding_box(self) -> BoundingBox | None:
        box = self._locator.bounding_box()
        if box is None:
            return None
        return BoundingBox(x=box["x"], y=box["y"], width=box["width"], height=box["height"])

    def scroll_by(self, dx: float, dy: float) -> None:
        self._locator.evaluate(_SCROLL_BY_JS, {"dx": dx, "dy": dy})

    def select_option(
        self,
        value: str | None = None,
        label: str | None = None,
        index: int | None = None,
    ) -> None:
        target = self._locator
        nested = self._locator.locator("select").first
        if nested.count() > 0:
            target = nested

        if value is not None:
            target.select_option(value=str(value))
        elif label is not None:
            target.select_option(label=str(label))
        else:
            target.select_option(index=int(index))

    def _editable(self) -> Locator:
        """The element itself, or the first input/textarea inside it."""
        nested = self._locator.locator("input, textarea").first
        if nested.count() > 0:
            return nested
        return self._locator


class BrowserController:
    """ElementDriver implementation for a Playwright page."""

    def __init__(self, page: Page, test_id_attribute: str = "data-testid"):
        """Initialize controller for an open page.

        Args:
            page: Playwright page to drive
            test_id_attribute: Attribute holding element ids
        """
        self._page = page
        self._attribute = test_id_attribute

    @property
    def page(self) -> Page:
        return self._page

    def locate(self, element_id: str) -> list[PlaywrightElement]:
        locator = self._locator(element_id)
        return [PlaywrightElement(self._page, locator.nth(i)) for i in range(locator.count())]

    def wait_visible(self, element_id: str, timeout_ms: int) -> PlaywrightElement:
        locator = self._locator(element_id).first
        try:
            locator.wait_for(state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise ElementNotFoundError(element_id, timeout_ms, self._attribute)
        return PlaywrightElement(self._page, locator)

    def drag(self, start: tuple[float, float], end: tuple[float, float]) -> None:
        mouse = self._page.mouse
        mouse.move(*start)
        mouse.down()
        mouse.move(*end, steps=10)
        mouse.up()

    def wait_idle(self) -> None:
        self._page.wait_for_load_state("networkidle")

    def wait(self, ms: int) -> None:
        self._page.wait_for_timeout(ms)

    def back(self) -> None:
        self._page.go_back()

    def screenshot(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._page.screenshot(path=str(path), full_page=True)

    def wait_dialog(self, timeout_ms: int) -> Dialog:
        """Wait for the page's next dialog. The listener is removed either way."""
        try:
            dialog = self._page.wait_for_event("dialog", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise ActionError(f"Alert did not appear within {timeout_ms}ms")
        logger.debug("Dialog (%s): %s", dialog.type, dialog.message)
        return dialog

    def navigate(self, url: str) -> None:
        logger.info("Navigating to: %s", url)
        self._page.goto(url, wait_until="domcontentloaded")

    def _locator(self, element_id: str) -> Locator:
        return self._page.locator(f"[{self._attribute}={json.dumps(element_id)}]")


class BrowserSession:
    """Owns the Playwright browser for the duration of a run.

    Usage:
        with BrowserSession(config) as controller:
            controller.navigate("http://localhost:3000")
    """

    def __init__(self, config: BrowserConfig | None = None):
        self._config = config or BrowserConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._controller: BrowserController | None = None

    def start(self) -> BrowserController:
        """Launch the browser and open a page."""
        logger.debug("Launching %s (headless=%s)", self._config.browser, self._config.headless)
        self._playwright = sync_playwright().start()
        try:
            browser_type: Any = getattr(self._playwright, self._config.browser)
            self._browser = browser_type.launch(headless=self._config.headless)
            context = self._browser.new_context(
                viewport={
                    "width": self._config.viewport_width,
                    "height": self._config.viewport_height,
                },
            )
            page = context.new_page()
            controller = BrowserController(page, self._config.test_id_attribute)
            if self._config.base_url:
                controller.navigate(self._config.base_url)
        except Exception:
            logger.error("Failed to start browser session.", exc_info=True)
            self.close()
            raise

        self._controller = controller
        return self._controller

    def close(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
        self._controller = None
        logger.debug("Browser closed")

    def __enter__(self) -> BrowserController:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.close()
