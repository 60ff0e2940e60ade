"""Element driver capability consumed by the action and assertion executors.

Anything that can find UI elements by test id and operate on them can run
tests. ``BrowserController`` implements it on top of Playwright; tests use
mocks.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class BoundingBox:
    """Element geometry in page pixels."""

    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2


class ElementHandle(Protocol):
    """One located UI element."""

    def click(self) -> None: ...

    def double_click(self) -> None: ...

    def long_press(self, duration_ms: int) -> None: ...

    def fill(self, text: str) -> None: ...

    def clear(self) -> None: ...

    def read_text(self) -> str: ...

    def is_visible(self) -> bool: ...

    def is_enabled(self) -> bool: ...

    def bounding_box(self) -> BoundingBox | None: ...

    def scroll_by(self, dx: float, dy: float) -> None: ...

    def select_option(
        self,
        value: str | None = None,
        label: str | None = None,
        index: int | None = None,
    ) -> None: ...


class DialogHandle(Protocol):
    """A native alert, confirm or prompt dialog."""

    @property
    def type(self) -> str: ...

    @property
    def message(self) -> str: ...

    def accept(self, prompt_text: str | None = None) -> None: ...

    def dismiss(self) -> None: ...


class ElementDriver(Protocol):
    """Page-level operations plus element lookup."""

    def locate(self, element_id: str) -> list[ElementHandle]:
        """All elements currently matching the id (possibly none)."""
        ...

    def wait_visible(self, element_id: str, timeout_ms: int) -> ElementHandle:
        """First matching element once visible.

        Raises:
            ElementNotFoundError: If nothing becomes visible in time
        """
        ...

    def drag(self, start: tuple[float, float], end: tuple[float, float]) -> None: ...

    def wait_idle(self) -> None: ...

    def wait(self, ms: int) -> None: ...

    def back(self) -> None: ...

    def screenshot(self, path: Path) -> None: ...

    def wait_dialog(self, timeout_ms: int) -> DialogHandle:
        """Next native dialog the page opens.

        Raises:
            ActionError: If no dialog appears in time
        """
        ...
