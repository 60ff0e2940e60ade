"""Live console output for test execution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.text import Text

if TYPE_CHECKING:
    from jsonuicli.core.executor import SuiteResult, TestResult


@dataclass
class CaseDisplay:
    """Display state for a single case."""

    name: str
    status: str  # running, passed, failed, skipped
    error: str | None = None
    duration_ms: int = 0


# Status icons
ICONS = {
    "running": "⏳",
    "passed": "✅",
    "failed": "❌",
    "skipped": "⏭️",
}


class ConsoleReporter:
    """Live console output for suite execution.

    One reporter can be reused for several suites; each suite gets its own
    box that stays on screen once finished.

    Usage:
        reporter = ConsoleReporter()
        reporter.suite_started("Login", total_cases=2)
        reporter.case_started("happyPath")
        reporter.case_completed(result)
        reporter.finish(suite_result)
    """

    def __init__(self, console: Console | None = None):
        """Initialize reporter.

        Args:
            console: Optional Rich console (uses default if not provided)
        """
        self._console = console or Console()
        self._suite_name = ""
        self._total_cases = 0
        self._cases: list[CaseDisplay] = []
        self._live: Live | None = None
        self._footer: str | None = None

    def suite_started(self, suite_name: str, total_cases: int) -> None:
        """Start live display for a suite."""
        self._stop_live()
        self._suite_name = suite_name
        self._total_cases = total_cases
        self._cases = []
        self._footer = None
        self._live = Live(
            self._render(),
            console=self._console,
            refresh_per_second=10,
            transient=True,  # Clear when done, we'll print final state
        )
        self._live.start()

    def case_started(self, case_name: str) -> None:
        self._cases.append(CaseDisplay(name=case_name, status="running"))
        self._refresh()

    def case_completed(self, result: TestResult) -> None:
        """Called when a case (or a whole flow) finishes."""
        if result.skipped:
            status = "skipped"
        else:
            status = "passed" if result.passed else "failed"

        for case in reversed(self._cases):
            if case.name == result.case_name and case.status == "running":
                case.status = status
                case.error = result.error
                case.duration_ms = result.duration_ms
                break
        else:
            self._cases.append(CaseDisplay(result.case_name, status, result.error, result.duration_ms))

        self._refresh()

    def abort(self, message: str) -> None:
        """Suite stopped before producing results (e.g. setup failure)."""
        self._footer = f"[red]✗ ABORTED[/red] {escape(message)}"
        self._print_final()

    def finish(self, suite: SuiteResult) -> None:
        """Called when the suite completes."""
        seconds = suite.total_duration_ms / 1000
        if suite.all_passed:
            self._footer = f"[green]✓ PASSED[/green] {suite.passed_count}/{len(suite.results)} ({seconds:.1f}s)"
        else:
            self._footer = (
                f"[red]✗ FAILED[/red] {suite.failed_count}/{len(suite.results)} failed ({seconds:.1f}s)"
            )
        self._print_final()

    def _refresh(self) -> None:
        if self._live:
            self._live.update(self._render())

    def _stop_live(self) -> None:
        if self._live:
            self._live.stop()
            self._live = None

    def _print_final(self) -> None:
        self._stop_live()
        self._console.print(self._render())

    def _render(self) -> Text:
        """Build the current display.

        Returns:
            Rich Text object with formatted output
        """
        lines: list[str] = []

        header = f"┌─ {escape(self._suite_name)} "
        header += "─" * max(0, 40 - len(header))
        lines.append(header)

        for case in self._cases:
            icon = ICONS.get(case.status, "🔲")
            line = f"│ {icon} {escape(case.name)}"
            if case.status == "skipped":
                line += "  [dim](skipped)[/dim]"
            elif case.status != "running":
                line += f"  [dim]({case.duration_ms}ms)[/dim]"
            lines.append(line)

            if case.error:
                # Truncate long errors
                error = case.error
                if len(error) > 70:
                    error = error[:67] + "..."
                lines.append(f"│    [red]{escape(error)}[/red]")

        if self._footer is not None:
            lines.append(f"└─ {self._footer}")
        else:
            lines.append("└" + "─" * 39)

        return Text.from_markup("\n".join(lines))
