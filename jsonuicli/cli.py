"""CLI commands for jsonuicli."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from jsonuicli import __version__

if TYPE_CHECKING:
    from jsonuicli.core.config import RunnerConfig
    from jsonuicli.core.executor import SuiteResult
    from jsonuicli.models.test import LoadedTest

# Load .env file from current directory or parent directories
load_dotenv()

app = typer.Typer(
    name="jsonui",
    help="JsonUI Test Runner - Run JSON-defined UI tests against web apps",
    no_args_is_help=True,
)
console = Console()
logger = logging.getLogger("jsonui.cli")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"jsonui version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """jsonui - JSON-defined UI testing."""
    pass


def _load_tests(path: Path) -> list[LoadedTest]:
    """Load a single test file or every test file under a directory."""
    from jsonuicli.core.loader import ParseError, TestLoader

    if not path.exists():
        console.print(f"[red]Error:[/red] Test path not found: {path}")
        raise typer.Exit(2)

    try:
        if path.is_dir():
            return TestLoader.load_from_directory(path)
        return [TestLoader.load_from_file(path)]
    except ParseError as e:
        console.print(f"[red]Parse error:[/red] {escape(str(e))}")
        raise typer.Exit(2)


def _apply_overrides(
    config: RunnerConfig,
    *,
    url: str | None,
    platform: str | None,
    timeout: str | None,
    screenshots: bool | None,
    screenshot_dir: Path | None,
    headless: bool | None,
    verbose: bool,
) -> RunnerConfig:
    """Layer command line options over the loaded configuration."""
    from jsonuicli.core.config import parse_duration_ms

    changes: dict = {}
    if platform:
        changes["platform"] = platform
    if timeout:
        changes["default_timeout"] = parse_duration_ms(timeout, config.default_timeout)
    if screenshots is not None:
        changes["screenshot_on_failure"] = screenshots
    if screenshot_dir:
        changes["screenshot_dir"] = screenshot_dir
    if verbose:
        changes["verbose"] = True

    browser_changes: dict = {}
    if url:
        browser_changes["base_url"] = url
    if headless is not None:
        browser_changes["headless"] = headless
    if browser_changes:
        changes["browser"] = dataclasses.replace(config.browser, **browser_changes)

    return dataclasses.replace(config, **changes)


@app.command()
def run(
    test_path: Path = typer.Argument(..., help="Test file or directory of *.test.json files"),
    url: str | None = typer.Option(None, "--url", "-u", help="URL of the app under test"),
    platform: str | None = typer.Option(None, "--platform", "-p", help="Platform to run as"),
    timeout: str | None = typer.Option(
        None, "--timeout", "-t", help="Default step timeout (e.g. 5000, 5s, 500ms)"
    ),
    no_screenshots: bool = typer.Option(
        False, "--no-screenshots", help="Do not capture screenshots of failed cases"
    ),
    screenshot_dir: Path | None = typer.Option(None, "--screenshot-dir", help="Screenshot directory"),
    headed: bool = typer.Option(False, "--headed", help="Show the browser window"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Directory for report.json"),
    junit: Path | None = typer.Option(None, "--junit", help="JUnit XML output path"),
    verbose: bool = typer.Option(False, "--verbose", help="Write detailed logs"),
) -> None:
    """Execute a test file or every test file in a directory."""
    from jsonuicli.core.browser_controller import BrowserSession
    from jsonuicli.core.config import ConfigLoader, setup_logging
    from jsonuicli.core.console_reporter import ConsoleReporter
    from jsonuicli.core.executor import TestExecutor
    from jsonuicli.core.report import ReportGenerator

    config = _apply_overrides(
        ConfigLoader.load(),
        url=url,
        platform=platform,
        timeout=timeout,
        screenshots=False if no_screenshots else None,
        screenshot_dir=screenshot_dir,
        headless=False if headed else None,
        verbose=verbose,
    )

    if config.verbose:
        log_dir = output or Path("runs") / datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        log_file = setup_logging(verbose=True, log_dir=log_dir)
        if log_file:
            console.print(f"[dim]Verbose logging → {log_file}[/dim]")

    tests = _load_tests(test_path)
    if not tests:
        console.print(f"[yellow]No test files found in {test_path}[/yellow]")
        raise typer.Exit(0)

    console.print(
        f"[dim]Running {len(tests)} test file(s) on platform '{config.platform}'"
        f"{' at ' + config.browser.base_url if config.browser.base_url else ''}[/dim]"
    )
    console.print()

    suites: list[SuiteResult] = []
    aborted = 0

    try:
        with BrowserSession(config.browser) as controller:
            reporter = ConsoleReporter(console=console)
            executor = TestExecutor(controller, config=config, reporter=reporter)

            for loaded in tests:
                try:
                    suites.append(executor.run(loaded))
                except Exception as e:
                    # Setup failures abort the suite but not the run
                    aborted += 1
                    logger.exception("Suite %s aborted", loaded.name)
                    console.print(f"[red]Error:[/red] {escape(loaded.name)}: {escape(str(e))}")
    except Exception as e:
        console.print(f"[red]Browser error:[/red] {escape(str(e))}")
        raise typer.Exit(2)

    _print_summary(suites, aborted)

    if output:
        generator = ReportGenerator(output)
        report_path = generator.generate_json(suites)
        console.print(f"[dim]Report: {report_path}[/dim]")

    if junit:
        ReportGenerator(junit.parent).generate_junit(suites, junit)
        console.print(f"[dim]JUnit: {junit}[/dim]")

    # Exit code
    if aborted or not all(s.all_passed for s in suites):
        raise typer.Exit(1)
    raise typer.Exit(0)


def _print_summary(suites: list[SuiteResult], aborted: int) -> None:
    """Print totals across all suites."""
    passed = sum(s.passed_count for s in suites)
    failed = sum(s.failed_count for s in suites)
    skipped = sum(1 for s in suites for r in s.results if r.skipped)

    console.print()
    line = f"[bold]{len(suites)} suite(s):[/bold] [green]{passed} passed[/green]"
    if skipped:
        line += f" [dim](incl. {skipped} skipped)[/dim]"
    line += f", [red]{failed} failed[/red]" if failed else ", 0 failed"
    if aborted:
        line += f", [red]{aborted} aborted[/red]"
    console.print(line)


@app.command()
def validate(
    test_path: Path = typer.Argument(..., help="Test file or directory of *.test.json files"),
) -> None:
    """Check that test files load, without running them."""
    tests = _load_tests(test_path)

    table = Table(title="Test Files")
    table.add_column("Name", style="cyan")
    table.add_column("Type")
    table.add_column("Cases/Steps", justify="right")
    table.add_column("File", style="dim")

    for loaded in tests:
        if loaded.kind == "screen":
            count = str(len(loaded.test.cases))
        else:
            count = str(len(loaded.test.steps))
        table.add_row(loaded.name, loaded.kind, count, str(loaded.file_path or ""))

    console.print(table)
    console.print(f"[green]✓[/green] {len(tests)} test file(s) valid")


@app.command(name="list")
def list_tests(
    test_path: Path = typer.Argument(..., help="Test file or directory of *.test.json files"),
) -> None:
    """List suites and their cases or flow steps."""
    from jsonuicli.models.test import BlockStep, FileReferenceStep

    for loaded in _load_tests(test_path):
        console.print(f"[bold cyan]{escape(loaded.name)}[/bold cyan] [dim]({loaded.kind})[/dim]")
        if loaded.kind == "screen":
            for case in loaded.test.cases:
                suffix = " [dim](skip)[/dim]" if case.skip else ""
                console.print(f"  • {escape(case.name)}{suffix}")
            continue

        for step in loaded.test.steps:
            if isinstance(step, FileReferenceStep):
                selection = step.case or ", ".join(step.cases) or "all cases"
                console.print(f"  → {escape(step.file)} [dim]({escape(selection)})[/dim]")
            elif isinstance(step, BlockStep):
                console.print(f"  ▣ {escape(step.block)} [dim]({len(step.steps)} steps)[/dim]")
            else:
                inner = step.step
                console.print(f"  · {escape(str(inner.kind))} {escape(str(inner.id or ''))}")


if __name__ == "__main__":
    app()
