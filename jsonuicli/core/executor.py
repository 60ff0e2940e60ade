"""Test execution engine."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from jsonuicli.core.actions import ActionExecutor
from jsonuicli.core.assertions import AssertionExecutor
from jsonuicli.core.config import RunnerConfig
from jsonuicli.core.driver import ElementDriver
from jsonuicli.core.errors import StepError
from jsonuicli.core.loader import ResolutionContext, TestLoader
from jsonuicli.core.substitution import substitute
from jsonuicli.models.test import (
    BlockStep,
    FileReferenceStep,
    FlowStep,
    FlowTest,
    InlineStep,
    LoadedTest,
    ScreenTest,
    Step,
    TestCase,
    platform_includes,
)

if TYPE_CHECKING:
    from jsonuicli.core.console_reporter import ConsoleReporter

logger = logging.getLogger("jsonui.executor")

FLOW_CASE_NAME = "flow"


@dataclass
class TestResult:
    """Result of one screen-test case, or of a whole flow."""

    __test__ = False

    test_name: str
    case_name: str
    passed: bool
    duration_ms: int = 0
    error: str | None = None
    skipped: bool = False  # Skipped cases still count as passed


@dataclass
class SuiteResult:
    """Results of running one loaded test."""

    suite_name: str
    results: list[TestResult] = field(default_factory=list)
    total_duration_ms: int = 0

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r.passed)

    @property
    def all_passed(self) -> bool:
        return all(r.passed for r in self.results)


def _elapsed_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


class TestExecutor:
    """Run screen and flow tests through an element driver."""

    # Tell pytest not to collect this as a test class
    __test__ = False

    def __init__(
        self,
        driver: ElementDriver,
        config: RunnerConfig | None = None,
        loader: type[TestLoader] = TestLoader,
        reporter: ConsoleReporter | None = None,
    ):
        """Initialize executor.

        Args:
            driver: Element driver steps are dispatched to
            config: Run configuration (defaults if not provided)
            loader: Loader used to resolve flow file references
            reporter: Optional ConsoleReporter for live CLI output
        """
        self._driver = driver
        self._config = config or RunnerConfig()
        self._loader = loader
        self._reporter = reporter
        self._actions = ActionExecutor(
            driver,
            default_timeout=self._config.default_timeout,
            poll_interval=self._config.poll_interval,
            screenshot_dir=self._config.screenshot_dir,
        )
        self._assertions = AssertionExecutor(driver, default_timeout=self._config.default_timeout)

    @property
    def config(self) -> RunnerConfig:
        return self._config

    def run(self, loaded: LoadedTest) -> SuiteResult:
        """Run a loaded test of either kind."""
        if loaded.kind == "screen":
            return self.run_screen_test(loaded.test)  # type: ignore[arg-type]
        return self.run_flow_test(loaded.test, loaded.context)  # type: ignore[arg-type]

    # MARK: - Screen tests

    def run_screen_test(self, test: ScreenTest) -> SuiteResult:
        """Run every case of a screen test.

        Case failures are recorded in the result; setup failures propagate.
        """
        start = time.time()
        suite_name = test.metadata.name

        if not platform_includes(test.platform, self._config.platform):
            logger.info("Skipping test %s - platform mismatch (%s)", suite_name, self._config.platform)
            return SuiteResult(suite_name=suite_name)

        logger.info("Starting screen test: %s (%d cases)", suite_name, len(test.cases))
        if self._reporter:
            self._reporter.suite_started(suite_name, len(test.cases))

        try:
            self._wait_until_ready()
            if test.setup:
                logger.debug("Executing setup phase (%d steps)", len(test.setup))
                self._execute_steps(test.setup)
        except Exception as e:
            logger.error("Setup failed for %s: %s", suite_name, e)
            if self._reporter:
                self._reporter.abort(f"Setup failed: {e}")
            raise

        results = [self._run_case(suite_name, case) for case in test.cases]

        if test.teardown:
            logger.debug("Executing teardown phase (%d steps)", len(test.teardown))
            try:
                self._execute_steps(test.teardown)
            except Exception as e:
                logger.warning("Teardown failed for %s: %s", suite_name, e)

        suite = SuiteResult(suite_name=suite_name, results=results, total_duration_ms=_elapsed_ms(start))
        logger.info(
            "Screen test completed: %s - passed=%d, failed=%d, duration=%dms",
            suite_name,
            suite.passed_count,
            suite.failed_count,
            suite.total_duration_ms,
        )
        if self._reporter:
            self._reporter.finish(suite)
        return suite

    def _run_case(self, suite_name: str, case: TestCase) -> TestResult:
        """Run one case, converting any error into a failed result."""
        if self._reporter:
            self._reporter.case_started(case.name)

        skip_reason = self._skip_reason(case)
        if skip_reason:
            logger.info("Skipping case %s - %s", case.name, skip_reason)
            result = TestResult(suite_name, case.name, passed=True, skipped=True)
            if self._reporter:
                self._reporter.case_completed(result)
            return result

        logger.info("Running case: %s", case.name)
        start = time.time()
        try:
            # Case defaults fill placeholders when a screen test runs on its own
            self._execute_steps(substitute(case).steps)
            result = TestResult(suite_name, case.name, passed=True, duration_ms=_elapsed_ms(start))
        except Exception as e:
            logger.error("Case %s failed: %s", case.name, e)
            if self._config.screenshot_on_failure:
                self._take_screenshot(f"failure_{suite_name}_{case.name}")
            result = TestResult(
                suite_name,
                case.name,
                passed=False,
                duration_ms=_elapsed_ms(start),
                error=str(e),
            )

        if self._reporter:
            self._reporter.case_completed(result)
        return result

    def _skip_reason(self, case: TestCase) -> str | None:
        if case.skip:
            return "marked skip"
        if not platform_includes(case.platform, self._config.platform):
            return "platform mismatch"
        return None

    # MARK: - Flow tests

    def run_flow_test(self, test: FlowTest, context: ResolutionContext | None = None) -> SuiteResult:
        """Run a flow as a single unit of work.

        Args:
            test: Flow to run
            context: Where the flow's file references are resolved from

        Returns:
            SuiteResult with exactly one "flow" result, or none when skipped
        """
        start = time.time()
        suite_name = test.metadata.name

        if not platform_includes(test.platform, self._config.platform):
            logger.info("Skipping flow %s - platform mismatch (%s)", suite_name, self._config.platform)
            return SuiteResult(suite_name=suite_name)

        logger.info("Starting flow test: %s (%d steps)", suite_name, len(test.steps))
        if self._reporter:
            self._reporter.suite_started(suite_name, 1)
            self._reporter.case_started(FLOW_CASE_NAME)

        try:
            self._wait_until_ready()

            if test.setup:
                logger.debug("Running flow setup (%d steps)", len(test.setup))
                self._execute_flow_steps(test.setup, context)

            logger.debug("Running flow steps")
            checkpoints = {}
            for checkpoint in test.checkpoints:
                checkpoints.setdefault(checkpoint.after_step, []).append(checkpoint)

            for number, step in enumerate(test.steps, start=1):
                logger.info("Flow step %d/%d: %s", number, len(test.steps), self._describe_flow_step(step))
                self._execute_flow_step(step, context)
                for checkpoint in checkpoints.get(number, []):
                    logger.info("Checkpoint reached: %s (after step %d)", checkpoint.name, number)
                    if checkpoint.screenshot:
                        self._take_screenshot(f"checkpoint_{suite_name}_{checkpoint.name}")

            if test.teardown:
                logger.debug("Running flow teardown (%d steps)", len(test.teardown))
                self._execute_flow_steps(test.teardown, context)

            result = TestResult(suite_name, FLOW_CASE_NAME, passed=True, duration_ms=_elapsed_ms(start))
        except Exception as e:
            logger.error("Flow test %s failed: %s", suite_name, e)
            if self._config.screenshot_on_failure:
                self._take_screenshot(f"failure_{suite_name}_{FLOW_CASE_NAME}")
            result = TestResult(
                suite_name,
                FLOW_CASE_NAME,
                passed=False,
                duration_ms=_elapsed_ms(start),
                error=str(e),
            )

        suite = SuiteResult(suite_name=suite_name, results=[result], total_duration_ms=_elapsed_ms(start))
        if self._reporter:
            self._reporter.case_completed(result)
            self._reporter.finish(suite)
        return suite

    def _execute_flow_steps(self, steps: list[FlowStep], context: ResolutionContext | None) -> None:
        for number, step in enumerate(steps, start=1):
            logger.debug("  Flow step %d: %s", number, self._describe_flow_step(step))
            self._execute_flow_step(step, context)

    def _execute_flow_step(self, step: FlowStep, context: ResolutionContext | None) -> None:
        """Expand and execute one flow step. Errors propagate to the flow."""
        if isinstance(step, FileReferenceStep):
            cases = self._loader.resolve_file_reference_cases(step, context)
            logger.debug("File reference '%s' resolved to %d case(s)", step.file, len(cases))
            for case in cases:
                skip_reason = self._skip_reason(case)
                if skip_reason:
                    logger.info("Skipping case %s from %s - %s", case.name, step.file, skip_reason)
                    continue
                logger.info("Running case %s from %s", case.name, step.file)
                self._execute_steps(case.steps)
        elif isinstance(step, BlockStep):
            logger.debug("Running block '%s' (%d steps)", step.block, len(step.steps))
            self._execute_steps(step.steps)
        elif isinstance(step, InlineStep):
            self.execute_step(step.step)
        else:
            raise StepError(f"Unsupported flow step: {step!r}")

    # MARK: - Steps

    def _execute_steps(self, steps: list[Step]) -> None:
        for number, step in enumerate(steps, start=1):
            logger.debug("  Step %d: %s", number, self._describe_step(step))
            self.execute_step(step)

    def execute_step(self, step: Step) -> None:
        """Dispatch a single step to the action or assertion executor.

        Raises:
            StepError: If the step has neither or both of action and assert
        """
        if step.is_action == step.is_assertion:
            raise StepError("Step must have either 'action' or 'assert'")

        if step.is_action:
            self._actions.execute(step)
        else:
            self._assertions.execute(step)

    # MARK: - Helpers

    def _wait_until_ready(self) -> None:
        """Wait for the UI to settle before the first step."""
        logger.debug("Waiting for UI to be ready...")
        self._driver.wait_idle()
        if self._config.settle_delay > 0:
            self._driver.wait(self._config.settle_delay)

    def _take_screenshot(self, name: str) -> None:
        """Capture a full-page screenshot. Never raises."""
        safe_name = re.sub(r"[^\w.-]+", "_", name)
        path = self._config.screenshot_dir / f"{safe_name}.png"
        try:
            self._driver.screenshot(path)
            logger.info("Screenshot saved: %s", path)
        except Exception as e:
            logger.warning("Failed to take screenshot %s: %s", path, e)

    @staticmethod
    def _describe_step(step: Step) -> str:
        if step.is_action:
            target = step.id or (",".join(step.ids) if step.ids else "-")
            return f"action={step.action}, id={target}"
        if step.is_assertion:
            return f"assert={step.assertion}, id={step.id or '-'}"
        return "unknown step"

    @classmethod
    def _describe_flow_step(cls, step: FlowStep) -> str:
        screen = f"screen={step.screen}, " if step.screen else ""
        if isinstance(step, FileReferenceStep):
            selection = step.case or (",".join(step.cases) if step.cases else "all cases")
            return f"{screen}file={step.file} ({selection})"
        if isinstance(step, BlockStep):
            return f"{screen}block={step.block} ({len(step.steps)} steps)"
        return screen + cls._describe_step(step.step)
