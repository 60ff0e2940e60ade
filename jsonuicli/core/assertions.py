"""Assertion step execution."""

from __future__ import annotations

import logging

from jsonuicli.core.driver import ElementDriver
from jsonuicli.core.errors import (
    ActionError,
    AssertionFailure,
    MissingFieldError,
    UnknownOperationError,
)
from jsonuicli.core.substitution import stringify
from jsonuicli.models.test import Step

logger = logging.getLogger("jsonui.assertions")

# notVisible never waits longer than this before checking
NOT_VISIBLE_SETTLE_MS = 1000


class AssertionExecutor:
    """Check assertion steps through an element driver."""

    ASSERTIONS = {
        "visible": "visible",
        "notVisible": "not_visible",
        "enabled": "enabled",
        "disabled": "disabled",
        "text": "text",
        "count": "count",
    }

    def __init__(self, driver: ElementDriver, default_timeout: int = 5000):
        self._driver = driver
        self._default_timeout = default_timeout

    def execute(self, step: Step) -> None:
        """Execute an assertion step.

        Raises:
            StepError: If the step is malformed
            AssertionFailure: If the expectation is not met
            ActionError: If the element never appears
        """
        if step.assertion is None:
            raise MissingFieldError("step", "assert")

        suffix = self.ASSERTIONS.get(step.assertion)
        if suffix is None:
            raise UnknownOperationError("assertion", step.assertion)

        # Every assertion targets an element
        if step.id is None:
            raise MissingFieldError(step.assertion, "id")

        timeout = step.timeout if step.timeout is not None else self._default_timeout
        logger.debug("Assert %s (id=%s, timeout=%sms)", step.assertion, step.id, timeout)
        getattr(self, f"_assert_{suffix}")(step, timeout)

    def _assert_visible(self, step: Step, timeout: int) -> None:
        element = self._driver.wait_visible(step.id, timeout)
        if not element.is_visible():
            raise AssertionFailure(f"Element '{step.id}' should be visible but it is not")

    def _assert_not_visible(self, step: Step, timeout: int) -> None:
        self._driver.wait(min(timeout, NOT_VISIBLE_SETTLE_MS))
        elements = self._driver.locate(step.id)
        if elements and elements[0].is_visible():
            raise AssertionFailure(f"Element '{step.id}' should not be visible but it is")

    def _assert_enabled(self, step: Step, timeout: int) -> None:
        element = self._driver.wait_visible(step.id, timeout)
        if not element.is_enabled():
            raise AssertionFailure(f"Element '{step.id}' should be enabled but it is disabled")

    def _assert_disabled(self, step: Step, timeout: int) -> None:
        element = self._driver.wait_visible(step.id, timeout)
        if element.is_enabled():
            raise AssertionFailure(f"Element '{step.id}' should be disabled but it is enabled")

    def _assert_text(self, step: Step, timeout: int) -> None:
        if (step.equals is None) == (step.contains is None):
            raise MissingFieldError("text", "equals", "contains", qualifier="exactly one of ")

        actual = self._driver.wait_visible(step.id, timeout).read_text()

        if step.equals is not None:
            expected = stringify(step.equals)
            if actual != expected:
                raise AssertionFailure(
                    f"Expected text '{expected}' but got '{actual}' for element '{step.id}'"
                )
            return

        if str(step.contains) not in actual:
            raise AssertionFailure(
                f"Expected text containing '{step.contains}' but got '{actual}' "
                f"for element '{step.id}'"
            )

    def _assert_count(self, step: Step, timeout: int) -> None:
        if isinstance(step.equals, float) and step.equals.is_integer():
            expected = int(step.equals)
        elif isinstance(step.equals, bool) or not isinstance(step.equals, int):
            raise MissingFieldError("count", "equals", qualifier="integer ")
        else:
            expected = step.equals

        try:
            self._driver.wait_visible(step.id, timeout)
        except ActionError:
            if expected == 0:
                return
            raise AssertionFailure(
                f"Expected {expected} elements with id '{step.id}', but found 0"
            )

        actual = len(self._driver.locate(step.id))
        if actual != expected:
            raise AssertionFailure(
                f"Expected {expected} elements with id '{step.id}', but found {actual}"
            )
