"""Placeholder substitution for reusable test cases.

Cases referenced from flows may contain ``@{name}`` placeholders in their
step strings. Values come from the case's own ``args`` defaults, overridden
by the ``args`` given at the call site.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Any

from jsonuicli.models.test import Step, TestCase

PLACEHOLDER = re.compile(r"@\{([^{}]+)\}")

# Step fields scanned for placeholders ("equals" handled separately)
SUBSTITUTED_FIELDS = ("id", "text", "value", "contains", "button", "label")


def stringify(value: Any) -> str:
    """Render a JSON scalar the way it reads in the test file."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return "null"
    return str(value)


def substitute_text(text: str, args: dict[str, Any]) -> str:
    """Replace every known ``@{name}`` in text. Unknown names stay as written."""

    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in args:
            return match.group(0)
        return stringify(args[key])

    return PLACEHOLDER.sub(replace, text)


def substitute_step(step: Step, args: dict[str, Any]) -> Step:
    """Return a copy of step with placeholders resolved."""
    changes: dict[str, Any] = {}

    for name in SUBSTITUTED_FIELDS:
        value = getattr(step, name)
        if isinstance(value, str):
            changes[name] = substitute_text(value, args)

    if step.ids is not None:
        changes["ids"] = [
            substitute_text(item, args) if isinstance(item, str) else item for item in step.ids
        ]

    if isinstance(step.equals, str):
        changes["equals"] = substitute_text(step.equals, args)

    return dataclasses.replace(step, **changes)


def substitute(case: TestCase, overrides: dict[str, Any] | None = None) -> TestCase:
    """Make a parameterized case concrete for one call site.

    Args:
        case: Case as loaded from its screen test
        overrides: Call-site args, winning over the case's defaults

    Returns:
        The same case when there is nothing to substitute, otherwise a new
        case with substituted steps
    """
    effective = {**(case.args or {}), **(overrides or {})}
    if not effective:
        return case

    steps = [substitute_step(step, effective) for step in case.steps]
    return dataclasses.replace(case, steps=steps)
