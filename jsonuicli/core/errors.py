"""Errors raised while dispatching steps."""

from __future__ import annotations


class StepError(Exception):
    """Step is malformed and cannot be dispatched."""

    pass


class MissingFieldError(StepError):
    """Step lacks a field its operation requires."""

    def __init__(self, operation: str, *fields: str, qualifier: str = ""):
        self.operation = operation
        self.fields = fields
        names = " or ".join(f"'{name}'" for name in fields)
        super().__init__(f"{operation} requires {qualifier}{names}")


class UnknownOperationError(StepError):
    """Step names an action or assertion that does not exist."""

    def __init__(self, role: str, operation: str):
        self.role = role
        self.operation = operation
        super().__init__(f"Unknown {role}: {operation}")


class ActionError(Exception):
    """Action could not be carried out."""

    pass


class AssertionFailure(Exception):
    """Expectation on the UI was not met."""

    pass


class ElementNotFoundError(ActionError):
    """Element never became visible within the timeout."""

    def __init__(self, element_id: str, timeout: int, attribute: str = "data-testid"):
        self.element_id = element_id
        self.timeout = timeout
        super().__init__(f"Element '{element_id}' not found by {attribute} within {timeout}ms")
