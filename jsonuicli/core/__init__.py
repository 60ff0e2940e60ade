"""Core modules for jsonui."""

from jsonuicli.core.actions import ActionExecutor
from jsonuicli.core.assertions import AssertionExecutor
from jsonuicli.core.config import BrowserConfig, ConfigLoader, RunnerConfig
from jsonuicli.core.errors import (
    ActionError,
    AssertionFailure,
    ElementNotFoundError,
    MissingFieldError,
    StepError,
    UnknownOperationError,
)
from jsonuicli.core.executor import SuiteResult, TestExecutor, TestResult
from jsonuicli.core.loader import (
    CaseNotFoundError,
    NotAScreenTestError,
    ParseError,
    ReferenceResolutionError,
    ResolutionContext,
    TestFileNotFoundError,
    TestLoader,
)
from jsonuicli.core.substitution import substitute

__all__ = [
    "ActionError",
    "ActionExecutor",
    "AssertionExecutor",
    "AssertionFailure",
    "BrowserConfig",
    "CaseNotFoundError",
    "ConfigLoader",
    "ElementNotFoundError",
    "MissingFieldError",
    "NotAScreenTestError",
    "ParseError",
    "ReferenceResolutionError",
    "ResolutionContext",
    "RunnerConfig",
    "StepError",
    "SuiteResult",
    "TestExecutor",
    "TestFileNotFoundError",
    "TestLoader",
    "TestResult",
    "UnknownOperationError",
    "substitute",
]
