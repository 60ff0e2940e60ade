"""Test file data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Union

if TYPE_CHECKING:
    from jsonuicli.core.loader import ResolutionContext

PlatformTarget = Union[str, list[str]]


def platform_includes(target: PlatformTarget | None, platform: str) -> bool:
    """Check whether a platform restriction allows the given platform.

    Args:
        target: Platform restriction from a test or case ("web", "all", ["ios", "web"])
        platform: Platform the run is configured for

    Returns:
        True if the test or case should run on this platform
    """
    if not target:
        return True
    if isinstance(target, str):
        return target == platform or target == "all"
    return platform in target


@dataclass
class Step:
    """A single action or assertion."""

    action: str | None = None
    assertion: str | None = None  # JSON key is "assert"

    # Targets
    id: str | None = None
    ids: list[str] | None = None

    # Content payloads
    text: str | None = None
    value: str | None = None
    contains: str | None = None
    equals: Any = None

    # Gestures
    direction: str | None = None
    amount: float | None = None
    duration: int | None = None  # Milliseconds

    # Time budgets (milliseconds)
    timeout: int | None = None
    ms: int | None = None

    # Selection
    button: str | None = None
    label: str | None = None
    index: int | None = None

    # Screenshot naming
    name: str | None = None
    path: str | None = None

    # Raw data for debugging
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_action(self) -> bool:
        return self.action is not None

    @property
    def is_assertion(self) -> bool:
        return self.assertion is not None

    @property
    def kind(self) -> str | None:
        """Operation name, whichever role the step plays."""
        return self.action if self.action is not None else self.assertion


@dataclass
class TestCase:
    """A named sequence of steps inside a screen test."""

    __test__ = False

    name: str
    steps: list[Step] = field(default_factory=list)
    description: str | None = None
    skip: bool = False
    platform: PlatformTarget | None = None
    initial_state: dict[str, Any] | None = None
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class TestSource:
    """Layout a screen test was written against."""

    __test__ = False

    layout: str
    spec: str | None = None


@dataclass
class TestMetadata:
    """Descriptive metadata shared by both test kinds."""

    __test__ = False

    name: str
    description: str | None = None
    generated_at: str | None = None
    generated_by: str | None = None
    tags: list[str] = field(default_factory=list)


@dataclass
class ScreenTest:
    """Test scoped to one UI surface, with one or more cases."""

    source: TestSource
    metadata: TestMetadata
    cases: list[TestCase]
    platform: PlatformTarget | None = None
    initial_state: dict[str, Any] | None = None
    setup: list[Step] = field(default_factory=list)
    teardown: list[Step] = field(default_factory=list)


@dataclass
class FileReferenceStep:
    """Flow step delegating to cases of another screen test file."""

    file: str
    case: str | None = None
    cases: list[str] = field(default_factory=list)
    args: dict[str, Any] = field(default_factory=dict)
    screen: str | None = None


@dataclass
class BlockStep:
    """Named group of plain steps run as one unit."""

    block: str
    steps: list[Step] = field(default_factory=list)
    screen: str | None = None


@dataclass
class InlineStep:
    """Plain step written directly in a flow."""

    step: Step
    screen: str | None = None


FlowStep = Union[FileReferenceStep, BlockStep, InlineStep]


@dataclass
class FlowSource:
    """Layout a flow touches (informational only)."""

    layout: str
    spec: str | None = None
    alias: str | None = None


@dataclass
class Checkpoint:
    """Named marker after a top-level flow step (1-based)."""

    name: str
    after_step: int
    screenshot: bool = False


@dataclass
class FlowTest:
    """Ordered journey across one or more screens."""

    metadata: TestMetadata
    steps: list[FlowStep]
    sources: list[FlowSource] = field(default_factory=list)
    platform: PlatformTarget | None = None
    initial_state: dict[str, Any] | None = None
    setup: list[FlowStep] = field(default_factory=list)
    teardown: list[FlowStep] = field(default_factory=list)
    checkpoints: list[Checkpoint] = field(default_factory=list)


@dataclass
class LoadedTest:
    """A parsed test file of either kind."""

    kind: Literal["screen", "flow"]
    test: ScreenTest | FlowTest
    file_path: Path | None = None

    @property
    def name(self) -> str:
        return self.test.metadata.name

    @property
    def context(self) -> ResolutionContext | None:
        """Resolution context for this file's own relative references."""
        if self.file_path is None:
            return None

        from jsonuicli.core.loader import ResolutionContext

        return ResolutionContext(base_dir=self.file_path.parent)
