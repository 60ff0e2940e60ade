"""JSON test file loader and flow composer."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jsonuicli.core.substitution import substitute
from jsonuicli.models.test import (
    BlockStep,
    Checkpoint,
    FileReferenceStep,
    FlowSource,
    FlowStep,
    FlowTest,
    InlineStep,
    LoadedTest,
    ScreenTest,
    Step,
    TestCase,
    TestMetadata,
    TestSource,
)

logger = logging.getLogger("jsonui.loader")

TEST_FILE_SUFFIX = ".test.json"


class ParseError(Exception):
    """Error parsing test file."""

    pass


class ReferenceResolutionError(Exception):
    """Flow file reference could not be resolved."""

    pass


class TestFileNotFoundError(ReferenceResolutionError):
    """No candidate path exists for a file reference."""

    __test__ = False

    def __init__(self, file_ref: str):
        self.file_ref = file_ref
        super().__init__(f"Test file not found: {file_ref}")


class CaseNotFoundError(ReferenceResolutionError):
    """Referenced case does not exist in the resolved screen test."""

    def __init__(self, case_name: str, file_ref: str):
        self.case_name = case_name
        self.file_ref = file_ref
        super().__init__(f"Test case '{case_name}' not found in file: {file_ref}")


class NotAScreenTestError(ReferenceResolutionError):
    """File reference resolved to something other than a screen test."""

    def __init__(self, file_ref: str):
        self.file_ref = file_ref
        super().__init__(f"File reference must point to a screen test: {file_ref}")


@dataclass(frozen=True)
class ResolutionContext:
    """Where a flow's relative file references are resolved from."""

    base_dir: Path

    def candidates(self, file_ref: str) -> list[Path]:
        """Candidate paths in priority order.

        A sibling ``screens/`` directory (next to the flow's directory) is
        searched before the flow's own directory.
        """
        screens = self.base_dir.parent / "screens"
        return [
            screens / file_ref / f"{file_ref}{TEST_FILE_SUFFIX}",
            screens / file_ref / f"{file_ref}.json",
            screens / f"{file_ref}{TEST_FILE_SUFFIX}",
            screens / f"{file_ref}.json",
            self.base_dir / f"{file_ref}{TEST_FILE_SUFFIX}",
            self.base_dir / f"{file_ref}.json",
            self.base_dir / file_ref,
        ]


class TestLoader:
    """Load JSON test files into LoadedTest objects."""

    __test__ = False

    STEP_FIELDS = {
        "id": "id",
        "ids": "ids",
        "text": "text",
        "value": "value",
        "contains": "contains",
        "equals": "equals",
        "direction": "direction",
        "amount": "amount",
        "duration": "duration",
        "timeout": "timeout",
        "ms": "ms",
        "button": "button",
        "label": "label",
        "index": "index",
        "name": "name",
        "path": "path",
    }

    # Keys that make a flow step something other than a plain step
    FLOW_ONLY_KEYS = {"file", "case", "cases", "args", "block", "steps"}

    @classmethod
    def load_from_file(cls, path: Path | str) -> LoadedTest:
        """Load a test file.

        Args:
            path: Path to a .test.json file

        Returns:
            Parsed LoadedTest, remembering its absolute path

        Raises:
            ParseError: If the file is missing or invalid
        """
        absolute = Path(path).resolve()
        try:
            content = absolute.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ParseError(f"Test file not found: {absolute}")
        except OSError as e:
            raise ParseError(f"Cannot read test file '{absolute}': {e}")

        logger.debug("Loading test file: %s", absolute)
        return cls.load_from_string(content, absolute)

    @classmethod
    def load_from_string(cls, content: str, file_path: Path | str | None = None) -> LoadedTest:
        """Load a test from JSON text.

        Args:
            content: JSON document
            file_path: Path used in error messages and for resolving file references

        Returns:
            Parsed LoadedTest
        """
        path = Path(file_path) if file_path else None
        label = str(path) if path else "<string>"

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in '{label}': {e}")

        if not isinstance(data, dict):
            raise ParseError(f"Test file '{label}' must contain a JSON object")

        test_type = data.get("type")
        if not test_type:
            raise ParseError(f"Test file '{label}' is missing 'type' field")

        if test_type == "screen":
            return LoadedTest(kind="screen", test=cls._parse_screen_test(data, label), file_path=path)
        if test_type == "flow":
            return LoadedTest(kind="flow", test=cls._parse_flow_test(data, label), file_path=path)

        raise ParseError(f"Unknown test type '{test_type}' in file '{label}'")

    @classmethod
    def load_from_directory(cls, path: Path | str) -> list[LoadedTest]:
        """Load every test file under a directory.

        The first invalid file stops the load.
        """
        files = cls.find_test_files(path)
        logger.info("Found %d test file(s) in %s", len(files), path)
        return [cls.load_from_file(file) for file in files]

    @classmethod
    def find_test_files(cls, path: Path | str) -> list[Path]:
        """Find all *.test.json files recursively, sorted by path."""
        root = Path(path).resolve()
        if not root.is_dir():
            raise ParseError(f"Test directory not found: {root}")
        return sorted(p for p in root.rglob(f"*{TEST_FILE_SUFFIX}") if p.is_file())

    # MARK: - Screen tests

    @classmethod
    def _parse_screen_test(cls, data: dict[str, Any], label: str) -> ScreenTest:
        """Validate and parse a screen test."""
        source = cls._parse_source(data.get("source"), label)
        metadata = cls._parse_metadata(data.get("metadata"), "Screen", label)

        raw_cases = data.get("cases")
        if not isinstance(raw_cases, list) or not raw_cases:
            raise ParseError(f"Screen test '{label}' has no test cases")

        cases = [cls._parse_case(item, label) for item in raw_cases]

        return ScreenTest(
            source=source,
            metadata=metadata,
            cases=cases,
            platform=data.get("platform"),
            initial_state=data.get("initialState"),
            setup=cls._parse_steps(data.get("setup"), label),
            teardown=cls._parse_steps(data.get("teardown"), label),
        )

    @classmethod
    def _parse_source(cls, data: Any, label: str) -> TestSource:
        if not data:
            raise ParseError(f"Screen test '{label}' is missing 'source' field")
        if isinstance(data, str):
            return TestSource(layout=data)
        if not isinstance(data, dict) or not data.get("layout"):
            raise ParseError(f"Screen test '{label}' is missing 'source.layout' field")
        return TestSource(layout=data["layout"], spec=data.get("spec"))

    @classmethod
    def _parse_metadata(cls, data: Any, kind: str, label: str) -> TestMetadata:
        if not isinstance(data, dict):
            raise ParseError(f"{kind} test '{label}' is missing 'metadata' field")
        if not data.get("name"):
            raise ParseError(f"{kind} test '{label}' is missing 'metadata.name' field")

        return TestMetadata(
            name=str(data["name"]),
            description=data.get("description"),
            generated_at=data.get("generatedAt"),
            generated_by=data.get("generatedBy"),
            tags=list(data.get("tags") or []),
        )

    @classmethod
    def _parse_case(cls, data: Any, label: str) -> TestCase:
        if not isinstance(data, dict):
            raise ParseError(f"Invalid test case in '{label}': {data}")
        if not data.get("name"):
            raise ParseError(f"Test case in '{label}' is missing 'name' field")

        name = str(data["name"])
        if not isinstance(data.get("steps"), list):
            raise ParseError(f"Test case '{name}' in '{label}' is missing 'steps' field")

        args = data.get("args") or {}
        if not isinstance(args, dict):
            raise ParseError(f"Test case '{name}' in '{label}' has invalid 'args': {args}")

        return TestCase(
            name=name,
            steps=cls._parse_steps(data["steps"], label),
            description=data.get("description"),
            skip=bool(data.get("skip", False)),
            platform=data.get("platform"),
            initial_state=data.get("initialState"),
            args=args,
        )

    @classmethod
    def _parse_steps(cls, data: Any, label: str) -> list[Step]:
        """Parse a list of plain steps."""
        if data is None:
            return []
        if not isinstance(data, list):
            raise ParseError(f"Steps in '{label}' must be a list")
        return [cls._parse_step(item, label) for item in data]

    @classmethod
    def _parse_step(cls, data: Any, label: str) -> Step:
        """Parse a single step.

        Action and assertion fields are not checked here; a step with neither
        or both fails when it is dispatched.
        """
        if not isinstance(data, dict):
            raise ParseError(f"Invalid step in '{label}': {data}")

        step = Step(action=data.get("action"), assertion=data.get("assert"), raw=data)
        for key, attr in cls.STEP_FIELDS.items():
            if key in data:
                setattr(step, attr, data[key])

        if step.ids is not None and not isinstance(step.ids, list):
            step.ids = [step.ids]

        return step

    # MARK: - Flow tests

    @classmethod
    def _parse_flow_test(cls, data: dict[str, Any], label: str) -> FlowTest:
        """Validate and parse a flow test."""
        metadata = cls._parse_metadata(data.get("metadata"), "Flow", label)

        raw_steps = data.get("steps")
        if not isinstance(raw_steps, list) or not raw_steps:
            raise ParseError(f"Flow test '{label}' has no steps")

        return FlowTest(
            metadata=metadata,
            steps=cls._parse_flow_steps(raw_steps, label),
            sources=[cls._parse_flow_source(item, label) for item in data.get("sources") or []],
            platform=data.get("platform"),
            initial_state=data.get("initialState"),
            setup=cls._parse_flow_steps(data.get("setup"), label),
            teardown=cls._parse_flow_steps(data.get("teardown"), label),
            checkpoints=[cls._parse_checkpoint(item, label) for item in data.get("checkpoints") or []],
        )

    @classmethod
    def _parse_flow_source(cls, data: Any, label: str) -> FlowSource:
        if isinstance(data, str):
            return FlowSource(layout=data)
        if not isinstance(data, dict) or not data.get("layout"):
            raise ParseError(f"Invalid source in flow '{label}': {data}")
        return FlowSource(layout=data["layout"], spec=data.get("spec"), alias=data.get("alias"))

    @classmethod
    def _parse_checkpoint(cls, data: Any, label: str) -> Checkpoint:
        if not isinstance(data, dict) or not data.get("name") or "afterStep" not in data:
            raise ParseError(f"Checkpoint in '{label}' requires 'name' and 'afterStep': {data}")
        try:
            after_step = int(data["afterStep"])
        except (TypeError, ValueError):
            raise ParseError(f"Checkpoint '{data['name']}' in '{label}' has invalid 'afterStep'")
        return Checkpoint(
            name=str(data["name"]),
            after_step=after_step,
            screenshot=bool(data.get("screenshot", False)),
        )

    @classmethod
    def _parse_flow_steps(cls, data: Any, label: str) -> list[FlowStep]:
        if data is None:
            return []
        if not isinstance(data, list):
            raise ParseError(f"Flow steps in '{label}' must be a list")
        return [cls._parse_flow_step(item, label) for item in data]

    @classmethod
    def _parse_flow_step(cls, data: Any, label: str) -> FlowStep:
        """Classify a flow step as file reference, block or inline step."""
        if not isinstance(data, dict):
            raise ParseError(f"Invalid flow step in '{label}': {data}")

        screen = data.get("screen")
        is_block = "block" in data or "steps" in data
        is_inline = "action" in data or "assert" in data

        if "file" in data:
            if is_block or is_inline:
                raise ParseError(
                    f"Flow step referencing '{data['file']}' in '{label}' "
                    "cannot also define 'block', 'steps', 'action' or 'assert'"
                )
            return cls._parse_file_reference(data, label)

        if is_block:
            if is_inline:
                raise ParseError(
                    f"Block step in '{label}' cannot also define 'action' or 'assert'"
                )
            return cls._parse_block(data, label)

        return InlineStep(step=cls._parse_step(data, label), screen=screen)

    @classmethod
    def _parse_file_reference(cls, data: dict[str, Any], label: str) -> FileReferenceStep:
        file_ref = data["file"]
        if not isinstance(file_ref, str) or not file_ref:
            raise ParseError(f"Flow step in '{label}' has invalid 'file': {file_ref}")

        cases = data.get("cases") or []
        if not isinstance(cases, list):
            raise ParseError(f"Flow step referencing '{file_ref}' in '{label}' has invalid 'cases'")

        args = data.get("args") or {}
        if not isinstance(args, dict):
            raise ParseError(f"Flow step referencing '{file_ref}' in '{label}' has invalid 'args'")

        return FileReferenceStep(
            file=file_ref,
            case=data.get("case"),
            cases=[str(name) for name in cases],
            args=args,
            screen=data.get("screen"),
        )

    @classmethod
    def _parse_block(cls, data: dict[str, Any], label: str) -> BlockStep:
        name = data.get("block")
        if not name:
            raise ParseError(f"Block step in '{label}' is missing 'block' name")

        raw_steps = data.get("steps")
        if not isinstance(raw_steps, list) or not raw_steps:
            raise ParseError(f"Block '{name}' in '{label}' has no steps")

        for item in raw_steps:
            if isinstance(item, dict) and cls.FLOW_ONLY_KEYS & item.keys():
                raise ParseError(
                    f"Block '{name}' in '{label}' cannot contain nested blocks or file references"
                )

        return BlockStep(
            block=str(name),
            steps=cls._parse_steps(raw_steps, label),
            screen=data.get("screen"),
        )

    # MARK: - File reference resolution

    @classmethod
    def resolve_file_reference_path(
        cls, file_ref: str, context: ResolutionContext | None
    ) -> Path:
        """Find the file a flow step's ``file`` refers to.

        Raises:
            ReferenceResolutionError: If no context is available
            TestFileNotFoundError: If no candidate exists
        """
        if context is None:
            raise ReferenceResolutionError(
                f"Base path not set for file reference resolution: {file_ref}"
            )

        for candidate in context.candidates(file_ref):
            if candidate.is_file():
                logger.debug("Resolved file reference '%s' -> %s", file_ref, candidate)
                return candidate

        raise TestFileNotFoundError(file_ref)

    @classmethod
    def resolve_file_reference(cls, file_ref: str, context: ResolutionContext | None) -> ScreenTest:
        """Load the screen test a file reference points to."""
        loaded = cls.load_from_file(cls.resolve_file_reference_path(file_ref, context))
        if loaded.kind != "screen":
            raise NotAScreenTestError(file_ref)
        return loaded.test  # type: ignore[return-value]

    @classmethod
    def resolve_file_reference_cases(
        cls, step: FileReferenceStep, context: ResolutionContext | None
    ) -> list[TestCase]:
        """Resolve a file reference step to concrete, substituted cases.

        Args:
            step: Flow step with ``file`` and optional ``case``/``cases``/``args``
            context: Resolution context of the flow holding the step

        Returns:
            Selected cases in order, with the step's args substituted
        """
        screen_test = cls.resolve_file_reference(step.file, context)

        if not step.case and not step.cases:
            return [substitute(case, step.args) for case in screen_test.cases]

        names = [step.case] if step.case else step.cases
        by_name: dict[str, TestCase] = {}
        for case in screen_test.cases:
            by_name.setdefault(case.name, case)

        selected: list[TestCase] = []
        for name in names:
            if name not in by_name:
                raise CaseNotFoundError(name, step.file)
            selected.append(substitute(by_name[name], step.args))

        return selected
