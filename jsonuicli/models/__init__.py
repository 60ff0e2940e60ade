"""Data models for jsonui."""

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
    platform_includes,
)

__all__ = [
    "BlockStep",
    "Checkpoint",
    "FileReferenceStep",
    "FlowSource",
    "FlowStep",
    "FlowTest",
    "InlineStep",
    "LoadedTest",
    "ScreenTest",
    "Step",
    "TestCase",
    "TestMetadata",
    "TestSource",
    "platform_includes",
]
