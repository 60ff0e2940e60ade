"""Test report generation."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any
from xml.etree.ElementTree import Element, SubElement, tostring

from jsonuicli.core.executor import SuiteResult


class ReportGenerator:
    """Generate JSON and JUnit XML reports from suite results."""

    def __init__(self, output_dir: Path):
        """Initialize generator.

        Args:
            output_dir: Directory to write reports
        """
        self._output_dir = Path(output_dir)
        self._output_dir.mkdir(parents=True, exist_ok=True)

    def generate_json(self, suites: list[SuiteResult]) -> Path:
        """Generate JSON report.

        Args:
            suites: Results of every suite in the run

        Returns:
            Path to generated report.json
        """
        data = self._results_to_dict(suites)

        path = self._output_dir / "report.json"
        with open(path, "w") as f:
            json.dump(data, f, indent=2)

        return path

    def generate_junit(self, suites: list[SuiteResult], path: Path | None = None) -> Path:
        """Generate JUnit XML report.

        Args:
            suites: Results of every suite in the run
            path: Output path (defaults to junit.xml in the output directory)

        Returns:
            Path to generated XML file
        """
        path = Path(path) if path else self._output_dir / "junit.xml"

        root = Element(
            "testsuites",
            {
                "tests": str(sum(len(s.results) for s in suites)),
                "failures": str(sum(s.failed_count for s in suites)),
                "time": f"{sum(s.total_duration_ms for s in suites) / 1000:.3f}",
            },
        )

        for suite in suites:
            testsuite = SubElement(
                root,
                "testsuite",
                {
                    "name": suite.suite_name,
                    "tests": str(len(suite.results)),
                    "failures": str(suite.failed_count),
                    "skipped": str(sum(1 for r in suite.results if r.skipped)),
                    "time": f"{suite.total_duration_ms / 1000:.3f}",
                },
            )

            for result in suite.results:
                testcase = SubElement(
                    testsuite,
                    "testcase",
                    {
                        "classname": suite.suite_name,
                        "name": result.case_name,
                        "time": f"{result.duration_ms / 1000:.3f}",
                    },
                )
                if result.skipped:
                    SubElement(testcase, "skipped")
                elif not result.passed:
                    failure = SubElement(testcase, "failure", {"message": result.error or "Failed"})
                    failure.text = result.error or ""

        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(b'<?xml version="1.0" encoding="UTF-8"?>\n')
            f.write(tostring(root))

        return path

    def _results_to_dict(self, suites: list[SuiteResult]) -> dict[str, Any]:
        """Convert suite results to a JSON-serializable dict."""
        return {
            "timestamp": datetime.now().isoformat(timespec="seconds"),
            "summary": {
                "suites": len(suites),
                "total": sum(len(s.results) for s in suites),
                "passed": sum(s.passed_count for s in suites),
                "failed": sum(s.failed_count for s in suites),
                "skipped": sum(1 for s in suites for r in s.results if r.skipped),
            },
            "suites": [
                {
                    "name": suite.suite_name,
                    "status": "passed" if suite.all_passed else "failed",
                    "duration_ms": suite.total_duration_ms,
                    "passed": suite.passed_count,
                    "failed": suite.failed_count,
                    "results": [
                        {
                            "test": r.test_name,
                            "case": r.case_name,
                            "status": "skipped" if r.skipped else ("passed" if r.passed else "failed"),
                            "duration_ms": r.duration_ms,
                            "error": r.error,
                        }
                        for r in suite.results
                    ],
                }
                for suite in suites
            ],
        }
