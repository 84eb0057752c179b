"""Render run results as JUnit XML for CI systems."""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from xml.dom import minidom

from smoke_orchestrator.errors import strip_ansi, truncate
from smoke_orchestrator.models.result import RunResult, SuiteResult, TestResult

log = logging.getLogger(__name__)

DEFAULT_SUITE_NAME = "Smoke Tests"
CLASSNAME_PREFIX = "smoke."
FAILURE_MESSAGE_MAX_LENGTH = 200

_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def format_time(milliseconds: int) -> str:
    """Milliseconds to seconds with three decimals."""
    return f"{milliseconds / 1000:.3f}"


def sanitize(message: str) -> str:
    """Strip ANSI codes and characters XML cannot carry."""
    return _INVALID_XML_CHARS.sub("", strip_ansi(message))


class JUnitExporter:
    """Builds ``<testsuites><testsuite><testcase>`` documents.

    Counters are copied from the result model, never recounted here.
    """

    def __init__(self, suite_name: str = DEFAULT_SUITE_NAME):
        self.suite_name = suite_name

    def generate(self, results: RunResult) -> str:
        """Return the JUnit XML document for a run."""
        doc = minidom.Document()
        summary = results.summary

        root = doc.createElement("testsuites")
        root.setAttribute("name", self.suite_name)
        root.setAttribute("tests", str(summary.total))
        root.setAttribute("failures", str(summary.failed))
        root.setAttribute("errors", "0")
        root.setAttribute("skipped", str(summary.skipped))
        root.setAttribute("time", format_time(summary.duration))
        root.setAttribute("timestamp", _timestamp(results.ran_at))
        doc.appendChild(root)

        for suite_id, suite in results.suites.items():
            root.appendChild(self._testsuite(doc, suite_id, suite))

        return doc.toprettyxml(indent="  ", encoding="UTF-8").decode("utf-8")

    def write_to_file(self, results: RunResult, path: Path) -> bool:
        """Write the report, creating parent directories.

        Returns:
            False when the file could not be written

        """
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.generate(results), encoding="utf-8")
        except OSError as e:
            log.warning("Failed to write JUnit report to %s: %s", path, e)
            return False
        log.info("JUnit report written to %s", path)
        return True

    def _testsuite(
        self, doc: minidom.Document, suite_id: str, suite: SuiteResult
    ) -> minidom.Element:
        element = doc.createElement("testsuite")
        element.setAttribute("name", suite.title or suite_id)
        element.setAttribute("tests", str(suite.passed + suite.failed + suite.skipped))
        element.setAttribute("failures", str(suite.failed))
        element.setAttribute("errors", "0")
        element.setAttribute("skipped", str(suite.skipped))
        element.setAttribute("time", format_time(suite.duration))

        for test in suite.tests:
            element.appendChild(self._testcase(doc, suite_id, test))
        return element

    def _testcase(
        self, doc: minidom.Document, suite_id: str, test: TestResult
    ) -> minidom.Element:
        element = doc.createElement("testcase")
        element.setAttribute("name", test.title)
        element.setAttribute("classname", CLASSNAME_PREFIX + suite_id)
        element.setAttribute("time", format_time(test.duration))

        if test.status == "failed":
            detail = sanitize(test.error or "")
            failure = doc.createElement("failure")
            failure.setAttribute(
                "message",
                truncate(detail, FAILURE_MESSAGE_MAX_LENGTH) or "Test failed",
            )
            failure.setAttribute("type", "AssertionError")
            if detail:
                # A CDATA section cannot contain its own terminator.
                failure.appendChild(
                    doc.createCDATASection(detail.replace("]]>", "]]&gt;"))
                )
            element.appendChild(failure)
        elif test.status == "skipped":
            skipped = doc.createElement("skipped")
            skipped.setAttribute("message", "Test was skipped")
            element.appendChild(skipped)

        return element


def _timestamp(ran_at: int) -> str:
    moment = (
        datetime.fromtimestamp(ran_at, tz=timezone.utc)
        if ran_at
        else datetime.now(timezone.utc)
    )
    return moment.isoformat(timespec="seconds")
