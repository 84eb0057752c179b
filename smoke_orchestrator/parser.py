"""Parse the runner's JSON report into suite-keyed results.

The parser is tolerant: anything it cannot read yields an empty result with
``error`` set and a bounded excerpt of the input, never an exception.
"""

import json
import logging
from collections.abc import Mapping

from pydantic import ValidationError

from smoke_orchestrator.errors import truncate
from smoke_orchestrator.models.report import PlaywrightReport, ReportSpec, ReportSuite
from smoke_orchestrator.models.result import (
    RunResult,
    SuiteResult,
    TestResult,
    TestStatus,
)
from smoke_orchestrator.naming import slugify
from smoke_orchestrator.registry import resolve_suite_id

log = logging.getLogger(__name__)

PARSE_ERROR_MESSAGE = "Failed to parse Playwright output."
RAW_EXCERPT_LENGTH = 2000
LAUNCH_FAILURE_SIGNATURE = "browserType.launch"

# Attempt statuses that count as a failure of the test.
FAILED_STATUSES = frozenset({"failed", "timedOut", "interrupted"})

_SEVERITY: Mapping[TestStatus, int] = {"passed": 0, "skipped": 1, "failed": 2}


def parse_report(output: str) -> RunResult:
    """Parse a JSON report into a RunResult.

    Every top-level runner suite becomes one SuiteResult; nested suites are
    flattened into it. Titles are mapped back to suite ids, falling back to a
    slug of the title.
    """
    try:
        data = json.loads(output) if output.strip() else None
    except json.JSONDecodeError:
        data = None

    if not data or not isinstance(data, dict):
        return parse_failure(output)

    try:
        report = PlaywrightReport.model_validate(data)
    except ValidationError as e:
        log.warning("Report does not match the expected schema: %s", e)
        return parse_failure(output)

    suites: dict[str, SuiteResult] = {}
    for report_suite in report.suites:
        suite_id = resolve_suite_id(report_suite.title) or slugify(
            report_suite.title or "unknown"
        )
        parsed = parse_suite(report_suite, title=report_suite.title or suite_id)
        if suite_id in suites:
            # Same suite reported twice (file and describe block): keep both.
            existing = suites[suite_id]
            parsed = SuiteResult(
                title=existing.title, tests=[*existing.tests, *parsed.tests]
            )
        suites[suite_id] = parsed

    return RunResult(suites=suites)


def parse_failure(output: str) -> RunResult:
    """Empty result describing unreadable runner output."""
    return RunResult(
        error=PARSE_ERROR_MESSAGE,
        raw=truncate(output, RAW_EXCERPT_LENGTH),
    )


def parse_suite(suite: ReportSuite, title: str) -> SuiteResult:
    """Flatten a runner suite and all its children into one SuiteResult."""
    return SuiteResult(
        title=title,
        tests=[parse_spec(spec) for spec in suite.flatten_specs()],
    )


def parse_spec(spec: ReportSpec) -> TestResult:
    """Collapse every attempt of a spec into one TestResult.

    Durations of all attempts are summed. The status is the most severe seen
    across attempts (failed > skipped > passed), so a test that failed once and
    then passed on a runner retry is reported as failed.
    """
    status: TestStatus = "passed"
    duration = 0.0
    error: str | None = None

    for test in spec.tests:
        for attempt in test.results:
            duration += attempt.duration
            attempt_status: TestStatus
            if attempt.status in FAILED_STATUSES:
                attempt_status = "failed"
                if attempt.error is not None and attempt.error.message:
                    error = attempt.error.message
            elif attempt.status == "skipped":
                attempt_status = "skipped"
            else:
                attempt_status = "passed"
            if _SEVERITY[attempt_status] > _SEVERITY[status]:
                status = attempt_status

    return TestResult(
        title=spec.title,
        status=status,
        duration=round(duration),
        error=error if status == "failed" else None,
    )


def collapse_suites(
    suites: Mapping[str, SuiteResult], target_id: str
) -> dict[str, SuiteResult]:
    """Merge every parsed suite into one keyed by ``target_id``.

    Used for single-suite runs whose runner titles do not map to the
    requested id (custom or multi-file suites).
    """
    tests = [test for suite in suites.values() for test in suite.tests]
    return {target_id: SuiteResult(title=target_id, tests=tests)}


def merge_suite_result(
    previous: RunResult | None, current: RunResult, suite_id: str
) -> RunResult:
    """Replace one suite of a previously persisted result.

    Other suites of ``previous`` are kept; run metadata comes from
    ``current``. The summary follows from the merged suites.
    """
    suites = dict(previous.suites) if previous is not None else {}
    suites[suite_id] = current.suites.get(suite_id, SuiteResult(title=suite_id))
    return current.model_copy(update={"suites": suites})


def find_launch_failure(result: RunResult) -> str | None:
    """Return the first failed test error saying the browser could not start."""
    for suite in result.suites.values():
        for test in suite.tests:
            if (
                test.status == "failed"
                and test.error is not None
                and LAUNCH_FAILURE_SIGNATURE in test.error
            ):
                return test.error
    return None
