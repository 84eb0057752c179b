"""Models for test execution results."""

from collections.abc import Mapping, Sequence
from typing import Literal

from pydantic import Field, computed_field

from smoke_orchestrator.models.base import Model

type TestStatus = Literal["passed", "failed", "skipped"]


class TestResult(Model):
    """Outcome of one logical test, across all of its attempts."""

    __test__ = False

    title: str
    status: TestStatus
    duration: int = Field(default=0, description="Summed attempt duration (ms)")
    error: str | None = None


class SuiteResult(Model):
    """Tests of one top-level suite, flattened.

    Counters are tallies over ``tests`` so they always agree with it.
    """

    title: str
    tests: Sequence[TestResult] = Field(default_factory=list)

    @computed_field
    @property
    def passed(self) -> int:
        return sum(1 for test in self.tests if test.status == "passed")

    @computed_field
    @property
    def failed(self) -> int:
        return sum(1 for test in self.tests if test.status == "failed")

    @computed_field
    @property
    def skipped(self) -> int:
        return sum(1 for test in self.tests if test.status == "skipped")

    @computed_field
    @property
    def duration(self) -> int:
        return sum(test.duration for test in self.tests)

    @computed_field
    @property
    def status(self) -> Literal["passed", "failed"]:
        return "failed" if self.failed > 0 else "passed"


class RunSummary(Model):
    """Aggregate counters over every suite of a run."""

    passed: int = 0
    failed: int = 0
    skipped: int = 0
    duration: int = 0

    @computed_field
    @property
    def total(self) -> int:
        return self.passed + self.failed + self.skipped

    @classmethod
    def from_suites(cls, suites: Sequence[SuiteResult]) -> "RunSummary":
        """Sum the counters of the given suites."""
        return cls(
            passed=sum(suite.passed for suite in suites),
            failed=sum(suite.failed for suite in suites),
            skipped=sum(suite.skipped for suite in suites),
            duration=sum(suite.duration for suite in suites),
        )


class StructuredError(Model):
    """Classified runner failure with an actionable hint."""

    code: str
    message: str
    hint: str
    raw: str = ""


class RunResult(Model):
    """Result of one runner invocation, or the merge of several."""

    suites: Mapping[str, SuiteResult] = Field(default_factory=dict)
    ran_at: int = Field(default=0, description="Unix timestamp of the run")
    exit_code: int | None = None
    error: str | None = None
    raw: str | None = Field(
        default=None, description="Excerpt of unparseable runner output"
    )
    diagnosis: StructuredError | None = None

    @computed_field
    @property
    def summary(self) -> RunSummary:
        return RunSummary.from_suites(list(self.suites.values()))

    @property
    def has_failures(self) -> bool:
        return self.error is not None or self.summary.failed > 0
