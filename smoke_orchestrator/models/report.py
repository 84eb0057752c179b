"""Pydantic models for the Playwright JSON reporter output.

Only the fields the parser reads are modelled; everything else in the report
is ignored. Every field has a default so partial reports still validate.
"""

from collections.abc import Sequence

from pydantic import BaseModel, Field


class ReportError(BaseModel):
    """Error attached to a failed attempt."""

    message: str = ""


class ReportAttempt(BaseModel):
    """One attempt (``results[]`` entry) of a test."""

    status: str = ""
    duration: float = 0
    error: ReportError | None = None


class ReportTest(BaseModel):
    """A test entry of a spec, one per project."""

    results: Sequence[ReportAttempt] = Field(default_factory=list)


class ReportSpec(BaseModel):
    """A spec (single ``test()`` block)."""

    title: str = "Unknown test"
    tests: Sequence[ReportTest] = Field(default_factory=list)


class ReportSuite(BaseModel):
    """A file or describe-block suite, possibly nested."""

    title: str = ""
    specs: Sequence[ReportSpec] = Field(default_factory=list)
    suites: Sequence["ReportSuite"] = Field(default_factory=list)

    def flatten_specs(self) -> list[ReportSpec]:
        """Return own specs followed by those of every nested suite."""
        specs = list(self.specs)
        for child in self.suites:
            specs.extend(child.flatten_specs())
        return specs


class PlaywrightReport(BaseModel):
    """Top level of the JSON report."""

    suites: Sequence[ReportSuite] = Field(default_factory=list)
