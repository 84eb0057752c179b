"""Classify raw runner failures into structured errors with hints."""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from smoke_orchestrator.models.result import StructuredError

ERROR_RUNNER_NOT_SETUP = "PLAYWRIGHT_NOT_SETUP"
ERROR_BROWSER_LAUNCH_FAILED = "BROWSER_LAUNCH_FAILED"
ERROR_CONFIG_MISSING = "CONFIG_MISSING"
ERROR_INVALID_SUITE = "INVALID_SUITE"
ERROR_TIMEOUT = "TIMEOUT"
ERROR_UNKNOWN = "UNKNOWN_ERROR"

SETUP_ERROR_CODES = frozenset(
    {ERROR_RUNNER_NOT_SETUP, ERROR_BROWSER_LAUNCH_FAILED, ERROR_CONFIG_MISSING}
)

RAW_MAX_LENGTH = 500

INSTALL_DEPS_HINT = (
    "Install browser dependencies with: npx playwright install --with-deps chromium"
)

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")


@dataclass(frozen=True, kw_only=True)
class ErrorSignature:
    """Substring that identifies a known failure."""

    pattern: str
    code: str
    message: str
    hint: str


# Checked in order; the first match wins, so more specific patterns go first.
ERROR_SIGNATURES: Sequence[ErrorSignature] = (
    ErrorSignature(
        pattern="browserType.launch",
        code=ERROR_BROWSER_LAUNCH_FAILED,
        message="Chromium browser could not be launched.",
        hint=INSTALL_DEPS_HINT,
    ),
    ErrorSignature(
        pattern="Failed to launch",
        code=ERROR_BROWSER_LAUNCH_FAILED,
        message="Chromium browser failed to launch.",
        hint=INSTALL_DEPS_HINT,
    ),
    ErrorSignature(
        pattern="ENOENT",
        code=ERROR_RUNNER_NOT_SETUP,
        message="Playwright or Node.js executable not found.",
        hint="Ensure Node.js is installed, then install dependencies with: npm install",
    ),
    ErrorSignature(
        pattern="Cannot find module",
        code=ERROR_RUNNER_NOT_SETUP,
        message="Playwright dependencies are not installed.",
        hint="Install npm dependencies in the runner directory with: npm install",
    ),
    ErrorSignature(
        pattern="ETIMEDOUT",
        code=ERROR_TIMEOUT,
        message="Test timed out waiting for the page.",
        hint="The site may be slow or unresponsive. Check that it is running.",
    ),
    ErrorSignature(
        pattern="Timeout",
        code=ERROR_TIMEOUT,
        message="Test exceeded the configured timeout.",
        hint="Increase the timeout in settings or check site performance.",
    ),
    ErrorSignature(
        pattern="ECONNREFUSED",
        code=ERROR_TIMEOUT,
        message="Could not connect to the site.",
        hint="Ensure the site is running and reachable.",
    ),
    ErrorSignature(
        pattern="net::ERR_CONNECTION_REFUSED",
        code=ERROR_TIMEOUT,
        message="Browser could not reach the site.",
        hint="Ensure the site is running and accessible from the browser.",
    ),
    ErrorSignature(
        pattern=".smoke-config.json",
        code=ERROR_CONFIG_MISSING,
        message="Smoke test configuration file is missing.",
        hint="Re-run the smoke command to regenerate the runner config.",
    ),
    ErrorSignature(
        pattern="libnss3",
        code=ERROR_BROWSER_LAUNCH_FAILED,
        message="System library libnss3 is missing.",
        hint=INSTALL_DEPS_HINT,
    ),
    ErrorSignature(
        pattern="libatk",
        code=ERROR_BROWSER_LAUNCH_FAILED,
        message="System library libatk is missing.",
        hint=INSTALL_DEPS_HINT,
    ),
)


def strip_ansi(text: str) -> str:
    """Remove ANSI colour sequences."""
    return _ANSI_ESCAPE.sub("", text)


def truncate(text: str, max_length: int) -> str:
    """Cut ``text`` to ``max_length`` characters, marking the cut."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + "..."


class ErrorClassifier:
    """Maps runner stderr to a structured error. Stateless."""

    def __init__(self, signatures: Sequence[ErrorSignature] = ERROR_SIGNATURES):
        self.signatures = signatures

    def analyze(self, raw_error: str, exit_code: int | None = 1) -> StructuredError:
        """Classify a raw error.

        Args:
            raw_error: Stderr or error text from the runner
            exit_code: Process exit code, kept for callers that log it

        Returns:
            Structured error; unrecognised input gets a generic classification
            using its first non stack-frame line as the message

        """
        clean = strip_ansi(raw_error)
        raw = truncate(clean, RAW_MAX_LENGTH)

        for signature in self.signatures:
            if signature.pattern in clean:
                return StructuredError(
                    code=signature.code,
                    message=signature.message,
                    hint=signature.hint,
                    raw=raw,
                )

        return StructuredError(
            code=ERROR_UNKNOWN,
            message=_first_line(clean) or "Playwright test execution failed.",
            hint="Check the raw error below. Run with verbose output: "
            "npx playwright test --debug",
            raw=raw,
        )

    @staticmethod
    def is_setup_error(code: str) -> bool:
        """True for codes meaning the environment is not ready to run tests."""
        return code in SETUP_ERROR_CODES


def format_for_cli(error: StructuredError, include_raw: bool = False) -> str:
    """Render a structured error for terminal output."""
    lines = [f"[{error.code}] {error.message}", "", f"Hint: {error.hint}"]
    if include_raw and error.raw:
        lines.extend(["", "Details:", error.raw])
    return "\n".join(lines)


def _first_line(text: str) -> str:
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("at "):
            return line
    return ""
