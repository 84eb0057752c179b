"""Tests for runner error classification."""

import pytest

from smoke_orchestrator.errors import (
    ERROR_BROWSER_LAUNCH_FAILED,
    ERROR_CONFIG_MISSING,
    ERROR_INVALID_SUITE,
    ERROR_RUNNER_NOT_SETUP,
    ERROR_TIMEOUT,
    ERROR_UNKNOWN,
    RAW_MAX_LENGTH,
    ErrorClassifier,
    format_for_cli,
    strip_ansi,
    truncate,
)
from smoke_orchestrator.models.result import StructuredError


@pytest.fixture
def classifier() -> ErrorClassifier:
    return ErrorClassifier()


def test_browser_launch_failure(classifier: ErrorClassifier) -> None:
    """A missing browser executable is a launch failure with an install hint."""
    error = classifier.analyze("browserType.launch: Executable doesn't exist")

    assert error.code == ERROR_BROWSER_LAUNCH_FAILED
    assert "install" in error.hint
    assert "--with-deps" in error.hint


@pytest.mark.parametrize(
    ("raw", "code"),
    [
        ("Error: Failed to launch chromium because executable is missing", "launch"),
        ("spawn npx ENOENT", "setup"),
        ("Error: Cannot find module '@playwright/test'", "setup"),
        ("connect ETIMEDOUT 10.0.0.1:443", "timeout"),
        ("Timeout: runner exceeded 300s and was killed", "timeout"),
        ("connect ECONNREFUSED 127.0.0.1:443", "timeout"),
        ("page.goto: net::ERR_CONNECTION_REFUSED at https://x", "timeout"),
        ("Error: ENOENT: no such file, open '.smoke-config.json'", "setup"),
        ("error while loading shared libraries: libnss3.so", "launch"),
        ("error while loading shared libraries: libatk-1.0.so.0", "launch"),
    ],
)
def test_known_signatures(classifier: ErrorClassifier, raw: str, code: str) -> None:
    """Known signatures map to their error codes."""
    expected = {
        "launch": ERROR_BROWSER_LAUNCH_FAILED,
        "setup": ERROR_RUNNER_NOT_SETUP,
        "timeout": ERROR_TIMEOUT,
    }[code]

    assert classifier.analyze(raw).code == expected


def test_missing_config_file(classifier: ErrorClassifier) -> None:
    """A reference to the bridge file alone is a missing config."""
    error = classifier.analyze("Could not read .smoke-config.json")

    assert error.code == ERROR_CONFIG_MISSING


def test_first_match_wins(classifier: ErrorClassifier) -> None:
    """Launch failures beat timeouts when both appear."""
    error = classifier.analyze("browserType.launch: Timeout 30000ms exceeded")

    assert error.code == ERROR_BROWSER_LAUNCH_FAILED


def test_unknown_error_uses_first_meaningful_line(classifier: ErrorClassifier) -> None:
    """Unrecognised errors take their first non stack-frame line as message."""
    raw = "\n    at Object.<anonymous> (x.js:1:1)\nSomething odd happened\nmore"

    error = classifier.analyze(raw)

    assert error.code == ERROR_UNKNOWN
    assert error.message == "Something odd happened"
    assert "--debug" in error.hint


def test_unknown_error_without_text(classifier: ErrorClassifier) -> None:
    """Empty input still yields a message."""
    error = classifier.analyze("")

    assert error.code == ERROR_UNKNOWN
    assert error.message == "Playwright test execution failed."
    assert error.raw == ""


def test_ansi_codes_are_stripped(classifier: ErrorClassifier) -> None:
    """Colour codes do not hide signatures or leak into raw."""
    error = classifier.analyze("\x1b[31mbrowserType.launch\x1b[39m: missing")

    assert error.code == ERROR_BROWSER_LAUNCH_FAILED
    assert error.raw == "browserType.launch: missing"


def test_raw_is_truncated(classifier: ErrorClassifier) -> None:
    """Raw text is bounded."""
    error = classifier.analyze("y" * (RAW_MAX_LENGTH + 100))

    assert error.raw == "y" * RAW_MAX_LENGTH + "..."


@pytest.mark.parametrize(
    ("code", "expected"),
    [
        (ERROR_RUNNER_NOT_SETUP, True),
        (ERROR_BROWSER_LAUNCH_FAILED, True),
        (ERROR_CONFIG_MISSING, True),
        (ERROR_TIMEOUT, False),
        (ERROR_INVALID_SUITE, False),
        (ERROR_UNKNOWN, False),
    ],
)
def test_is_setup_error(code: str, expected: bool) -> None:
    """Only environment codes are setup errors."""
    assert ErrorClassifier.is_setup_error(code) is expected


def test_format_for_cli() -> None:
    """CLI output shows code, message and hint."""
    error = StructuredError(
        code=ERROR_TIMEOUT, message="Too slow.", hint="Wait longer.", raw="details"
    )

    assert format_for_cli(error) == "[TIMEOUT] Too slow.\n\nHint: Wait longer."
    assert format_for_cli(error, include_raw=True).endswith("Details:\ndetails")


def test_strip_ansi() -> None:
    assert strip_ansi("\x1b[1;32mok\x1b[0m") == "ok"


def test_truncate() -> None:
    assert truncate("short", 10) == "short"
    assert truncate("abcdef", 3) == "abc..."
