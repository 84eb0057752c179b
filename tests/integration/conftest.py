"""Fixtures for integration tests."""

import stat
from collections.abc import Callable
from pathlib import Path

import pytest

type FakeCommandFn = Callable[[str, str], Path]


@pytest.fixture
def runner_dir(tmp_path: Path) -> Path:
    """Create a runner directory with installed dependencies."""
    runner = tmp_path / "playwright"
    (runner / "node_modules").mkdir(parents=True)
    (runner / "suites").mkdir()
    return runner


@pytest.fixture
def fake_command(tmp_path: Path) -> FakeCommandFn:
    """Return a function that writes an executable shell script."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _create(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text(f"#!/bin/sh\n{body}\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _create
