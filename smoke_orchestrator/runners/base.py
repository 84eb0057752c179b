"""Abstract bases for the external test runner and its remediation."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from smoke_orchestrator.constants import (
    BRIDGE_FILENAME,
    RESULTS_FILENAME,
    SUITES_DIRNAME,
)


@dataclass(frozen=True, kw_only=True)
class Invocation:
    """Outcome of one runner process.

    Only stderr is captured; the report is read from ``artifact_path``.
    """

    exit_code: int | None
    stderr: str
    artifact_path: Path | None = None
    timed_out: bool = False

    def read_artifact(self) -> str:
        """Return the report contents, empty when there is none."""
        if self.artifact_path is None or not self.artifact_path.exists():
            return ""
        return self.artifact_path.read_text(encoding="utf-8", errors="replace")


@dataclass(frozen=True, kw_only=True)
class RunnerAdapter(ABC):
    """Process boundary to the external runner.

    The runner owns a directory tree holding its suites, the bridge file it
    reads and the report it writes.
    """

    runner_dir: Path

    @property
    def bridge_path(self) -> Path:
        return self.runner_dir / BRIDGE_FILENAME

    @property
    def artifact_path(self) -> Path:
        return self.runner_dir / RESULTS_FILENAME

    @property
    def suites_dir(self) -> Path:
        return self.runner_dir / SUITES_DIRNAME

    @abstractmethod
    def is_setup(self) -> bool:
        """Return True when the runner's dependencies are installed."""

    @abstractmethod
    async def check_environment(self) -> str | None:
        """Verify preconditions without starting a test run.

        Returns:
            None when the runner can be started, otherwise a message for the user

        """

    @abstractmethod
    async def invoke(
        self,
        suite_filter: str | None,
        *,
        env: Mapping[str, str],
        timeout: float,
        stream_output: bool = False,
    ) -> Invocation:
        """Run the runner once and wait for it.

        Args:
            suite_filter: Spec path relative to the runner dir, None for all
            env: Extra environment variables for the process
            timeout: Seconds before the process is killed
            stream_output: Let the runner write to our stdout

        Returns:
            Exit code, captured stderr and the report location

        """


class Remediator(ABC):
    """Repairs an environment that is not ready to run tests."""

    @abstractmethod
    async def remediate(self) -> bool:
        """Install whatever is missing.

        Returns:
            True when every remediation step succeeded

        """
