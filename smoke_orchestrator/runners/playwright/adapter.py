"""Runs ``npx playwright test`` as a subprocess."""

import asyncio
import contextlib
import logging
import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from smoke_orchestrator.constants import MIN_NODE_VERSION, NODE_CHECK_TIMEOUT
from smoke_orchestrator.runners.base import Invocation, RunnerAdapter

log = logging.getLogger(__name__)

NODE_VERSION_PATTERN = re.compile(r"^v?(\d+)\.")


@dataclass(frozen=True, kw_only=True)
class CommandResult:
    """Exit status and output of a helper command."""

    returncode: int | None
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(
    args: Sequence[str],
    cwd: Path,
    timeout: float,
    env: Mapping[str, str] | None = None,
    capture_stdout: bool = True,
) -> CommandResult:
    """Run a command, killing it when it exceeds ``timeout`` seconds.

    Raises:
        FileNotFoundError: If the executable does not exist

    """
    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        env={**os.environ, **env} if env else None,
        stdout=(
            asyncio.subprocess.PIPE if capture_stdout else asyncio.subprocess.DEVNULL
        ),
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        return CommandResult(
            returncode=process.returncode, stdout="", stderr="", timed_out=True
        )

    return CommandResult(
        returncode=process.returncode,
        stdout=(stdout or b"").decode(errors="replace"),
        stderr=(stderr or b"").decode(errors="replace"),
    )


def parse_node_major(version_output: str) -> int | None:
    """Extract the major version from ``node --version`` output."""
    if match := NODE_VERSION_PATTERN.match(version_output.strip()):
        return int(match.group(1))
    return None


@dataclass(frozen=True, kw_only=True)
class PlaywrightAdapter(RunnerAdapter):
    """Playwright runner living in ``runner_dir``.

    The Playwright config reads the bridge file and writes its JSON report to
    ``results.json``; stdout is never captured.
    """

    min_node_version: int = MIN_NODE_VERSION
    node_command: str = "node"
    npx_command: str = "npx"

    def is_setup(self) -> bool:
        return (self.runner_dir / "node_modules").is_dir()

    async def check_environment(self) -> str | None:
        try:
            result = await run_command(
                [self.node_command, "--version"], self.runner_dir, NODE_CHECK_TIMEOUT
            )
        except FileNotFoundError:
            result = None

        if result is None or not result.ok:
            return (
                f"Node.js is not installed. Smoke requires Node.js "
                f"{self.min_node_version}+ (e.g. nvm use {self.min_node_version})."
            )

        version = result.stdout.strip()
        major = parse_node_major(version)
        if major is not None and major < self.min_node_version:
            return (
                f"Node.js {version} is too old. Use Node {self.min_node_version} "
                f"or newer (e.g. nvm use {self.min_node_version})."
            )

        if not self.is_setup():
            return (
                f"Playwright dependencies are not installed. "
                f"Run npm install in {self.runner_dir}."
            )

        return None

    async def invoke(
        self,
        suite_filter: str | None,
        *,
        env: Mapping[str, str],
        timeout: float,
        stream_output: bool = False,
    ) -> Invocation:
        args = [self.npx_command, "playwright", "test"]
        if suite_filter:
            args.append(suite_filter)

        log.info("Starting runner: %s (cwd=%s)", " ".join(args), self.runner_dir)

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=self.runner_dir,
                env={**os.environ, **env},
                stdout=None if stream_output else asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            return Invocation(
                exit_code=127,
                stderr=f"spawn {self.npx_command} ENOENT",
                artifact_path=None,
            )

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except TimeoutError:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            log.warning("Runner exceeded %.0fs and was killed", timeout)
            return Invocation(
                exit_code=process.returncode,
                stderr=f"Timeout: runner exceeded {timeout:.0f}s and was killed",
                artifact_path=self._existing_artifact(),
                timed_out=True,
            )

        log.info("Runner exited with code %s", process.returncode)
        return Invocation(
            exit_code=process.returncode,
            stderr=(stderr or b"").decode(errors="replace"),
            artifact_path=self._existing_artifact(),
        )

    def _existing_artifact(self) -> Path | None:
        return self.artifact_path if self.artifact_path.exists() else None
