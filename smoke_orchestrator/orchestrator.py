"""Runs suites through the external runner and persists their results."""

import logging
import shutil
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from smoke_orchestrator.bridge import ConfigBridgeWriter
from smoke_orchestrator.constants import (
    DEFAULT_PROCESS_TIMEOUT,
    ENV_HTML_PATH,
    ENV_PARALLEL,
    ENV_VERBOSE,
    STATE_LAST_RESULTS,
    STATE_LAST_RUN,
    SUITES_DIRNAME,
)
from smoke_orchestrator.errors import ERROR_RUNNER_NOT_SETUP, ErrorClassifier
from smoke_orchestrator.models.bridge import RemoteCredentials
from smoke_orchestrator.models.result import RunResult, StructuredError
from smoke_orchestrator.naming import spec_filename, to_spec_name
from smoke_orchestrator.parser import (
    collapse_suites,
    find_launch_failure,
    merge_suite_result,
    parse_report,
)
from smoke_orchestrator.registry import SuiteRegistry
from smoke_orchestrator.runners.base import Invocation, Remediator, RunnerAdapter
from smoke_orchestrator.stores import StateStore

log = logging.getLogger(__name__)

# The first attempt plus one retry after remediation.
MAX_ATTEMPTS = 2

STDERR_LAUNCH_SIGNATURES = ("browserType.launch", "Failed to launch")
LAUNCH_FAILURE_FALLBACK = (
    "Chromium could not be launched. Install browser and system deps."
)


@dataclass(frozen=True, kw_only=True)
class RunOptions:
    """Behaviour toggles forwarded to the runner as environment variables."""

    parallel: bool = False
    verbose: bool = False
    html_report_path: Path | None = None

    def to_env(self) -> dict[str, str]:
        env: dict[str, str] = {}
        if self.parallel:
            env[ENV_PARALLEL] = "1"
        if self.verbose:
            env[ENV_VERBOSE] = "1"
        if self.html_report_path is not None:
            env[ENV_HTML_PATH] = str(self.html_report_path)
        return env


@dataclass(frozen=True, kw_only=True)
class StagedSuite:
    """Suite directory outside the runner copied into it for one run."""

    source: Path
    target: Path


@dataclass(frozen=True, kw_only=True)
class AttemptOutcome:
    """Result of one attempt and whether remediation may fix it."""

    result: RunResult
    retryable: bool = False


@dataclass(frozen=True, kw_only=True)
class SmokeOrchestrator:
    """Runs suites one invocation at a time.

    Callers must not overlap ``run`` calls: the bridge file, the report file
    and the persisted results are single shared locations.
    """

    adapter: RunnerAdapter
    registry: SuiteRegistry
    bridge_writer: ConfigBridgeWriter
    state: StateStore
    remediator: Remediator
    classifier: ErrorClassifier = field(default_factory=ErrorClassifier)
    process_timeout: float = DEFAULT_PROCESS_TIMEOUT
    clock: Callable[[], float] = time.time

    def is_setup(self) -> bool:
        return self.adapter.is_setup()

    def get_last_results(self) -> RunResult | None:
        """Return the persisted results, or None if there are none."""
        data = self.state.get(STATE_LAST_RESULTS)
        if not data:
            return None
        try:
            return RunResult.model_validate(data)
        except ValidationError as e:
            log.warning("Ignoring unreadable persisted results: %s", e)
            return None

    def get_last_run_time(self) -> int | None:
        return self.state.get(STATE_LAST_RUN)

    async def run(
        self,
        suite_id: str | None = None,
        target_url: str | None = None,
        credentials: RemoteCredentials | None = None,
        options: RunOptions | None = None,
    ) -> RunResult:
        """Run one suite, or every suite when ``suite_id`` is None.

        Test failures and environment problems are reported on the returned
        result, never raised. An environment problem that remediation can fix
        is remediated once and the run retried.

        Returns:
            The persisted result: for a single suite, the previous results
            with this suite's entry replaced, even when the run failed

        """
        options = options or RunOptions()
        outcome = await self._attempt(suite_id, target_url, credentials, options)

        for attempt in range(2, MAX_ATTEMPTS + 1):
            if not outcome.retryable:
                break
            diagnosis = outcome.result.diagnosis
            log.warning(
                "Environment not ready (%s), remediating before retry",
                diagnosis.code if diagnosis else "unknown",
            )
            if not await self.remediator.remediate():
                log.error("Remediation failed, not retrying")
                break
            log.info("Remediation complete, retrying run (attempt %d)", attempt)
            outcome = await self._attempt(suite_id, target_url, credentials, options)

        return self._persist(outcome, suite_id)

    async def run_all(
        self,
        target_url: str | None = None,
        credentials: RemoteCredentials | None = None,
        options: RunOptions | None = None,
        suite_ids: Sequence[str] | None = None,
    ) -> RunResult:
        """Run suites one after another, merging into fresh persisted results.

        Args:
            suite_ids: Suites to run; defaults to every enabled, detected suite

        """
        if suite_ids is None:
            suite_ids = list(self.bridge_writer.runnable_suites())

        self.state.set(STATE_LAST_RESULTS, {})
        result = RunResult(ran_at=int(self.clock()))
        failures: dict[str, RunResult] = {}

        log.info("Running %d suite(s): %s", len(suite_ids), ", ".join(suite_ids))
        for suite_id in suite_ids:
            result = await self.run(suite_id, target_url, credentials, options)
            if result.error is not None:
                failures[suite_id] = result

        if failures:
            result = self._record_failures(result, failures)
        return result

    async def _attempt(
        self,
        suite_id: str | None,
        target_url: str | None,
        credentials: RemoteCredentials | None,
        options: RunOptions,
    ) -> AttemptOutcome:
        if (env_error := await self.adapter.check_environment()) is not None:
            log.error("Runner environment check failed: %s", env_error)
            return AttemptOutcome(
                result=RunResult(
                    error=env_error,
                    exit_code=1,
                    ran_at=int(self.clock()),
                    diagnosis=StructuredError(
                        code=ERROR_RUNNER_NOT_SETUP,
                        message=env_error,
                        hint="Install Node.js and the runner dependencies, "
                        "then run again.",
                    ),
                ),
            )

        self.bridge_writer.write_config(target_url, credentials)
        self.adapter.artifact_path.unlink(missing_ok=True)

        suite_filter, staged = self._prepare_suite(suite_id)
        if staged is not None and staged.target.exists():
            message = (
                f"Cannot stage suite {suite_id}: {staged.target} already exists "
                "in the runner"
            )
            log.error("%s", message)
            return AttemptOutcome(
                result=RunResult(error=message, exit_code=1, ran_at=int(self.clock())),
            )

        try:
            if staged is not None:
                log.info("Staging external suite %s from %s", suite_id, staged.source)
                shutil.copytree(staged.source, staged.target)
            invocation = await self.adapter.invoke(
                suite_filter,
                env=options.to_env(),
                timeout=self.process_timeout,
                stream_output=options.verbose,
            )
        finally:
            if staged is not None:
                shutil.rmtree(staged.target, ignore_errors=True)

        return self._evaluate(invocation, suite_id)

    def _prepare_suite(
        self, suite_id: str | None
    ) -> tuple[str | None, StagedSuite | None]:
        """Return the runner filter for a suite and the copy to stage, if any.

        Specs outside the runner's tree are copied into its suites directory
        so that relative imports of the runner's helpers resolve.
        """
        if not suite_id:
            return None, None

        spec_path = self.registry.get_spec_path(suite_id)
        if spec_path is None:
            return f"{SUITES_DIRNAME}/{spec_filename(suite_id)}", None

        runner_dir = self.adapter.runner_dir.resolve()
        spec_path = spec_path.resolve()
        if spec_path.is_relative_to(runner_dir):
            return spec_path.relative_to(runner_dir).as_posix(), None

        staged_name = to_spec_name(suite_id)
        staged = StagedSuite(
            source=spec_path if spec_path.is_dir() else spec_path.parent,
            target=self.adapter.suites_dir / staged_name,
        )
        return f"{SUITES_DIRNAME}/{staged_name}", staged

    def _evaluate(self, invocation: Invocation, suite_id: str | None) -> AttemptOutcome:
        ran_at = int(self.clock())
        output = invocation.read_artifact()
        stderr = invocation.stderr.strip()

        if invocation.exit_code != 0 and not output.strip() and stderr:
            diagnosis = self.classifier.analyze(stderr, invocation.exit_code)
            log.error(
                "Runner failed without a report: [%s] %s",
                diagnosis.code,
                diagnosis.message,
            )
            return AttemptOutcome(
                result=RunResult(
                    error=f"Playwright failed. {stderr}",
                    exit_code=invocation.exit_code,
                    ran_at=ran_at,
                    diagnosis=diagnosis,
                ),
                retryable=invocation.timed_out
                or self.classifier.is_setup_error(diagnosis.code),
            )

        result = parse_report(output).model_copy(
            update={"exit_code": invocation.exit_code, "ran_at": ran_at}
        )

        if suite_id and result.error is None and suite_id not in result.suites:
            result = result.model_copy(
                update={"suites": collapse_suites(result.suites, suite_id)}
            )

        launch_in_stderr = invocation.exit_code != 0 and any(
            signature in stderr for signature in STDERR_LAUNCH_SIGNATURES
        )
        launch_in_tests = find_launch_failure(result)
        if launch_in_stderr or launch_in_tests is not None:
            log.error("Browser could not be launched")
            return AttemptOutcome(
                result=result.model_copy(
                    update={
                        "error": stderr or LAUNCH_FAILURE_FALLBACK,
                        "diagnosis": self.classifier.analyze(
                            stderr or launch_in_tests or "", invocation.exit_code
                        ),
                    }
                ),
                retryable=True,
            )

        if result.error is not None and stderr:
            diagnosis = self.classifier.analyze(stderr, invocation.exit_code)
            result = result.model_copy(update={"diagnosis": diagnosis})

        return AttemptOutcome(result=result)

    def _persist(self, outcome: AttemptOutcome, suite_id: str | None) -> RunResult:
        result = outcome.result
        if suite_id:
            result = merge_suite_result(self.get_last_results(), result, suite_id)
            suite = result.suites[suite_id]
            log.info(
                "Suite %s: %d passed, %d failed, %d skipped (%.1fs)",
                suite_id,
                suite.passed,
                suite.failed,
                suite.skipped,
                suite.duration / 1000,
            )

        self.state.set(STATE_LAST_RESULTS, result.to_json_dict())
        self.state.set(STATE_LAST_RUN, result.ran_at)
        log.info(
            "Results persisted: %d suite(s), %d passed, %d failed",
            len(result.suites),
            result.summary.passed,
            result.summary.failed,
        )
        return result

    def _record_failures(
        self, result: RunResult, failures: Mapping[str, RunResult]
    ) -> RunResult:
        """Keep the errors of failed suites on the merged multi-suite result."""
        first = next(iter(failures.values()))
        result = result.model_copy(
            update={
                "error": "\n".join(
                    f"{suite_id}: {failed.error}"
                    for suite_id, failed in failures.items()
                ),
                "exit_code": first.exit_code,
                "raw": first.raw,
                "diagnosis": next(
                    (f.diagnosis for f in failures.values() if f.diagnosis), None
                ),
            }
        )
        self.state.set(STATE_LAST_RESULTS, result.to_json_dict())
        return result
