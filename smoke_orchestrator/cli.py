"""CLI entry point for running smoke suites."""

import argparse
import asyncio
import json
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from smoke_orchestrator.bridge import ConfigBridgeWriter
from smoke_orchestrator.config import SmokeSettings, load_settings
from smoke_orchestrator.constants import (
    ENV_REMOTE_PASS,
    ENV_REMOTE_USER,
    EXIT_FAILURE,
    EXIT_SETUP_REQUIRED,
    EXIT_SUCCESS,
    QUICK_MODE_SUITES,
)
from smoke_orchestrator.errors import ERROR_INVALID_SUITE, format_for_cli
from smoke_orchestrator.junit import JUnitExporter
from smoke_orchestrator.models.bridge import RemoteCredentials
from smoke_orchestrator.models.result import RunResult, StructuredError
from smoke_orchestrator.orchestrator import RunOptions, SmokeOrchestrator
from smoke_orchestrator.registry import SuiteRegistry, UnknownSuiteError
from smoke_orchestrator.runners.playwright import PlaywrightAdapter, PlaywrightInstaller
from smoke_orchestrator.site import EnvironmentSiteContext, StaticFeatureDetector
from smoke_orchestrator.stores import JsonFileStateStore, StateSecretStore

STATUS_SYMBOLS = {
    "passed": "✓",
    "failed": "✗",
    "skipped": "-",
}


def log_results_summary(
    log: logging.Logger, results: RunResult, verbose: bool = False
) -> None:
    """Log a formatted summary of a run."""
    log.info("=" * 80)
    log.info("Smoke Results Summary:")
    log.info("=" * 80)

    if results.error is not None:
        log.error("%s", results.error)
        if results.diagnosis is not None:
            log.error("%s", format_for_cli(results.diagnosis, include_raw=verbose))
        if results.raw and verbose:
            log.error("Raw output: %s", results.raw)

    for suite_id, suite in results.suites.items():
        symbol = STATUS_SYMBOLS[suite.status]
        log.info(
            "%s %s: %d passed, %d failed, %d skipped (%.2fs)",
            symbol,
            suite_id,
            suite.passed,
            suite.failed,
            suite.skipped,
            suite.duration / 1000,
        )
        for test in suite.tests:
            if test.status == "failed":
                log.info("  %s %s", STATUS_SYMBOLS["failed"], test.title)
                if test.error:
                    log.info("    %s", test.error[:200])

    summary = results.summary
    log.info(
        "Total: %d passed, %d failed, %d skipped in %.2fs",
        summary.passed,
        summary.failed,
        summary.skipped,
        summary.duration / 1000,
    )


def read_remote_credentials(environ: Mapping[str, str]) -> RemoteCredentials | None:
    """Read remote auth credentials from the environment, if any."""
    password = environ.get(ENV_REMOTE_PASS, "")
    if not password:
        return None
    user = environ.get(ENV_REMOTE_USER, "") or RemoteCredentials().user
    return RemoteCredentials(user=user, password=SecretStr(password))


def build_orchestrator(settings: SmokeSettings) -> SmokeOrchestrator:
    """Wire the orchestrator and its collaborators from settings."""
    state = JsonFileStateStore(path=settings.state_path)
    adapter = PlaywrightAdapter(
        runner_dir=settings.runner_dir,
        min_node_version=settings.min_node_version,
    )
    registry = SuiteRegistry(
        runner_dir=settings.runner_dir,
        detector=StaticFeatureDetector(capabilities=frozenset(settings.capabilities)),
        declaration_roots=list(settings.declaration_roots),
    )
    bridge_writer = ConfigBridgeWriter(
        registry=registry,
        settings=settings,
        site=EnvironmentSiteContext(url=settings.base_url, title=settings.site_title),
        secrets=StateSecretStore(state=state),
        path=adapter.bridge_path,
    )
    return SmokeOrchestrator(
        adapter=adapter,
        registry=registry,
        bridge_writer=bridge_writer,
        state=state,
        remediator=PlaywrightInstaller(runner_dir=settings.runner_dir),
        process_timeout=settings.process_timeout,
    )


def format_suite_list(orchestrator: SmokeOrchestrator) -> dict[str, Any]:
    """Describe every known suite for ``--list``."""
    runnable = orchestrator.bridge_writer.runnable_suites()
    return {
        suite_id: {
            "label": definition.label,
            "icon": definition.icon,
            "detected": definition.detected,
            "enabled": suite_id in runnable,
            "provider": definition.provider_id,
            "spec": str(definition.spec_locator) if definition.spec_locator else None,
        }
        for suite_id, definition in orchestrator.registry.detect().items()
    }


async def run(
    settings: SmokeSettings,
    suite_id: str | None = None,
    target_url: str | None = None,
    options: RunOptions | None = None,
    junit_path: Path | None = None,
    quick: bool = False,
    list_only: bool = False,
) -> int:
    """Run smoke suites and return the exit code."""
    log = logging.getLogger("smoke_orchestrator")
    options = options or RunOptions()
    orchestrator = build_orchestrator(settings)

    if list_only:
        print(json.dumps(format_suite_list(orchestrator), indent=2))
        return EXIT_SUCCESS

    if not orchestrator.is_setup():
        log.error(
            "Playwright is not set up in %s. Run npm install.", settings.runner_dir
        )
        return EXIT_SETUP_REQUIRED

    credentials = read_remote_credentials(os.environ)
    log.info(
        "Testing %s (remote auth: %s)",
        target_url or "local site",
        "yes" if credentials else "no",
    )

    if suite_id:
        try:
            orchestrator.registry.require(suite_id)
        except UnknownSuiteError as e:
            error = StructuredError(
                code=ERROR_INVALID_SUITE,
                message=str(e),
                hint="Run with --list to see the available suites.",
            )
            log.error("%s", format_for_cli(error))
            return EXIT_SETUP_REQUIRED
        results = await orchestrator.run(suite_id, target_url, credentials, options)
    else:
        runnable = orchestrator.bridge_writer.runnable_suites()
        suite_ids = (
            [sid for sid in QUICK_MODE_SUITES if sid in runnable]
            if quick
            else list(runnable)
        )
        if not suite_ids:
            log.warning("No test suites detected")
            print(json.dumps(RunResult().to_json_dict(), indent=2))
            return EXIT_SUCCESS
        results = await orchestrator.run_all(
            target_url, credentials, options, suite_ids=suite_ids
        )

    log_results_summary(log, results, verbose=options.verbose)

    if junit_path is not None:
        JUnitExporter().write_to_file(results, junit_path)

    print(json.dumps(results.to_json_dict(), indent=2))

    return EXIT_FAILURE if results.has_failures else EXIT_SUCCESS


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Run browser smoke suites")
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="YAML settings file (defaults apply when omitted)",
    )
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument("--suite", default=None, help="Run a single suite by id")
    selection.add_argument(
        "--quick",
        action="store_true",
        help="Run only the quick-mode suites (core pages and auth)",
    )
    parser.add_argument(
        "--target-url",
        default=None,
        help="Remote URL to test instead of the local site",
    )
    parser.add_argument(
        "--parallel", action="store_true", help="Let the runner use several workers"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Stream runner output and raw errors"
    )
    parser.add_argument(
        "--html-report", type=Path, default=None, help="Directory for an HTML report"
    )
    parser.add_argument(
        "--junit", type=Path, default=None, help="Write a JUnit XML report here"
    )
    parser.add_argument(
        "--list", action="store_true", help="List suites and exit without running"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        settings = load_settings(args.settings) if args.settings else SmokeSettings()
    except (FileNotFoundError, ValueError) as e:
        logging.getLogger("smoke_orchestrator").error("%s", e)
        sys.exit(EXIT_SETUP_REQUIRED)

    exit_code = asyncio.run(
        run(
            settings=settings,
            suite_id=args.suite,
            target_url=args.target_url,
            options=RunOptions(
                parallel=args.parallel,
                verbose=args.verbose,
                html_report_path=args.html_report,
            ),
            junit_path=args.junit,
            quick=args.quick,
            list_only=args.list,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
