"""End-to-end orchestration against a fake Playwright runner."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from smoke_orchestrator.bridge import ConfigBridgeWriter
from smoke_orchestrator.config import SmokeSettings
from smoke_orchestrator.errors import ERROR_BROWSER_LAUNCH_FAILED
from smoke_orchestrator.junit import JUnitExporter
from smoke_orchestrator.orchestrator import SmokeOrchestrator
from smoke_orchestrator.registry import SuiteRegistry
from smoke_orchestrator.runners.playwright import PlaywrightAdapter, PlaywrightInstaller
from smoke_orchestrator.site import EnvironmentSiteContext, StaticFeatureDetector
from smoke_orchestrator.stores import JsonFileStateStore, StateSecretStore

FakeCommandFn = Callable[[str, str], Path]

FAKE_PLAYWRIGHT = """
if [ "$2" = "install" ]; then
  touch browsers-installed
  exit 0
fi
test -f .smoke-config.json || { echo "missing .smoke-config.json" >&2; exit 1; }
if [ ! -f browsers-installed ]; then
  echo "browserType.launch: Executable doesn't exist" >&2
  exit 1
fi
case "$3" in
  suites/auth.spec.ts) title="auth.spec.ts"; status=passed ;;
  *) title="core-pages.spec.ts"; status=failed ;;
esac
printf '{"suites":[{"title":"%s","specs":[{"title":"check","tests":[{"results":[{"status":"%s","duration":120,"error":{"message":"expected 200"}}]}]}]}]}' "$title" "$status" > results.json
[ "$status" = passed ]
"""


def build_orchestrator(
    runner_dir: Path, tmp_path: Path, fake_command: FakeCommandFn
) -> SmokeOrchestrator:
    npx = fake_command("npx", FAKE_PLAYWRIGHT)
    node = fake_command("node", 'echo "v22.0.0"')
    settings = SmokeSettings(
        runner_dir=runner_dir,
        suites={
            suite_id: False
            for suite_id in ("webform", "health", "content", "accessibility")
        },
    )
    state = JsonFileStateStore(path=tmp_path / "state.json")
    adapter = PlaywrightAdapter(
        runner_dir=runner_dir, node_command=str(node), npx_command=str(npx)
    )
    registry = SuiteRegistry(runner_dir=runner_dir, detector=StaticFeatureDetector())
    return SmokeOrchestrator(
        adapter=adapter,
        registry=registry,
        bridge_writer=ConfigBridgeWriter(
            registry=registry,
            settings=settings,
            site=EnvironmentSiteContext(url="https://local.test"),
            secrets=StateSecretStore(state=state),
            path=adapter.bridge_path,
        ),
        state=state,
        remediator=PlaywrightInstaller(runner_dir=runner_dir, npx_command=str(npx)),
        process_timeout=30,
    )


@pytest.fixture
def installed_runner(runner_dir: Path) -> Path:
    (runner_dir / "browsers-installed").touch()
    for name in ("core-pages", "auth"):
        (runner_dir / "suites" / f"{name}.spec.ts").write_text("// spec")
    return runner_dir


async def test_run_all_persists_every_suite(
    installed_runner: Path, tmp_path: Path, fake_command: FakeCommandFn
) -> None:
    """Each suite runs in its own process and the results accumulate."""
    orchestrator = build_orchestrator(installed_runner, tmp_path, fake_command)

    result = await orchestrator.run_all()

    assert list(result.suites) == ["core_pages", "auth"]
    assert result.suites["auth"].passed == 1
    assert result.suites["core_pages"].failed == 1
    assert result.suites["core_pages"].tests[0].error == "expected 200"
    assert result.summary.total == 2
    assert result.has_failures

    state = json.loads((tmp_path / "state.json").read_text())
    assert set(state["smoke.last_results"]["suites"]) == {"core_pages", "auth"}
    assert orchestrator.get_last_results() == result

    bridge = json.loads(orchestrator.adapter.bridge_path.read_text())
    assert bridge["baseUrl"] == "https://local.test"
    assert set(bridge["suites"]) == {"core_pages", "auth"}


async def test_results_export_to_junit(
    installed_runner: Path, tmp_path: Path, fake_command: FakeCommandFn
) -> None:
    orchestrator = build_orchestrator(installed_runner, tmp_path, fake_command)
    result = await orchestrator.run_all()
    path = tmp_path / "junit.xml"

    assert JUnitExporter().write_to_file(result, path)
    content = path.read_text(encoding="utf-8")
    assert 'classname="smoke.auth"' in content
    assert 'failures="1"' in content


async def test_missing_browser_is_installed_and_retried(
    runner_dir: Path, tmp_path: Path, fake_command: FakeCommandFn
) -> None:
    """A launch failure installs the browser, then the retry succeeds."""
    orchestrator = build_orchestrator(runner_dir, tmp_path, fake_command)

    result = await orchestrator.run("auth")

    assert (runner_dir / "browsers-installed").exists()
    assert result.error is None
    assert result.suites["auth"].passed == 1


async def test_launch_failure_reported_when_install_fails(
    runner_dir: Path, tmp_path: Path, fake_command: FakeCommandFn
) -> None:
    """When remediation cannot fix the browser the diagnosis is kept."""
    orchestrator = build_orchestrator(runner_dir, tmp_path, fake_command)
    broken_installer = PlaywrightInstaller(
        runner_dir=runner_dir, npx_command=str(tmp_path / "no-such-npx")
    )
    orchestrator = SmokeOrchestrator(
        adapter=orchestrator.adapter,
        registry=orchestrator.registry,
        bridge_writer=orchestrator.bridge_writer,
        state=orchestrator.state,
        remediator=broken_installer,
    )

    result = await orchestrator.run("auth")

    assert result.diagnosis is not None
    assert result.diagnosis.code == ERROR_BROWSER_LAUNCH_FAILED
    assert result.error is not None
    assert result.error.startswith("Playwright failed.")
