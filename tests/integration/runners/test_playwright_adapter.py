"""Integration tests for the Playwright adapter using fake executables."""

from collections.abc import Callable
from pathlib import Path

from smoke_orchestrator.runners.playwright import PlaywrightAdapter
from smoke_orchestrator.runners.playwright.adapter import parse_node_major, run_command

FakeCommandFn = Callable[[str, str], Path]


class TestCheckEnvironment:
    """Tests for PlaywrightAdapter.check_environment."""

    async def test_ready(self, runner_dir: Path, fake_command: FakeCommandFn) -> None:
        """Returns None when Node is recent and dependencies are installed."""
        node = fake_command("node", 'echo "v22.3.0"')
        adapter = PlaywrightAdapter(runner_dir=runner_dir, node_command=str(node))

        assert await adapter.check_environment() is None

    async def test_node_missing(self, runner_dir: Path, tmp_path: Path) -> None:
        """Reports a missing Node.js installation."""
        adapter = PlaywrightAdapter(
            runner_dir=runner_dir, node_command=str(tmp_path / "no-such-node")
        )

        message = await adapter.check_environment()

        assert message is not None
        assert message.startswith("Node.js is not installed")
        assert "20+" in message

    async def test_node_fails(
        self, runner_dir: Path, fake_command: FakeCommandFn
    ) -> None:
        """A node binary that exits non-zero counts as missing."""
        node = fake_command("node", "exit 3")
        adapter = PlaywrightAdapter(runner_dir=runner_dir, node_command=str(node))

        message = await adapter.check_environment()

        assert message is not None
        assert message.startswith("Node.js is not installed")

    async def test_node_too_old(
        self, runner_dir: Path, fake_command: FakeCommandFn
    ) -> None:
        """Reports an outdated Node.js version."""
        node = fake_command("node", 'echo "v18.19.0"')
        adapter = PlaywrightAdapter(runner_dir=runner_dir, node_command=str(node))

        message = await adapter.check_environment()

        assert message is not None
        assert "v18.19.0 is too old" in message

    async def test_dependencies_missing(
        self, tmp_path: Path, fake_command: FakeCommandFn
    ) -> None:
        """Reports missing npm dependencies."""
        runner = tmp_path / "bare"
        runner.mkdir()
        node = fake_command("node", 'echo "v20.0.0"')
        adapter = PlaywrightAdapter(runner_dir=runner, node_command=str(node))

        message = await adapter.check_environment()

        assert message is not None
        assert message.startswith("Playwright dependencies are not installed")
        assert not adapter.is_setup()


class TestInvoke:
    """Tests for PlaywrightAdapter.invoke."""

    async def test_runs_playwright_with_filter(
        self, runner_dir: Path, fake_command: FakeCommandFn
    ) -> None:
        """Passes the suite filter and environment, returning the report path."""
        npx = fake_command(
            "npx",
            'echo "$@" > args.txt\n'
            'echo "$SMOKE_PARALLEL" > parallel.txt\n'
            "echo '{\"suites\": []}' > results.json\n"
            'echo "1 failed" >&2\n'
            "exit 1",
        )
        adapter = PlaywrightAdapter(runner_dir=runner_dir, npx_command=str(npx))

        invocation = await adapter.invoke(
            "suites/auth.spec.ts", env={"SMOKE_PARALLEL": "1"}, timeout=30
        )

        assert invocation.exit_code == 1
        assert invocation.stderr.strip() == "1 failed"
        assert invocation.artifact_path == runner_dir / "results.json"
        assert invocation.read_artifact().strip() == '{"suites": []}'
        assert not invocation.timed_out
        args = (runner_dir / "args.txt").read_text().strip()
        assert args == "playwright test suites/auth.spec.ts"
        assert (runner_dir / "parallel.txt").read_text().strip() == "1"

    async def test_runs_everything_without_filter(
        self, runner_dir: Path, fake_command: FakeCommandFn
    ) -> None:
        npx = fake_command("npx", 'echo "$@" > args.txt')
        adapter = PlaywrightAdapter(runner_dir=runner_dir, npx_command=str(npx))

        invocation = await adapter.invoke(None, env={}, timeout=30)

        assert invocation.exit_code == 0
        assert invocation.artifact_path is None
        assert invocation.read_artifact() == ""
        assert (runner_dir / "args.txt").read_text().strip() == "playwright test"

    async def test_missing_executable(self, runner_dir: Path, tmp_path: Path) -> None:
        """A missing npx looks like a spawn ENOENT failure."""
        adapter = PlaywrightAdapter(
            runner_dir=runner_dir, npx_command=str(tmp_path / "no-such-npx")
        )

        invocation = await adapter.invoke(None, env={}, timeout=30)

        assert invocation.exit_code == 127
        assert "ENOENT" in invocation.stderr

    async def test_timeout_kills_runner(
        self, runner_dir: Path, fake_command: FakeCommandFn
    ) -> None:
        """A runner exceeding the timeout is killed and reported."""
        npx = fake_command("npx", "exec sleep 30")
        adapter = PlaywrightAdapter(runner_dir=runner_dir, npx_command=str(npx))

        invocation = await adapter.invoke(None, env={}, timeout=0.5)

        assert invocation.timed_out
        assert invocation.exit_code != 0
        assert invocation.stderr.startswith("Timeout: runner exceeded")


class TestRunCommand:
    """Tests for run_command."""

    async def test_captures_output(
        self, tmp_path: Path, fake_command: FakeCommandFn
    ) -> None:
        command = fake_command("hello", 'echo "out"\necho "err" >&2')

        result = await run_command([str(command)], tmp_path, timeout=10)

        assert result.ok
        assert result.stdout.strip() == "out"
        assert result.stderr.strip() == "err"

    async def test_timeout(self, tmp_path: Path, fake_command: FakeCommandFn) -> None:
        command = fake_command("slow", "exec sleep 30")

        result = await run_command([str(command)], tmp_path, timeout=0.5)

        assert result.timed_out
        assert not result.ok


def test_parse_node_major() -> None:
    assert parse_node_major("v22.3.0\n") == 22
    assert parse_node_major("18.1.0") == 18
    assert parse_node_major("garbage") is None
