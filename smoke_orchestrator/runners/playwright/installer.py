"""One-shot repair of a Playwright environment."""

import logging
from dataclasses import dataclass
from pathlib import Path

from smoke_orchestrator.constants import INSTALL_TIMEOUT
from smoke_orchestrator.runners.base import Remediator
from smoke_orchestrator.runners.playwright.adapter import run_command

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class PlaywrightInstaller(Remediator):
    """Installs npm dependencies and the Chromium browser with system deps."""

    runner_dir: Path
    npm_command: str = "npm"
    npx_command: str = "npx"
    timeout: float = INSTALL_TIMEOUT

    def steps(self) -> list[list[str]]:
        """Commands to run, in order."""
        steps: list[list[str]] = []
        if not (self.runner_dir / "node_modules").is_dir():
            steps.append([self.npm_command, "install"])
        steps.append(
            [self.npx_command, "playwright", "install", "--with-deps", "chromium"]
        )
        return steps

    async def remediate(self) -> bool:
        for args in self.steps():
            command = " ".join(args)
            log.info("Remediation: %s", command)
            try:
                result = await run_command(args, self.runner_dir, self.timeout)
            except FileNotFoundError:
                log.error("Remediation failed: %s not found", args[0])
                return False
            if result.timed_out:
                log.error("Remediation timed out: %s", command)
                return False
            if not result.ok:
                log.error(
                    "Remediation failed (exit %s): %s\n%s",
                    result.returncode,
                    command,
                    result.stderr.strip(),
                )
                return False
        return True
