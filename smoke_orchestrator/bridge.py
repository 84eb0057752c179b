"""Writes the JSON config bridge the external runner reads at startup."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from smoke_orchestrator.config import SmokeSettings
from smoke_orchestrator.constants import BOT_USERNAME
from smoke_orchestrator.models.bridge import ConfigBridge, RemoteCredentials
from smoke_orchestrator.models.suite import SuiteDefinition
from smoke_orchestrator.registry import SuiteRegistry
from smoke_orchestrator.site import SiteContext
from smoke_orchestrator.stores import SecretStore

log = logging.getLogger(__name__)

AUTH_SUITE_ID = "auth"


@dataclass(frozen=True, kw_only=True)
class ConfigBridgeWriter:
    """Builds and writes the bridge file.

    The file at ``path`` is the only contract with the runner. It is
    rewritten on every call; concurrent writers race and the last one wins.
    """

    registry: SuiteRegistry
    settings: SmokeSettings
    site: SiteContext
    secrets: SecretStore
    path: Path

    def generate(
        self,
        target_url: str | None = None,
        remote_credentials: RemoteCredentials | None = None,
    ) -> ConfigBridge:
        """Build the bridge for a local or remote target.

        Args:
            target_url: Remote URL to test instead of the local site
            remote_credentials: Auth credentials valid on the remote target

        Returns:
            Bridge containing only suites that are enabled and detected

        """
        is_remote = bool(target_url)
        base_url = target_url.rstrip("/") if target_url else self.site.base_url()
        has_remote_auth = (
            remote_credentials is not None and remote_credentials.has_secret
        )

        suites = {
            suite_id: self._suite_entry(definition)
            for suite_id, definition in self.runnable_suites().items()
        }

        if AUTH_SUITE_ID in suites:
            if has_remote_auth and remote_credentials is not None:
                user = remote_credentials.user or BOT_USERNAME
                password = remote_credentials.password.get_secret_value()
            else:
                user = BOT_USERNAME
                password = self.secrets.bot_password()
            suites[AUTH_SUITE_ID]["testUser"] = user
            suites[AUTH_SUITE_ID]["testPassword"] = password

        return ConfigBridge(
            base_url=base_url,
            remote=is_remote,
            remote_auth=has_remote_auth,
            site_title=self.site.site_title(),
            timeout=self.settings.timeout,
            custom_urls=list(self.settings.custom_urls),
            suites=suites,
        )

    def runnable_suites(self) -> dict[str, SuiteDefinition]:
        """Suites that are both detected and enabled in settings."""
        return {
            suite_id: definition
            for suite_id, definition in self.registry.detect().items()
            if definition.detected and self.settings.is_enabled(suite_id)
        }

    def write_config(
        self,
        target_url: str | None = None,
        remote_credentials: RemoteCredentials | None = None,
    ) -> Path:
        """Generate the bridge and overwrite the bridge file with it."""
        bridge = self.generate(target_url, remote_credentials)
        self.path.write_text(json.dumps(bridge.to_json_dict(), indent=2))
        log.info(
            "Wrote runner config to %s (base_url=%s, remote=%s, suites=%d)",
            self.path,
            bridge.base_url,
            bridge.remote,
            len(bridge.suites),
        )
        return self.path

    @staticmethod
    def _suite_entry(definition: SuiteDefinition) -> dict[str, Any]:
        return {
            "enabled": True,
            "detected": True,
            "label": definition.label,
            "description": definition.description,
            "weight": definition.weight,
            "provider": definition.provider_id,
            **definition.metadata,
        }
