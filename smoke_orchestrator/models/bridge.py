"""Models for the JSON config bridge read by the external runner."""

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, Field, SecretStr

from smoke_orchestrator.constants import BOT_USERNAME, DEFAULT_TIMEOUT_MS
from smoke_orchestrator.models.base import Model


class RemoteCredentials(BaseModel):
    """Credentials for the auth suite on a remote target."""

    user: str = BOT_USERNAME
    password: SecretStr = SecretStr("")

    @property
    def has_secret(self) -> bool:
        return bool(self.password.get_secret_value())


class ConfigBridge(Model):
    """Configuration handed to the runner through the bridge file."""

    base_url: str = Field(..., description="Site under test, no trailing slash")
    remote: bool = Field(default=False, description="Target is not the local site")
    remote_auth: bool = Field(
        default=False, description="Remote credentials were supplied"
    )
    site_title: str = Field(default="", description="Site name for title checks")
    timeout: int = Field(
        default=DEFAULT_TIMEOUT_MS, ge=0, description="Per-test timeout (ms)"
    )
    custom_urls: Sequence[str] = Field(default_factory=list)
    suites: Mapping[str, Mapping[str, Any]] = Field(
        default_factory=dict,
        description="Enabled and detected suites keyed by id",
    )
