"""Settings for the smoke orchestrator."""

from collections.abc import Mapping, Sequence
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from smoke_orchestrator.constants import (
    DEFAULT_PROCESS_TIMEOUT,
    DEFAULT_TIMEOUT_MS,
    MIN_NODE_VERSION,
)


class SmokeSettings(BaseModel):
    """Configuration of a smoke run."""

    runner_dir: Path = Path("playwright")
    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, ge=0)
    process_timeout: float = Field(default=DEFAULT_PROCESS_TIMEOUT, gt=0)
    suites: Mapping[str, bool] = Field(default_factory=dict)
    custom_urls: Sequence[str] = Field(default_factory=list)
    site_title: str = ""
    base_url: str | None = None
    capabilities: Sequence[str] = Field(default_factory=list)
    declaration_roots: Sequence[Path] = Field(default_factory=list)
    state_path: Path = Path(".smoke-state.json")
    min_node_version: int = MIN_NODE_VERSION

    def is_enabled(self, suite_id: str) -> bool:
        """Suites are enabled unless explicitly switched off."""
        return self.suites.get(suite_id, True)


def load_settings(path: Path) -> SmokeSettings:
    """Load settings from a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the YAML is malformed, empty or fails validation

    """
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty settings file: {path}")

    try:
        return SmokeSettings.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid settings schema in {path}: {e}") from e
