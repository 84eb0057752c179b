"""Key-value state and secret stores."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from smoke_orchestrator.constants import STATE_BOT_PASSWORD

log = logging.getLogger(__name__)


class StateStore(Protocol):
    """Persistent key-value store."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value or ``default``."""

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-compatible value."""


class SecretStore(Protocol):
    """Source of the local auth credential."""

    def bot_password(self) -> str:
        """Return the local test user's password, empty when unknown."""


@dataclass(kw_only=True)
class InMemoryStateStore:
    """State store living only for the current process."""

    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.data[key] = value


@dataclass(frozen=True, kw_only=True)
class JsonFileStateStore:
    """State store persisted as a single JSON object on disk.

    Every ``set`` rewrites the whole file. Overlapping writers are not
    coordinated; the last write wins.
    """

    path: Path

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError:
            log.warning("State file %s is corrupt, starting empty", self.path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))


@dataclass(frozen=True, kw_only=True)
class StateSecretStore:
    """Reads the local bot password from the state store."""

    state: StateStore

    def bot_password(self) -> str:
        return str(self.state.get(STATE_BOT_PASSWORD, "") or "")
