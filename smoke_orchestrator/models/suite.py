"""Models for suite definitions, built-in descriptors and YAML declarations."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

from pydantic import Field

from smoke_orchestrator.models.base import Model

type SuiteOrigin = Literal["builtin", "declared"]


class SuiteDefinition(Model):
    """A runnable suite as resolved for one invocation."""

    id: str = Field(..., description="Stable lower_snake_case suite id")
    label: str = Field(..., description="Human-readable suite name")
    description: str = Field(default="", description="What the suite checks")
    icon: str | None = Field(default=None, description="Icon name for listings")
    weight: int = Field(default=0, description="Sort weight (lower runs first)")
    dependencies: Sequence[str] = Field(
        default_factory=list,
        description="Capability flags that must all be present",
    )
    spec_locator: Path | None = Field(
        default=None, description="Spec file or multi-file suite directory"
    )
    detected: bool = Field(..., description="Whether the suite applies to the site")
    provider_id: str = Field(..., description="Owner of the definition")
    origin: SuiteOrigin = Field(default="builtin")
    metadata: Mapping[str, Any] = Field(
        default_factory=dict,
        description="Extra per-suite fields forwarded to the runner",
    )


class SuiteDeclaration(Model):
    """Single entry of a ``smoke.suites.yml`` declaration file."""

    label: str | None = Field(default=None, description="Human-readable name")
    description: str = Field(default="", description="What the suite checks")
    icon: str | None = Field(default=None, description="Icon name for listings")
    weight: int = Field(default=0, description="Sort weight")
    dependencies: Sequence[str] = Field(
        default_factory=list, description="Required capability flags"
    )
    spec_path: str | None = Field(
        default=None, description="Spec path relative to the declaring root"
    )


@dataclass(frozen=True, kw_only=True)
class DeclaredSuite:
    """A declaration together with where it was declared."""

    id: str
    declaration: SuiteDeclaration
    provider_id: str
    root: Path


@dataclass(frozen=True, kw_only=True)
class BuiltinSuite:
    """Descriptor of a suite shipped with the runner.

    ``capabilities`` is an any-of predicate: the suite is available when the
    site has at least one of them. An empty tuple means always available.
    """

    id: str
    label: str
    description: str
    capabilities: tuple[str, ...] = ()
    weight: int = 0
