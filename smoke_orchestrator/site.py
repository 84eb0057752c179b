"""Collaborators describing the site under test."""

import os
from collections.abc import Mapping, Set
from dataclasses import dataclass, field
from typing import Any, Protocol

from smoke_orchestrator.constants import ENV_LOCAL_URL


class FeatureDetector(Protocol):
    """Answers which features the site has and supplies per-suite metadata."""

    def has_capability(self, name: str) -> bool:
        """Return True when the site provides the named capability."""

    def suite_metadata(self, suite_id: str) -> Mapping[str, Any]:
        """Return extra fields for a suite (pages, forms, ...)."""


class SiteContext(Protocol):
    """Ambient information about the local site."""

    def base_url(self) -> str:
        """Return the local base URL without a trailing slash."""

    def site_title(self) -> str:
        """Return the site name."""


@dataclass(frozen=True, kw_only=True)
class StaticFeatureDetector:
    """Feature detector backed by a fixed capability set."""

    capabilities: Set[str] = frozenset()
    metadata: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    def has_capability(self, name: str) -> bool:
        return name in self.capabilities

    def suite_metadata(self, suite_id: str) -> Mapping[str, Any]:
        return self.metadata.get(suite_id, {})


@dataclass(frozen=True, kw_only=True)
class EnvironmentSiteContext:
    """Site context resolved from settings and the environment.

    The base URL prefers an explicit value, then ``DDEV_PRIMARY_URL``, then
    ``https://localhost``.
    """

    url: str | None = None
    title: str = ""

    def base_url(self) -> str:
        url = self.url or os.environ.get(ENV_LOCAL_URL) or "https://localhost"
        return url.rstrip("/")

    def site_title(self) -> str:
        return self.title
