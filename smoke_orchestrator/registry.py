"""Resolve the runnable suites from built-in descriptors and declarations."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from smoke_orchestrator.constants import DECLARATION_FILENAME, SUITES_DIRNAME
from smoke_orchestrator.declaration_loader import load_suite_declarations
from smoke_orchestrator.models.suite import (
    BuiltinSuite,
    DeclaredSuite,
    SuiteDefinition,
)
from smoke_orchestrator.naming import default_label, spec_filename, to_spec_name
from smoke_orchestrator.site import FeatureDetector

log = logging.getLogger(__name__)

BUILTIN_PROVIDER = "smoke"

BUILTIN_SUITES: Sequence[BuiltinSuite] = (
    BuiltinSuite(
        id="core_pages",
        label="Core Pages",
        description="Homepage, login, and critical pages return 200 "
        "with no PHP errors.",
    ),
    BuiltinSuite(
        id="auth",
        label="Authentication",
        description="Login form works, invalid credentials show errors, "
        "password reset exists.",
    ),
    BuiltinSuite(
        id="webform",
        label="Webform",
        description="Submits the configured webform and confirms it works.",
        capabilities=("webform",),
    ),
    BuiltinSuite(
        id="commerce",
        label="Commerce",
        description="Product pages, cart and checkout are reachable.",
        capabilities=("commerce",),
    ),
    BuiltinSuite(
        id="search",
        label="Search",
        description="Search page loads and returns results.",
        capabilities=("search_api", "search"),
    ),
    BuiltinSuite(
        id="health",
        label="Health",
        description="Status report, cron and asset loading are healthy.",
    ),
    BuiltinSuite(
        id="sitemap",
        label="Sitemap",
        description="XML sitemap is served and well-formed.",
        capabilities=("simple_sitemap", "xmlsitemap"),
    ),
    BuiltinSuite(
        id="content",
        label="Content",
        description="Content can be created, viewed and deleted.",
    ),
    BuiltinSuite(
        id="accessibility",
        label="Accessibility",
        description="Key pages pass automated accessibility checks.",
    ),
)


def _build_title_map(suites: Sequence[BuiltinSuite]) -> Mapping[str, str]:
    titles: dict[str, str] = {}
    for suite in suites:
        titles[to_spec_name(suite.id)] = suite.id
        titles[suite.label] = suite.id
        titles[spec_filename(suite.id)] = suite.id
    return titles


# Runner suite titles (file names or describe blocks) -> suite ids.
SUITE_TITLE_MAP: Mapping[str, str] = _build_title_map(BUILTIN_SUITES)


class UnknownSuiteError(ValueError):
    """Raised when a suite id matches no built-in or declared suite."""


def resolve_suite_id(title: str) -> str | None:
    """Map a runner suite title back to a built-in suite id."""
    return SUITE_TITLE_MAP.get(title)


@dataclass(frozen=True, kw_only=True)
class SuiteRegistry:
    """Resolves suite definitions fresh on every call.

    Built-in suites come from ``BUILTIN_SUITES`` and are detected through the
    feature detector. Declared suites come from ``smoke.suites.yml`` files in
    the declaration roots; they are detected when all their dependencies are
    present and are left out entirely when no spec can be found. Built-in
    definitions win on id collisions.
    """

    runner_dir: Path
    detector: FeatureDetector
    declaration_roots: Sequence[Path] = ()

    @property
    def suites_dir(self) -> Path:
        return self.runner_dir / SUITES_DIRNAME

    def detect(self) -> dict[str, SuiteDefinition]:
        """Return all known suites keyed by id."""
        suites: dict[str, SuiteDefinition] = {}

        for builtin in BUILTIN_SUITES:
            suites[builtin.id] = self._detect_builtin(builtin)

        for declared in self._load_declared():
            if declared.id in suites:
                log.debug(
                    "Declared suite %s from %s shadowed by built-in",
                    declared.id,
                    declared.provider_id,
                )
                continue
            try:
                definition = self._detect_declared(declared)
            except Exception as e:
                log.warning("Failed to detect declared suite %s: %s", declared.id, e)
                continue
            if definition is None:
                log.debug("Declared suite %s has no spec, skipping", declared.id)
                continue
            suites[declared.id] = definition

        return suites

    def require(self, suite_id: str) -> SuiteDefinition:
        """Return a suite definition or raise UnknownSuiteError."""
        suites = self.detect()
        if suite_id not in suites:
            raise UnknownSuiteError(
                f"Unknown suite '{suite_id}'. Available suites: {sorted(suites)}"
            )
        return suites[suite_id]

    def get_spec_path(self, suite_id: str) -> Path | None:
        """Return the spec file or directory for a suite, or None.

        Resolution order: the declaration's explicit ``spec_path``, the
        declaring root's own spec locations (file, then multi-file
        directory), then the runner's built-in suites directory.
        """
        declared = next(
            (suite for suite in self._load_declared() if suite.id == suite_id), None
        )
        is_builtin = any(suite.id == suite_id for suite in BUILTIN_SUITES)
        if declared is None and not is_builtin:
            return None
        return self._resolve_spec_path(suite_id, None if is_builtin else declared)

    def _resolve_spec_path(
        self, suite_id: str, declared: DeclaredSuite | None
    ) -> Path | None:
        filename = spec_filename(suite_id)
        dirname = to_spec_name(suite_id)
        candidates: list[Path] = []

        if declared is not None:
            root = declared.root
            if declared.declaration.spec_path:
                candidates.append(root / declared.declaration.spec_path)
            candidates.extend(
                [
                    root / "playwright" / SUITES_DIRNAME / filename,
                    root / "tests" / "playwright" / filename,
                    root / "playwright" / SUITES_DIRNAME / dirname,
                ]
            )

        candidates.extend([self.suites_dir / filename, self.suites_dir / dirname])

        return next((path for path in candidates if path.exists()), None)

    def _detect_builtin(self, builtin: BuiltinSuite) -> SuiteDefinition:
        try:
            detected = not builtin.capabilities or any(
                self.detector.has_capability(name) for name in builtin.capabilities
            )
            metadata = dict(self.detector.suite_metadata(builtin.id))
        except Exception as e:
            log.warning("Feature detection failed for suite %s: %s", builtin.id, e)
            detected, metadata = False, {}

        # The detector may veto a suite whose capability is present but unusable.
        if metadata.pop("detected", True) is False:
            detected = False

        return SuiteDefinition(
            id=builtin.id,
            label=builtin.label,
            description=builtin.description,
            weight=builtin.weight,
            dependencies=list(builtin.capabilities),
            spec_locator=self._resolve_spec_path(builtin.id, None),
            detected=detected,
            provider_id=BUILTIN_PROVIDER,
            origin="builtin",
            metadata=metadata,
        )

    def _detect_declared(self, declared: DeclaredSuite) -> SuiteDefinition | None:
        spec_path = self._resolve_spec_path(declared.id, declared)
        if spec_path is None:
            return None

        declaration = declared.declaration
        detected = all(
            self.detector.has_capability(name) for name in declaration.dependencies
        )
        return SuiteDefinition(
            id=declared.id,
            label=declaration.label or default_label(declared.id),
            description=declaration.description,
            icon=declaration.icon,
            weight=declaration.weight,
            dependencies=list(declaration.dependencies),
            spec_locator=spec_path,
            detected=detected,
            provider_id=declared.provider_id,
            origin="declared",
            metadata=dict(self.detector.suite_metadata(declared.id)),
        )

    def _load_declared(self) -> list[DeclaredSuite]:
        declared: list[DeclaredSuite] = []
        for root in self.declaration_roots:
            if not (root / DECLARATION_FILENAME).exists():
                continue
            try:
                declared.extend(load_suite_declarations(root))
            except (FileNotFoundError, ValueError) as e:
                log.warning("Failed to load suite declarations from %s: %s", root, e)
        return sorted(declared, key=lambda suite: (suite.declaration.weight, suite.id))
