"""Load suite declarations from ``smoke.suites.yml`` files."""

from collections.abc import Sequence
from pathlib import Path

import yaml
from pydantic import ValidationError

from smoke_orchestrator.constants import DECLARATION_FILENAME
from smoke_orchestrator.models.suite import DeclaredSuite, SuiteDeclaration


def load_suite_declarations(root: Path) -> Sequence[DeclaredSuite]:
    """Load the suites declared under a root directory.

    The file maps suite ids to declarations::

        agency_seo:
          label: SEO Checks
          dependencies: [metatag]
          spec_path: tests/playwright/seo.spec.ts

    Entries that are not mappings are ignored. The provider id is the name of
    the root directory.

    Raises:
        FileNotFoundError: If the root has no declaration file
        ValueError: If the YAML is malformed, empty or fails validation

    """
    path = root / DECLARATION_FILENAME
    if not path.exists():
        raise FileNotFoundError(f"Declaration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty declaration file: {path}")
    if not isinstance(data, dict):
        raise ValueError(f"Invalid suite declaration schema in {path}: not a mapping")

    declared: list[DeclaredSuite] = []
    for suite_id, entry in data.items():
        if not isinstance(entry, dict):
            continue
        try:
            declaration = SuiteDeclaration.model_validate(entry)
        except ValidationError as e:
            raise ValueError(
                f"Invalid suite declaration schema in {path} ({suite_id}): {e}"
            ) from e
        declared.append(
            DeclaredSuite(
                id=str(suite_id),
                declaration=declaration,
                provider_id=root.name,
                root=root,
            )
        )

    return declared
