"""Conversion between suite ids and on-disk spec names.

Suite ids are lower_snake_case. Spec files and directories use the same
string with underscores replaced by dashes (``core_pages`` ->
``core-pages.spec.ts``). Every place that maps between the two goes through
this module.
"""

import re

SPEC_SUFFIX = ".spec.ts"

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def to_spec_name(suite_id: str) -> str:
    """Return the dash-cased on-disk name for a suite id."""
    return suite_id.replace("_", "-")


def to_suite_id(spec_name: str) -> str:
    """Return the suite id for a dash-cased spec name."""
    return spec_name.replace("-", "_")


def spec_filename(suite_id: str) -> str:
    """Return the single-file spec name for a suite id."""
    return to_spec_name(suite_id) + SPEC_SUFFIX


def slugify(text: str) -> str:
    """Collapse free text into a suite-id-shaped slug.

    Lossy: ``"My Custom Suite!"`` becomes ``"my_custom_suite"``.
    """
    return _NON_SLUG.sub("_", text.strip().lower()).strip("_")


def default_label(suite_id: str) -> str:
    """Human label for a suite id that declares none."""
    label = suite_id.replace("_", " ")
    return label[:1].upper() + label[1:]
