"""Attribute normalization for tablemix."""

from collections.abc import Iterable

# Job level hierarchy, lowest to highest
JOB_LEVEL_ORDER: dict[str, int] = {
    "junior": 0,
    "mid": 1,
    "senior": 2,
    "executive": 3,
}

# Rank used for a level outside the hierarchy
UNKNOWN_LEVEL_RANK = 1.5

MAX_LEVEL_DISTANCE = 3


def normalize_label(value: str | None) -> str | None:
    """Lowercase and strip a free-text label. Blank labels become None."""
    if value is None:
        return None
    label = value.strip().lower()
    return label or None


def normalize_tags(values: Iterable[str] | None) -> set[str]:
    """
    Normalize a collection of tags for case-insensitive set comparison.

    Blank entries are dropped.
    """
    if not values:
        return set()
    tags: set[str] = set()
    for value in values:
        label = normalize_label(value)
        if label:
            tags.add(label)
    return tags


def same_department(dept1: str | None, dept2: str | None) -> bool:
    """True when both departments are set and equal ignoring case."""
    label1 = normalize_label(dept1)
    return label1 is not None and label1 == normalize_label(dept2)


def job_level_rank(level: str | None) -> float:
    """Position of a job level in the hierarchy (unknown levels sit in the middle)."""
    label = normalize_label(level)
    if label is None:
        return UNKNOWN_LEVEL_RANK
    return JOB_LEVEL_ORDER.get(label, UNKNOWN_LEVEL_RANK)


def split_list_cell(cell: str | None) -> list[str]:
    """Split a spreadsheet cell holding a `;` or `,` separated list."""
    if not cell:
        return []
    separator = ";" if ";" in cell else ","
    return [part.strip() for part in cell.split(separator) if part.strip()]
