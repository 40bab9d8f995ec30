"""
Pairwise compatibility scoring for tablemix.

All functions here are pure: they look only at the two guests and the
weights they are given.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from tablemix.models import Assignment, Guest, GuestAttributes, MatchingWeights
from tablemix.normalize import (
    MAX_LEVEL_DISTANCE,
    job_level_rank,
    normalize_label,
    normalize_tags,
    same_department,
)

# Goal compatibility matrix: how well two networking intents work together.
# Pairs missing from the matrix count as neutral (0).
GOAL_COMPATIBILITY: dict[str, dict[str, float]] = {
    "find-mentor": {
        "find-mentor": 0.0,
        "recruit": 0.5,
        "learn": 0.3,
        "network": 0.5,
        "partner": 0.3,
        "sell": 0.0,
        "invest": 0.7,
    },
    "recruit": {
        "find-mentor": 0.5,
        "recruit": -0.3,  # competing recruiters
        "learn": 0.6,
        "network": 0.5,
        "partner": 0.4,
        "sell": 0.3,
        "invest": 0.4,
    },
    "learn": {
        "find-mentor": 0.3,
        "recruit": 0.6,
        "learn": 0.4,
        "network": 0.5,
        "partner": 0.4,
        "sell": 0.2,
        "invest": 0.3,
    },
    "network": {
        "find-mentor": 0.5,
        "recruit": 0.5,
        "learn": 0.5,
        "network": 0.8,
        "partner": 0.7,
        "sell": 0.5,
        "invest": 0.6,
    },
    "partner": {
        "find-mentor": 0.3,
        "recruit": 0.4,
        "learn": 0.4,
        "network": 0.7,
        "partner": 0.6,
        "sell": 0.5,
        "invest": 0.8,
    },
    "sell": {
        "find-mentor": 0.0,
        "recruit": 0.3,
        "learn": 0.2,
        "network": 0.5,
        "partner": 0.5,
        "sell": -0.2,  # competing sellers
        "invest": 0.7,
    },
    "invest": {
        "find-mentor": 0.7,
        "recruit": 0.4,
        "learn": 0.3,
        "network": 0.6,
        "partner": 0.8,
        "sell": 0.7,
        "invest": 0.5,
    },
}


def jaccard_similarity(items1: Iterable[str] | None, items2: Iterable[str] | None) -> float:
    """
    Case-insensitive Jaccard similarity of two tag collections.

    Returns 0-1 where 1 means identical sets; 0 if either side is empty.
    """
    set1 = normalize_tags(items1)
    set2 = normalize_tags(items2)
    if not set1 or not set2:
        return 0.0
    return len(set1 & set2) / len(set1 | set2)


def interest_overlap(attrs1: GuestAttributes | None, attrs2: GuestAttributes | None) -> float:
    return jaccard_similarity(
        attrs1.interests if attrs1 else None,
        attrs2.interests if attrs2 else None,
    )


def tag_overlap(attrs1: GuestAttributes | None, attrs2: GuestAttributes | None) -> float:
    return jaccard_similarity(
        attrs1.custom_tags if attrs1 else None,
        attrs2.custom_tags if attrs2 else None,
    )


def job_level_distance(attrs1: GuestAttributes | None, attrs2: GuestAttributes | None) -> float:
    """
    Distance between two guests' job levels.

    Returns 0-1 where 0 is the same level and 1 is junior vs executive.
    A missing level on either guest gives the neutral 0.5.
    """
    level1 = attrs1.job_level if attrs1 else None
    level2 = attrs2.job_level if attrs2 else None
    if not normalize_label(level1) or not normalize_label(level2):
        return 0.5
    return abs(job_level_rank(level1) - job_level_rank(level2)) / MAX_LEVEL_DISTANCE


def goal_compatibility(attrs1: GuestAttributes | None, attrs2: GuestAttributes | None) -> float:
    """Average matrix compatibility over every pair of the two guests' goals."""
    goals1 = [g for g in (normalize_label(g) for g in (attrs1.goals if attrs1 else [])) if g]
    goals2 = [g for g in (normalize_label(g) for g in (attrs2.goals if attrs2 else [])) if g]
    if not goals1 or not goals2:
        return 0.0

    total = 0.0
    for g1 in goals1:
        row = GOAL_COMPATIBILITY.get(g1, {})
        for g2 in goals2:
            total += row.get(g2, 0.0)
    return total / (len(goals1) * len(goals2))


def guest_compatibility(guest1: Guest, guest2: Guest, weights: MatchingWeights) -> float:
    """
    Overall compatibility of two guests sitting together; higher is better.

    Each sub-score is bounded to roughly [-1, 1] before weighting. Terms with
    a zero weight are skipped entirely.
    """
    score = 0.0

    # Positive weight rewards different departments
    if weights.department_mix != 0:
        dept_score = -1.0 if same_department(guest1.department, guest2.department) else 1.0
        score += dept_score * weights.department_mix

    if weights.interest_affinity != 0:
        overlap = interest_overlap(guest1.attributes, guest2.attributes)
        score += (overlap * 2 - 1) * weights.interest_affinity

    if weights.job_level_diversity != 0:
        distance = job_level_distance(guest1.attributes, guest2.attributes)
        score += (distance * 2 - 1) * weights.job_level_diversity

    if weights.goal_compatibility != 0:
        score += goal_compatibility(guest1.attributes, guest2.attributes) * weights.goal_compatibility

    return score


def table_quality_score(table_guests: Sequence[Guest], weights: MatchingWeights) -> float:
    """Average pairwise compatibility over all unique pairs at a table."""
    if len(table_guests) < 2:
        return 0.0

    total = 0.0
    pair_count = 0
    for i in range(len(table_guests)):
        for j in range(i + 1, len(table_guests)):
            total += guest_compatibility(table_guests[i], table_guests[j], weights)
            pair_count += 1
    return total / pair_count


@dataclass
class TableReport:
    """Diagnostics for one table in one round."""

    round_number: int
    table_number: int
    guest_ids: list[str]
    quality: float
    tag_overlap: float  # mean custom-tag overlap across pairs
    largest_department: int  # size of the biggest same-department group


def seating_report(
    assignments: Iterable[Assignment],
    guests: Sequence[Guest],
    weights: MatchingWeights,
) -> list[TableReport]:
    """Per-table quality diagnostics for a set of assignments, sorted by round and table."""
    guest_by_id = {g.id: g for g in guests}
    tables: dict[tuple[int, int], list[Guest]] = defaultdict(list)
    for a in assignments:
        guest = guest_by_id.get(a.guest_id)
        if guest is not None:
            tables[(a.round_number, a.table_number)].append(guest)

    reports: list[TableReport] = []
    for (round_number, table_number), seated in sorted(tables.items()):
        n = len(seated)
        tags = np.zeros((n, n))
        for i in range(n):
            for j in range(i + 1, n):
                tags[i, j] = tag_overlap(seated[i].attributes, seated[j].attributes)
        upper = np.triu_indices(n, k=1)

        departments: dict[str, int] = defaultdict(int)
        for guest in seated:
            label = normalize_label(guest.department)
            if label:
                departments[label] += 1

        reports.append(
            TableReport(
                round_number=round_number,
                table_number=table_number,
                guest_ids=[g.id for g in seated],
                quality=table_quality_score(seated, weights),
                tag_overlap=float(tags[upper].mean()) if n >= 2 else 0.0,
                largest_department=max(departments.values(), default=0),
            )
        )
    return reports
