"""Constraint lookup structures and department concentration penalty."""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from tablemix.errors import InvalidConstraintError
from tablemix.models import CONSTRAINT_TYPES, Constraint, ConstraintConflict, Guest
from tablemix.normalize import normalize_label, same_department

# Penalty multiplier indexed by the number of same-department guests already seated
CONCENTRATION_MULTIPLIERS: tuple[float, ...] = (0, 1, 2.5, 5, 10, 15, 20)


def canonical_pair(guest_id1: str, guest_id2: str) -> tuple[str, str]:
    """Order-independent key for a pair of guests."""
    return (guest_id1, guest_id2) if guest_id1 <= guest_id2 else (guest_id2, guest_id1)


@dataclass
class ConstraintIndex:
    """Fast lookups over one event's constraints."""

    pins: dict[str, int] = field(default_factory=dict)
    repels: set[tuple[str, str]] = field(default_factory=set)
    attracts: set[tuple[str, str]] = field(default_factory=set)

    @classmethod
    def from_constraints(cls, constraints: Iterable[Constraint]) -> "ConstraintIndex":
        index = cls()
        for c in constraints:
            if c.type == "pin" and c.table_number is not None and c.guest_ids:
                index.pins.setdefault(c.guest_ids[0], c.table_number)
            elif c.type == "repel" and len(c.guest_ids) == 2:
                index.repels.add(canonical_pair(*c.guest_ids))
            elif c.type == "attract" and len(c.guest_ids) == 2:
                index.attracts.add(canonical_pair(*c.guest_ids))
        return index

    def pinned_table(self, guest_id: str) -> int | None:
        return self.pins.get(guest_id)

    def is_repelled(self, guest_id1: str, guest_id2: str) -> bool:
        return canonical_pair(guest_id1, guest_id2) in self.repels

    def is_attracted(self, guest_id1: str, guest_id2: str) -> bool:
        return canonical_pair(guest_id1, guest_id2) in self.attracts

    def __bool__(self) -> bool:
        return bool(self.pins or self.repels or self.attracts)


def concentration_penalty(
    department: str | None,
    occupants: Sequence[Guest],
    weight: float,
) -> float:
    """
    Convex penalty for adding another guest of the same department to a table.

    The n-th same-department placement costs disproportionately more than
    the one before it, so monoculture tables are discouraged without being
    forbidden.
    """
    if weight == 0 or normalize_label(department) is None:
        return 0.0
    count = sum(1 for g in occupants if same_department(department, g.department))
    return weight * CONCENTRATION_MULTIPLIERS[min(count, len(CONCENTRATION_MULTIPLIERS) - 1)]


def validate_constraint(constraint: Constraint) -> None:
    """Raise InvalidConstraintError if a constraint record is malformed."""
    if constraint.type not in CONSTRAINT_TYPES:
        raise InvalidConstraintError(f"Invalid constraint type: {constraint.type}")
    if constraint.type == "pin":
        if len(constraint.guest_ids) != 1:
            raise InvalidConstraintError("Pin constraints require exactly one guest")
        if constraint.table_number is None:
            raise InvalidConstraintError("Pin constraints require a table number")
        if constraint.table_number < 1:
            raise InvalidConstraintError(
                f"Pin table number must be positive, got {constraint.table_number}"
            )
    elif len(constraint.guest_ids) != 2:
        raise InvalidConstraintError("Repel and attract constraints require exactly two guests")
    elif constraint.guest_ids[0] == constraint.guest_ids[1]:
        raise InvalidConstraintError(f"A {constraint.type} constraint needs two different guests")


def check_duplicate_constraint(constraint: Constraint, existing: Iterable[Constraint]) -> None:
    """Raise InvalidConstraintError if an equivalent constraint already exists."""
    for other in existing:
        if other.type != constraint.type:
            continue
        if constraint.type == "pin":
            if other.guest_ids[:1] == constraint.guest_ids[:1]:
                raise InvalidConstraintError("This guest already has a pin constraint")
        elif canonical_pair(*other.guest_ids) == canonical_pair(*constraint.guest_ids):
            raise InvalidConstraintError(f"This pair already has a {constraint.type} constraint")


def find_constraint_conflicts(
    constraints: Sequence[Constraint],
    table_size: int,
    guest_names: dict[str, str] | None = None,
) -> list[ConstraintConflict]:
    """
    Find constraints that contradict each other.

    Reports pairs that are both repelled and attracted, guests pinned to more
    than one table, and tables with more pinned guests than seats. These are
    advisory; placement still runs and honors a guest's first pin.
    """
    names = guest_names or {}
    conflicts: list[ConstraintConflict] = []

    attract_by_pair: dict[tuple[str, str], Constraint] = {}
    for c in constraints:
        if c.type == "attract" and len(c.guest_ids) == 2:
            attract_by_pair[canonical_pair(*c.guest_ids)] = c

    for c in constraints:
        if c.type != "repel" or len(c.guest_ids) != 2:
            continue
        other = attract_by_pair.get(canonical_pair(*c.guest_ids))
        if other is not None:
            who = " and ".join(names.get(g, g) for g in c.guest_ids)
            conflicts.append(
                ConstraintConflict(
                    severity="error",
                    message=f"Conflicting constraints: {who} have both repel and attract constraints",
                    constraint_ids=[c.id, other.id],
                )
            )

    pins_by_guest: dict[str, list[Constraint]] = defaultdict(list)
    for c in constraints:
        if c.type == "pin" and c.table_number is not None and c.guest_ids:
            pins_by_guest[c.guest_ids[0]].append(c)

    for guest_id, pins in pins_by_guest.items():
        tables = sorted({c.table_number for c in pins})
        if len(tables) > 1:
            conflicts.append(
                ConstraintConflict(
                    severity="error",
                    message=(
                        f"{names.get(guest_id, guest_id)} is pinned to tables "
                        + ", ".join(str(t) for t in tables)
                    ),
                    constraint_ids=[c.id for c in pins],
                )
            )

    pins_by_table: dict[int, list[str]] = defaultdict(list)
    for c in constraints:
        if c.type == "pin" and c.table_number is not None:
            pins_by_table[c.table_number].append(c.id)

    for table_number, constraint_ids in sorted(pins_by_table.items()):
        if len(constraint_ids) > table_size:
            conflicts.append(
                ConstraintConflict(
                    severity="error",
                    message=(
                        f"Table {table_number} has {len(constraint_ids)} pinned guests "
                        f"but only {table_size} seats"
                    ),
                    constraint_ids=constraint_ids,
                )
            )

    return conflicts
