"""Post-hoc validation of assignments against constraints."""

from collections.abc import Iterable

from tablemix.constraints import ConstraintIndex
from tablemix.history import group_by_table
from tablemix.models import Assignment, PreviewAssignment, Violation


def find_violations(
    assignments: Iterable[Assignment | PreviewAssignment],
    index: ConstraintIndex,
    guest_names: dict[str, str] | None = None,
) -> list[Violation]:
    """
    Report every constraint the assignments fail to honor.

    Pins are checked per round, repels per round and table. An attract pair
    is reported once, with round 0, only if the two guests never share a
    table in any round. The result is advisory and never raises.
    """
    names = guest_names or {}
    rows = list(assignments)
    violations: list[Violation] = []

    def label(guest_id: str) -> str:
        return names.get(guest_id, guest_id)

    seated = {key: set(guest_ids) for key, guest_ids in group_by_table(rows).items()}

    for guest_id, pinned_table in index.pins.items():
        for a in rows:
            if a.guest_id == guest_id and a.table_number != pinned_table:
                violations.append(
                    Violation(
                        type="pin",
                        round=a.round_number,
                        description=(
                            f"{label(guest_id)} pinned to table {pinned_table} "
                            f"but assigned to table {a.table_number}"
                        ),
                    )
                )

    for guest1, guest2 in sorted(index.repels):
        for (round_number, table_number), guest_ids in sorted(seated.items()):
            if guest1 in guest_ids and guest2 in guest_ids:
                violations.append(
                    Violation(
                        type="repel",
                        round=round_number,
                        description=(
                            f"Repelled guests {label(guest1)} and {label(guest2)} "
                            f"seated together at table {table_number}"
                        ),
                    )
                )

    for guest1, guest2 in sorted(index.attracts):
        together = any(guest1 in ids and guest2 in ids for ids in seated.values())
        if not together:
            violations.append(
                Violation(
                    type="attract",
                    round=0,
                    description=(
                        f"Attracted guests {label(guest1)} and {label(guest2)} "
                        "never seated together in any round"
                    ),
                )
            )

    return violations
