"""Tablemate history: who has already shared a table with whom."""

from collections import defaultdict
from collections.abc import Iterable

from tablemix.constraints import canonical_pair
from tablemix.models import Assignment


class TablemateHistory:
    """
    Per-guest set of previous tablemates, built up round by round.

    Lives for the duration of one multi-round run and is then thrown away.
    """

    def __init__(self) -> None:
        self._mates: dict[str, set[str]] = defaultdict(set)

    @classmethod
    def from_assignments(cls, assignments: Iterable[Assignment]) -> "TablemateHistory":
        """Rebuild history from stored assignments covering any number of rounds."""
        history = cls()
        for guest_ids in group_by_table(assignments).values():
            history.record_table(guest_ids)
        return history

    def record_table(self, guest_ids: Iterable[str]) -> None:
        """Mark every guest at one table as a tablemate of every other."""
        seated = list(guest_ids)
        for guest_id in seated:
            mates = self._mates[guest_id]
            for other in seated:
                if other != guest_id:
                    mates.add(other)

    def record_round(self, tables: Iterable[Iterable[str]]) -> None:
        for guest_ids in tables:
            self.record_table(guest_ids)

    def mates(self, guest_id: str) -> frozenset[str]:
        return frozenset(self._mates.get(guest_id, ()))

    def has_sat_with(self, guest_id: str, other_id: str) -> bool:
        return other_id in self._mates.get(guest_id, ())

    def count_repeats(self, guest_id: str, occupant_ids: Iterable[str]) -> int:
        """Number of occupants this guest has already sat with."""
        mates = self._mates.get(guest_id)
        if not mates:
            return 0
        return sum(1 for other in occupant_ids if other in mates)

    def __len__(self) -> int:
        return len(self._mates)

    def __contains__(self, guest_id: object) -> bool:
        return guest_id in self._mates


def group_by_table(assignments: Iterable[Assignment]) -> dict[tuple[int, int], list[str]]:
    """Map (round, table) -> guest ids seated there."""
    tables: dict[tuple[int, int], list[str]] = defaultdict(list)
    for a in assignments:
        tables[(a.round_number, a.table_number)].append(a.guest_id)
    return tables


def repeated_pairings(assignments: Iterable[Assignment]) -> int:
    """Count guest pairs that share a table in two or more rounds."""
    rounds_together: dict[tuple[str, str], set[int]] = defaultdict(set)
    for (round_number, _table), guest_ids in group_by_table(assignments).items():
        for i, g1 in enumerate(guest_ids):
            for g2 in guest_ids[i + 1 :]:
                rounds_together[canonical_pair(g1, g2)].add(round_number)
    return sum(1 for rounds in rounds_together.values() if len(rounds) >= 2)
