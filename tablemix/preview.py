"""
Preview staging: generate a candidate seating, review it, then commit or discard.

A preview lives in its own collection keyed by session id, so generating
one never touches the final assignments and committing is a bulk replace.
"""

import logging
import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import numpy as np

from tablemix.conflicts import find_violations
from tablemix.constraints import ConstraintIndex, find_constraint_conflicts
from tablemix.errors import (
    ConfigError,
    EmptyGuestListError,
    NoPreviewError,
    PreviewAssignmentNotFoundError,
)
from tablemix.history import TablemateHistory, repeated_pairings
from tablemix.models import (
    MAX_ROUNDS,
    WEIGHT_PRESETS,
    Assignment,
    CommitResult,
    ConstraintConflict,
    DiscardResult,
    GenerateResult,
    MatchingConfig,
    MatchingWeights,
    PreviewAssignment,
    PreviewRow,
    PreviewView,
    RoundsUpdate,
    Violation,
)
from tablemix.optimizer import assign_rounds
from tablemix.store import MemoryStore

logger = logging.getLogger(__name__)

# Previews older than this are removed by expire_stale()
PREVIEW_TTL = timedelta(minutes=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_session_id(now: datetime) -> str:
    return f"preview_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:7]}"


def resolve_weights(config: MatchingConfig | None) -> MatchingWeights:
    """
    Weights for an event: preset (if any) overlaid with explicit values.

    Events without a config use the defaults.
    """
    if config is None:
        return MatchingWeights()
    base = MatchingWeights()
    if config.preset:
        if config.preset not in WEIGHT_PRESETS:
            raise ConfigError(f"Unknown weight preset: {config.preset}")
        base = WEIGHT_PRESETS[config.preset]
    merged = {
        "department_mix": base.department_mix,
        "interest_affinity": base.interest_affinity,
        "job_level_diversity": base.job_level_diversity,
        "goal_compatibility": base.goal_compatibility,
        "repeat_avoidance": base.repeat_avoidance,
    }
    merged.update(config.weights or {})
    return MatchingWeights.from_mapping(merged)


class PreviewStaging:
    """Runs the assignment engine and manages staged previews for events."""

    def __init__(
        self,
        store: MemoryStore,
        rng: np.random.Generator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or _utcnow

    def _guest_names(self, event_id: str) -> dict[str, str]:
        return {g.id: g.name for g in self.store.guests_for_event(event_id)}

    def generate(self, event_id: str) -> GenerateResult:
        """
        Stage a fresh seating for every round of an event.

        Replaces any existing preview for the event. Constraint violations
        are reported but never block staging.
        """
        event = self.store.get_event(event_id)
        guests = self.store.guests_for_event(event_id)
        if not guests:
            raise EmptyGuestListError(f"No guests to assign for event {event_id}")

        weights = resolve_weights(self.store.matching_config_for(event_id))
        index = ConstraintIndex.from_constraints(self.store.constraints_for(event_id))
        number_of_rounds = event.number_of_rounds or 1

        assignments = assign_rounds(
            guests,
            event.table_size,
            number_of_rounds,
            index,
            weights,
            rng=self.rng,
        )

        stale = self.store.previews_for(event_id)
        if stale:
            self.store.delete_previews(stale)
            logger.debug("Cleared %d stale preview rows for event %s", len(stale), event_id)

        created_at = self.clock()
        session_id = generate_session_id(created_at)
        self.store.insert_previews(
            PreviewAssignment(
                event_id=event_id,
                session_id=session_id,
                guest_id=a.guest_id,
                round_number=a.round_number,
                table_number=a.table_number,
                created_at=created_at,
            )
            for a in assignments
        )

        violations = find_violations(assignments, index, self._guest_names(event_id))
        if violations:
            logger.warning(
                "Preview %s for event %s has %d constraint violation(s)",
                session_id,
                event_id,
                len(violations),
            )
        logger.info("Staged preview %s with %d assignments", session_id, len(assignments))

        return GenerateResult(
            session_id=session_id,
            total_assignments=len(assignments),
            rounds=number_of_rounds,
            constraint_violations=violations,
            repeated_pairings=repeated_pairings(assignments),
        )

    def get(self, event_id: str) -> PreviewView | None:
        """The staged preview grouped by round, or None if nothing is staged."""
        self.store.get_event(event_id)
        rows = self.store.previews_for(event_id)
        if not rows:
            return None

        by_round: dict[int, list[PreviewRow]] = defaultdict(list)
        for p in rows:
            guest = self.store.guests.get(p.guest_id)
            by_round[p.round_number].append(
                PreviewRow(
                    guest_id=p.guest_id,
                    guest_name=guest.name if guest else "Unknown",
                    guest_department=guest.department if guest else None,
                    round_number=p.round_number,
                    table_number=p.table_number,
                )
            )
        for round_rows in by_round.values():
            round_rows.sort(key=lambda r: (r.table_number, r.guest_name))

        return PreviewView(
            session_id=rows[0].session_id,
            created_at=rows[0].created_at,
            by_round=dict(sorted(by_round.items())),
        )

    def update_single(
        self,
        event_id: str,
        guest_id: str,
        round_number: int,
        new_table_number: int,
    ) -> None:
        """
        Move one staged guest to another table in one round.

        Does not rescore or check capacity; callers enforce capacity first.
        """
        self.store.get_event(event_id)
        for p in self.store.previews_for(event_id):
            if p.guest_id == guest_id and p.round_number == round_number:
                p.table_number = new_table_number
                return
        raise PreviewAssignmentNotFoundError(
            f"Preview assignment not found for guest {guest_id} in round {round_number}"
        )

    def commit(self, event_id: str) -> CommitResult:
        """
        Replace the event's final assignments with the staged preview.

        This is a destructive, event-scoped replace, not a merge.
        """
        event = self.store.get_event(event_id)
        rows = self.store.previews_for(event_id)
        if not rows:
            raise NoPreviewError(f"No preview to commit for event {event_id}")

        self.store.delete_assignments(event_id)
        self.store.insert_assignments(
            Assignment(p.guest_id, p.round_number, p.table_number, event_id=event_id)
            for p in rows
        )

        # Single-round readers look at the guest's own table number
        for p in rows:
            if p.round_number == 1 and p.guest_id in self.store.guests:
                self.store.guests[p.guest_id].table_number = p.table_number

        event.is_assigned = True
        event.current_round = 0

        self.store.delete_previews(rows)
        logger.info("Committed %d assignments for event %s", len(rows), event_id)
        return CommitResult(assigned_count=len(rows))

    def discard(self, event_id: str) -> DiscardResult:
        """Drop the staged preview without touching final assignments."""
        self.store.get_event(event_id)
        rows = self.store.previews_for(event_id)
        if not rows:
            raise NoPreviewError(f"No preview to discard for event {event_id}")
        deleted = self.store.delete_previews(rows)
        logger.info("Discarded %d preview rows for event %s", deleted, event_id)
        return DiscardResult(deleted_count=deleted)

    def expire_stale(self, now: datetime | None = None) -> int:
        """
        Delete preview rows older than PREVIEW_TTL across all events.

        A naive ``now`` is taken to be UTC.
        """
        now = now or self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        cutoff = now - PREVIEW_TTL
        expired = [p for p in self.store.previews if p.created_at < cutoff]
        deleted = self.store.delete_previews(expired)
        if deleted:
            logger.info("Expired %d stale preview rows", deleted)
        return deleted

    def check(self, event_id: str) -> list[Violation]:
        """Constraint violations in the event's committed assignments."""
        self.store.get_event(event_id)
        index = ConstraintIndex.from_constraints(self.store.constraints_for(event_id))
        return find_violations(
            self.store.assignments_for(event_id), index, self._guest_names(event_id)
        )

    def constraint_conflicts(self, event_id: str) -> list[ConstraintConflict]:
        """Constraints of the event that contradict each other."""
        event = self.store.get_event(event_id)
        return find_constraint_conflicts(
            self.store.constraints_for(event_id), event.table_size, self._guest_names(event_id)
        )

    def update_number_of_rounds(self, event_id: str, number_of_rounds: int) -> RoundsUpdate:
        """
        Change how many rounds an event has (clamped to 1..MAX_ROUNDS).

        For an assigned event, surplus rounds are deleted and new rounds are
        generated with the tablemate history of the rounds already seated.
        """
        event = self.store.get_event(event_id)
        new_rounds = max(1, min(MAX_ROUNDS, number_of_rounds))
        old_rounds = event.number_of_rounds or 1

        if not event.is_assigned or new_rounds == old_rounds:
            event.number_of_rounds = new_rounds
            return RoundsUpdate(number_of_rounds=new_rounds, regenerated=False)

        if new_rounds < old_rounds:
            deleted = self.store.delete_assignments(event_id, min_round=new_rounds + 1)
            logger.info("Dropped %d assignments beyond round %d", deleted, new_rounds)
            event.number_of_rounds = new_rounds
            return RoundsUpdate(number_of_rounds=new_rounds, regenerated=False)

        guests = self.store.guests_for_event(event_id)
        if not guests:
            event.number_of_rounds = new_rounds
            return RoundsUpdate(number_of_rounds=new_rounds, regenerated=False)

        existing = self.store.assignments_for(event_id)
        previous_tables = {
            a.guest_id: a.table_number for a in existing if a.round_number == old_rounds
        }
        added = assign_rounds(
            guests,
            event.table_size,
            new_rounds,
            ConstraintIndex.from_constraints(self.store.constraints_for(event_id)),
            resolve_weights(self.store.matching_config_for(event_id)),
            rng=self.rng,
            history=TablemateHistory.from_assignments(existing),
            start_round=old_rounds + 1,
            previous_tables=previous_tables,
        )
        for a in added:
            a.event_id = event_id
        self.store.insert_assignments(added)
        event.number_of_rounds = new_rounds

        return RoundsUpdate(
            number_of_rounds=new_rounds,
            regenerated=True,
            new_rounds_added=new_rounds - old_rounds,
        )
