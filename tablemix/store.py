"""In-memory document store holding events, guests, constraints and assignments."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from tablemix.errors import NotFoundError
from tablemix.models import (
    Assignment,
    Constraint,
    Event,
    Guest,
    MatchingConfig,
    PreviewAssignment,
)


@dataclass
class MemoryStore:
    """
    Collections the engine reads from and writes to.

    Stands in for the host application's database. Every query is scoped to
    one event except the preview sweep, which spans all events.
    """

    events: dict[str, Event] = field(default_factory=dict)
    guests: dict[str, Guest] = field(default_factory=dict)
    matching_configs: dict[str, MatchingConfig] = field(default_factory=dict)
    constraints: list[Constraint] = field(default_factory=list)
    assignments: list[Assignment] = field(default_factory=list)
    previews: list[PreviewAssignment] = field(default_factory=list)

    def load(
        self,
        event: Event,
        guests: Iterable[Guest] = (),
        constraints: Iterable[Constraint] = (),
        config: MatchingConfig | None = None,
    ) -> Event:
        """Insert an event together with its guests, constraints and matching config."""
        self.events[event.id] = event
        for guest in guests:
            guest.event_id = event.id
            self.guests[guest.id] = guest
        for i, constraint in enumerate(constraints, start=len(self.constraints) + 1):
            constraint.event_id = event.id
            if not constraint.id:
                constraint.id = f"constraint_{i}"
            self.constraints.append(constraint)
        if config is not None:
            config.event_id = event.id
            self.matching_configs[event.id] = config
        return event

    # Events and guests

    def get_event(self, event_id: str) -> Event:
        event = self.events.get(event_id)
        if event is None:
            raise NotFoundError(f"Event not found: {event_id}")
        return event

    def get_guest(self, guest_id: str) -> Guest:
        guest = self.guests.get(guest_id)
        if guest is None:
            raise NotFoundError(f"Guest not found: {guest_id}")
        return guest

    def guests_for_event(self, event_id: str) -> list[Guest]:
        return [g for g in self.guests.values() if g.event_id == event_id]

    def matching_config_for(self, event_id: str) -> MatchingConfig | None:
        return self.matching_configs.get(event_id)

    def constraints_for(self, event_id: str) -> list[Constraint]:
        return [c for c in self.constraints if c.event_id == event_id]

    # Final assignments

    def assignments_for(self, event_id: str) -> list[Assignment]:
        return [a for a in self.assignments if a.event_id == event_id]

    def delete_assignments(self, event_id: str, min_round: int = 1) -> int:
        """Delete an event's final assignments from min_round onward."""
        keep = [
            a for a in self.assignments
            if a.event_id != event_id or a.round_number < min_round
        ]
        deleted = len(self.assignments) - len(keep)
        self.assignments = keep
        return deleted

    def insert_assignments(self, assignments: Iterable[Assignment]) -> None:
        self.assignments.extend(assignments)

    # Preview rows

    def previews_for(self, event_id: str) -> list[PreviewAssignment]:
        return [p for p in self.previews if p.event_id == event_id]

    def insert_previews(self, previews: Iterable[PreviewAssignment]) -> None:
        self.previews.extend(previews)

    def delete_previews(self, rows: Iterable[PreviewAssignment]) -> int:
        doomed = {id(p) for p in rows}
        keep = [p for p in self.previews if id(p) not in doomed]
        deleted = len(self.previews) - len(keep)
        self.previews = keep
        return deleted
