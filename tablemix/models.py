"""Data models for tablemix."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Literal

from tablemix.errors import ConfigError

ConstraintType = Literal["pin", "repel", "attract"]
CONSTRAINT_TYPES: tuple[str, ...] = ("pin", "repel", "attract")

# Highest number of rounds an event may be configured with
MAX_ROUNDS = 10


@dataclass
class GuestAttributes:
    """Optional matching attributes collected for a guest."""

    interests: list[str] = field(default_factory=list)
    job_level: str | None = None  # junior | mid | senior | executive
    goals: list[str] = field(default_factory=list)
    custom_tags: list[str] = field(default_factory=list)


@dataclass
class Guest:
    """A guest to be seated."""

    id: str
    name: str
    event_id: str = ""
    department: str | None = None
    email: str | None = None
    attributes: GuestAttributes | None = None
    table_number: int | None = None  # round 1 table of the last commit


@dataclass
class Event:
    """An event with fixed-size tables and one or more seating rounds."""

    id: str
    name: str
    table_size: int
    number_of_rounds: int = 1
    is_assigned: bool = False
    current_round: int = 0  # 0 = not started


@dataclass(frozen=True)
class MatchingWeights:
    """Coefficients for the compatibility and placement cost terms."""

    department_mix: float = 0.8
    interest_affinity: float = 0.3
    job_level_diversity: float = 0.5
    goal_compatibility: float = 0.4
    repeat_avoidance: float = 0.9

    @classmethod
    def from_mapping(cls, values: dict[str, Any] | None) -> "MatchingWeights":
        """
        Build weights from a possibly partial mapping, filling in defaults.

        Keys may be snake_case or the camelCase names used by the web client.
        """
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        merged: dict[str, float] = {}
        for key, value in values.items():
            name = _snake_case(key)
            if name in known and value is not None:
                try:
                    merged[name] = float(value)
                except (TypeError, ValueError):
                    raise ConfigError(f"Weight {key} must be a number, got {value!r}") from None
        return cls(**merged)

    @classmethod
    def zero(cls) -> "MatchingWeights":
        return cls(0.0, 0.0, 0.0, 0.0, 0.0)


DEFAULT_WEIGHTS = MatchingWeights()

WEIGHT_PRESETS: dict[str, MatchingWeights] = {
    "balanced": DEFAULT_WEIGHTS,
    "maxDiversity": MatchingWeights(1.0, -0.3, 1.0, 0.2, 1.0),
    "groupSimilar": MatchingWeights(0.3, 0.9, 0.2, 0.7, 0.8),
    "networkingOptimized": MatchingWeights(0.7, 0.5, 0.6, 0.9, 0.95),
}


def _snake_case(name: str) -> str:
    out = []
    for ch in name:
        if ch.isupper():
            out.append("_")
            out.append(ch.lower())
        else:
            out.append(ch)
    return "".join(out)


@dataclass
class MatchingConfig:
    """Per-event matching configuration; absent values fall back to defaults."""

    event_id: str
    weights: dict[str, float] = field(default_factory=dict)
    preset: str | None = None


@dataclass
class Constraint:
    """An organizer-supplied placement rule."""

    type: ConstraintType
    guest_ids: list[str]
    table_number: int | None = None  # pin only
    reason: str | None = None
    id: str = ""
    event_id: str = ""


@dataclass
class Assignment:
    """A guest seated at a table in one round."""

    guest_id: str
    round_number: int
    table_number: int
    event_id: str = ""


@dataclass
class PreviewAssignment:
    """A staged, not yet committed assignment belonging to a preview session."""

    event_id: str
    session_id: str
    guest_id: str
    round_number: int
    table_number: int
    created_at: datetime


@dataclass
class Violation:
    """A constraint that the assignments fail to honor."""

    type: ConstraintType
    round: int  # 0 = overall
    description: str


@dataclass
class ConstraintConflict:
    """Two or more constraints that cannot all be satisfied."""

    severity: Literal["error", "warning"]
    message: str
    constraint_ids: list[str] = field(default_factory=list)


@dataclass
class GenerateResult:
    """Outcome of staging a new preview."""

    session_id: str
    total_assignments: int
    rounds: int
    constraint_violations: list[Violation]
    repeated_pairings: int = 0  # number of guest pairs seated together in 2+ rounds


@dataclass
class PreviewRow:
    """A preview assignment enriched with guest display fields."""

    guest_id: str
    guest_name: str
    guest_department: str | None
    round_number: int
    table_number: int


@dataclass
class PreviewView:
    """A staged preview grouped by round."""

    session_id: str
    created_at: datetime
    by_round: dict[int, list[PreviewRow]]


@dataclass
class CommitResult:
    assigned_count: int


@dataclass
class DiscardResult:
    deleted_count: int


@dataclass
class RoundsUpdate:
    number_of_rounds: int
    regenerated: bool
    new_rounds_added: int = 0
