"""CSV and YAML parsing for tablemix."""

import csv
from pathlib import Path
from typing import Any

import yaml

from tablemix.constraints import check_duplicate_constraint, validate_constraint
from tablemix.errors import ConfigError, InvalidConstraintError
from tablemix.models import (
    CONSTRAINT_TYPES,
    WEIGHT_PRESETS,
    Constraint,
    Event,
    Guest,
    GuestAttributes,
    MatchingConfig,
    MatchingWeights,
)
from tablemix.normalize import split_list_cell

# Guest CSV columns (matched case-insensitively)
NAME_COLUMN = "name"
EMAIL_COLUMN = "email"
DEPARTMENT_COLUMN = "department"
INTERESTS_COLUMN = "interests"
JOB_LEVEL_COLUMN = "job level"
GOALS_COLUMN = "goals"
TAGS_COLUMN = "tags"


def parse_guests_csv(csv_path: Path) -> list[Guest]:
    """
    Parse the guest list CSV file.

    A guest's id is their email address, or their name when no email is
    given. Rows with neither are skipped.
    """
    guests: list[Guest] = []
    seen: set[str] = set()

    with csv_path.open(newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for raw in reader:
            row = {(k or "").strip().lower(): (v or "").strip() for k, v in raw.items()}
            name = row.get(NAME_COLUMN, "")
            email = row.get(EMAIL_COLUMN, "")
            guest_id = email or name
            if not guest_id:
                continue
            if guest_id in seen:
                raise ConfigError(f"Duplicate guest in {csv_path}: {guest_id}")
            seen.add(guest_id)

            attributes = GuestAttributes(
                interests=split_list_cell(row.get(INTERESTS_COLUMN)),
                job_level=row.get(JOB_LEVEL_COLUMN) or None,
                goals=split_list_cell(row.get(GOALS_COLUMN)),
                custom_tags=split_list_cell(row.get(TAGS_COLUMN)),
            )
            guests.append(
                Guest(
                    id=guest_id,
                    name=name or email.split("@")[0],
                    department=row.get(DEPARTMENT_COLUMN) or None,
                    email=email or None,
                    attributes=attributes,
                )
            )

    return guests


def parse_event_yaml(
    yaml_path: Path,
    guests: list[Guest],
) -> tuple[Event, MatchingConfig, list[Constraint]]:
    """
    Parse an event configuration file.

    Constraints may name guests by id, email or display name.
    """
    with yaml_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{yaml_path}: expected a mapping at the top level")

    event_data = data.get("event") or {}
    event = Event(
        id=str(event_data.get("id") or yaml_path.stem),
        name=str(event_data.get("name") or yaml_path.stem),
        table_size=_positive_int(event_data.get("table_size", 8), "table_size"),
        number_of_rounds=_positive_int(event_data.get("number_of_rounds", 1), "number_of_rounds"),
    )

    weights_data = dict(data.get("weights") or {})
    preset = weights_data.pop("preset", None)
    if preset is not None and preset not in WEIGHT_PRESETS:
        raise ConfigError(f"Unknown weight preset: {preset}")
    MatchingWeights.from_mapping(weights_data)
    config = MatchingConfig(event_id=event.id, weights=weights_data, preset=preset)

    lookup = _guest_lookup(guests)
    constraints: list[Constraint] = []
    for i, entry in enumerate(data.get("constraints") or [], start=1):
        constraints.append(_parse_constraint(entry, i, event.id, lookup, constraints))

    return event, config, constraints


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if number < 1:
        raise ConfigError(f"{name} must be at least 1, got {number}")
    return number


def _optional_int(value: Any, name: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


def _guest_lookup(guests: list[Guest]) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for guest in guests:
        lookup[guest.name.lower()] = guest.id
        if guest.email:
            lookup[guest.email.lower()] = guest.id
        lookup[guest.id.lower()] = guest.id
    return lookup


def _parse_constraint(
    entry: dict[str, Any],
    position: int,
    event_id: str,
    lookup: dict[str, str],
    existing: list[Constraint],
) -> Constraint:
    ctype = str(entry.get("type", "")).lower()
    if ctype not in CONSTRAINT_TYPES:
        raise ConfigError(f"Constraint {position}: invalid type {entry.get('type')!r}")

    refs = entry.get("guests") or []
    if isinstance(refs, str):
        refs = [refs]
    guest_ids: list[str] = []
    for ref in refs:
        guest_id = lookup.get(str(ref).strip().lower())
        if guest_id is None:
            raise ConfigError(f"Constraint {position}: unknown guest {ref!r}")
        guest_ids.append(guest_id)

    constraint = Constraint(
        type=ctype,
        guest_ids=guest_ids,
        table_number=_optional_int(entry.get("table"), f"Constraint {position}: table"),
        reason=entry.get("reason"),
        id=f"constraint_{position}",
        event_id=event_id,
    )
    try:
        validate_constraint(constraint)
        check_duplicate_constraint(constraint, existing)
    except InvalidConstraintError as e:
        raise ConfigError(f"Constraint {position}: {e}") from e
    return constraint


def create_event_template(output_path: Path, guests: list[Guest], table_size: int = 8):
    """Create an event configuration template YAML file."""
    example_guest = guests[0].name if guests else "Guest Name"
    template = {
        "event": {
            "name": "My Event",
            "table_size": table_size,
            "number_of_rounds": 1,
        },
        "weights": {
            "preset": "balanced",
        },
        "constraints": [],
    }

    header = f"""\
# Event configuration for tablemix
#
# weights: pick a preset (balanced, maxDiversity, groupSimilar,
# networkingOptimized) and/or override individual values:
#   department_mix, interest_affinity, job_level_diversity,
#   goal_compatibility, repeat_avoidance
#
# constraints: guests may be referenced by name or email.
#   - type: pin          # keep a guest at one table
#     guests: ["{example_guest}"]
#     table: 1
#     reason: "Host"
#   - type: repel        # keep two guests apart
#     guests: ["Guest A", "Guest B"]
#   - type: attract      # try to seat two guests together
#     guests: ["Guest A", "Guest C"]

"""

    with output_path.open("w", encoding="utf-8") as f:
        f.write(header)
        yaml.dump(template, f, default_flow_style=False, sort_keys=False)
