"""Greedy per-round table assignment for tablemix."""

import logging
import math
from collections.abc import Sequence

import numpy as np

from tablemix.constraints import ConstraintIndex, concentration_penalty
from tablemix.history import TablemateHistory
from tablemix.models import Assignment, Guest, MatchingWeights
from tablemix.normalize import same_department
from tablemix.scoring import guest_compatibility

logger = logging.getLogger(__name__)

# Constraint costs dominate every soft term
PIN_COST = 10000.0
REPEL_COST = 5000.0
ATTRACT_BONUS = 500.0

# Fixed bonus for keeping a guest at last round's table
STABILITY_BONUS = 0.1

COMPATIBILITY_SCALE = 2.0
REPEAT_SCALE = 3.0


def placement_cost(
    guest: Guest,
    table_number: int,
    occupants: Sequence[Guest],
    index: ConstraintIndex,
    weights: MatchingWeights,
    history: TablemateHistory,
    previous_table: int | None,
) -> float:
    """
    Cost of seating a guest at a table given who is already there.

    Lower is better. The compatibility score is inverted since the scorer
    treats higher as better.
    """
    cost = 0.0

    pinned = index.pinned_table(guest.id)
    if pinned is not None:
        cost += -PIN_COST if pinned == table_number else PIN_COST

    for other in occupants:
        if index.is_repelled(guest.id, other.id):
            cost += REPEL_COST
        if index.is_attracted(guest.id, other.id):
            cost -= ATTRACT_BONUS

    if previous_table == table_number:
        cost -= STABILITY_BONUS

    if occupants:
        if weights.department_mix != 0 and any(
            same_department(guest.department, other.department) for other in occupants
        ):
            cost += weights.department_mix

        cost += concentration_penalty(guest.department, occupants, weights.department_mix)

        compatibility = sum(guest_compatibility(guest, other, weights) for other in occupants)
        cost -= (compatibility / len(occupants)) * COMPATIBILITY_SCALE

        if weights.repeat_avoidance != 0:
            repeats = history.count_repeats(guest.id, (other.id for other in occupants))
            cost += weights.repeat_avoidance * REPEAT_SCALE * repeats

    return cost


def assign_round(
    guests: Sequence[Guest],
    table_size: int,
    table_count: int,
    index: ConstraintIndex,
    weights: MatchingWeights,
    history: TablemateHistory,
    rng: np.random.Generator,
    previous_tables: dict[str, int] | None = None,
) -> dict[int, list[Guest]]:
    """
    Seat every guest for one round.

    Returns a mapping of table number (1-based) to the guests seated there.
    Never fails on constraint infeasibility: pins that target a full or
    missing table are dropped and the guest is placed normally.
    """
    if table_count * table_size < len(guests):
        raise ValueError(
            f"{table_count} tables of {table_size} cannot seat {len(guests)} guests"
        )

    tables: dict[int, list[Guest]] = {t: [] for t in range(1, table_count + 1)}
    previous = previous_tables or {}
    guest_by_id = {g.id: g for g in guests}

    # Pinned guests are placed first
    placed: set[str] = set()
    for guest_id, table_number in index.pins.items():
        guest = guest_by_id.get(guest_id)
        if guest is None:
            continue
        if 1 <= table_number <= table_count and len(tables[table_number]) < table_size:
            tables[table_number].append(guest)
            placed.add(guest_id)
        else:
            logger.debug("Pin of %s to table %d dropped", guest_id, table_number)

    remaining = [g for g in guests if g.id not in placed]
    for i in rng.permutation(len(remaining)):
        guest = remaining[int(i)]
        best_table = 0
        best_cost = math.inf
        for table_number, occupants in tables.items():
            if len(occupants) >= table_size:
                continue
            cost = placement_cost(
                guest,
                table_number,
                occupants,
                index,
                weights,
                history,
                previous.get(guest.id),
            )
            if cost < best_cost:
                best_cost = cost
                best_table = table_number
        tables[best_table].append(guest)

    return tables


def assign_rounds(
    guests: Sequence[Guest],
    table_size: int,
    number_of_rounds: int,
    index: ConstraintIndex,
    weights: MatchingWeights,
    rng: np.random.Generator | None = None,
    history: TablemateHistory | None = None,
    start_round: int = 1,
    previous_tables: dict[str, int] | None = None,
) -> list[Assignment]:
    """
    Generate assignments for rounds start_round..number_of_rounds.

    Tablemate history is updated after each round so later rounds see who
    has already sat together. Pass an existing history and the previous
    round's tables to extend an earlier schedule.
    """
    if table_size < 1:
        raise ValueError(f"table_size must be at least 1, got {table_size}")

    rng = rng if rng is not None else np.random.default_rng()
    history = history if history is not None else TablemateHistory()
    table_count = math.ceil(len(guests) / table_size)
    previous = dict(previous_tables or {})

    assignments: list[Assignment] = []
    for round_number in range(start_round, number_of_rounds + 1):
        tables = assign_round(
            guests, table_size, table_count, index, weights, history, rng, previous
        )
        previous = {}
        for table_number, seated in tables.items():
            for guest in seated:
                assignments.append(Assignment(guest.id, round_number, table_number))
                previous[guest.id] = table_number
        history.record_round([g.id for g in seated] for seated in tables.values())
        logger.debug("Round %d seated %d guests at %d tables", round_number, len(guests), table_count)

    logger.info(
        "Assigned %d guests to %d tables over %d round(s)",
        len(guests),
        table_count,
        max(number_of_rounds - start_round + 1, 0),
    )
    return assignments
