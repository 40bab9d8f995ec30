from collections import Counter

import numpy as np
import pytest

from tablemix.conflicts import find_violations
from tablemix.constraints import ConstraintIndex
from tablemix.history import TablemateHistory, repeated_pairings
from tablemix.models import Constraint, MatchingWeights
from tablemix.optimizer import assign_round, assign_rounds, placement_cost

from conftest import make_guest, make_guests

ZERO = MatchingWeights.zero()
EMPTY_INDEX = ConstraintIndex()


def table_sizes(assignments, round_number=1):
    return Counter(a.table_number for a in assignments if a.round_number == round_number)


def seated_together(assignments, g1, g2):
    tables = {}
    for a in assignments:
        tables.setdefault((a.round_number, a.table_number), set()).add(a.guest_id)
    return any(g1 in ids and g2 in ids for ids in tables.values())


# Cost terms


def test_zero_weights_leave_only_constraint_and_stability_terms():
    guest = make_guest("a", department="Sales", interests=["x"], job_level="junior", goals=["learn"])
    occupants = [
        make_guest("b", department="Sales", interests=["x"], job_level="senior", goals=["sell"]),
        make_guest("c", department="Sales"),
    ]
    history = TablemateHistory()
    history.record_table(["a", "b", "c"])

    assert placement_cost(guest, 1, occupants, EMPTY_INDEX, ZERO, history, None) == 0.0
    assert placement_cost(guest, 1, occupants, EMPTY_INDEX, ZERO, history, 1) == pytest.approx(-0.1)

    index = ConstraintIndex.from_constraints([Constraint("pin", ["a"], table_number=2)])
    assert placement_cost(guest, 1, occupants, index, ZERO, history, None) == 10000.0
    assert placement_cost(guest, 2, occupants, index, ZERO, history, None) == -10000.0


def test_repel_and_attract_costs_compound():
    guest = make_guest("a")
    occupants = [make_guest("b"), make_guest("c"), make_guest("d")]
    index = ConstraintIndex.from_constraints(
        [
            Constraint("repel", ["a", "b"]),
            Constraint("repel", ["c", "a"]),
            Constraint("attract", ["a", "d"]),
        ]
    )
    cost = placement_cost(guest, 1, occupants, index, ZERO, TablemateHistory(), None)
    assert cost == 5000.0 * 2 - 500.0


def test_department_terms_use_department_mix_weight():
    weights = MatchingWeights(1.0, 0.0, 0.0, 0.0, 0.0)
    guest = make_guest("a", department="Sales")
    same = [make_guest("b", department="sales")]
    other = [make_guest("c", department="Ops")]
    history = TablemateHistory()

    # binary term (+1) + concentration (1 x 1) - 2 x compatibility (-1)
    assert placement_cost(guest, 1, same, EMPTY_INDEX, weights, history, None) == pytest.approx(4.0)
    # only the compatibility term: -2 x (+1)
    assert placement_cost(guest, 1, other, EMPTY_INDEX, weights, history, None) == pytest.approx(-2.0)


def test_repeat_tablemate_penalized():
    """Two rounds, repeat_avoidance 0.9: sitting with a round-1 tablemate costs more."""
    weights = MatchingWeights()
    guest = make_guest("g1")
    history = TablemateHistory()
    history.record_round([["g1", "g2"], ["g3", "g4"]])

    repeat = placement_cost(guest, 1, [make_guest("g2")], EMPTY_INDEX, weights, history, None)
    fresh = placement_cost(guest, 1, [make_guest("g3")], EMPTY_INDEX, weights, history, None)
    assert repeat - fresh == pytest.approx(0.9 * 3)


# Single round placement


def test_six_guests_two_full_tables():
    guests = make_guests(6)
    assignments = assign_rounds(guests, 3, 1, EMPTY_INDEX, ZERO, rng=np.random.default_rng(0))
    assert table_sizes(assignments) == {1: 3, 2: 3}
    assert find_violations(assignments, EMPTY_INDEX) == []


def test_ties_resolve_to_lowest_table():
    guests = make_guests(3)
    tables = assign_round(guests, 4, 3, EMPTY_INDEX, ZERO, TablemateHistory(), np.random.default_rng(7))
    assert [len(tables[t]) for t in (1, 2, 3)] == [3, 0, 0]


def test_pin_honored_when_table_has_room():
    guests = make_guests(9)
    index = ConstraintIndex.from_constraints([Constraint("pin", ["g05"], table_number=2)])
    assignments = assign_rounds(guests, 3, 3, index, MatchingWeights(), rng=np.random.default_rng(3))
    assert {a.table_number for a in assignments if a.guest_id == "g05"} == {2}
    assert find_violations(assignments, index) == []


def test_pin_to_full_table_falls_back_and_is_reported():
    guests = make_guests(6)
    index = ConstraintIndex.from_constraints(
        [
            Constraint("pin", ["g01"], table_number=2),
            Constraint("pin", ["g02"], table_number=2),
            Constraint("pin", ["g03"], table_number=2),
        ]
    )
    assignments = assign_rounds(guests, 2, 1, index, MatchingWeights(), rng=np.random.default_rng(5))
    tables = {a.guest_id: a.table_number for a in assignments}
    assert tables["g01"] == 2
    assert tables["g02"] == 2
    assert tables["g03"] != 2

    violations = find_violations(assignments, index)
    assert [v.type for v in violations] == ["pin"]
    assert violations[0].round == 1


def test_pin_out_of_range_is_dropped():
    guests = make_guests(4)
    index = ConstraintIndex.from_constraints([Constraint("pin", ["g01"], table_number=9)])
    assignments = assign_rounds(guests, 2, 1, index, ZERO, rng=np.random.default_rng(0))
    assert len(assignments) == 4
    assert table_sizes(assignments) == {1: 2, 2: 2}


def test_repelled_pair_forced_together_with_one_table():
    guests = [make_guest("a"), make_guest("b")]
    index = ConstraintIndex.from_constraints([Constraint("repel", ["a", "b"])])
    assignments = assign_rounds(guests, 2, 1, index, MatchingWeights(), rng=np.random.default_rng(0))
    violations = find_violations(assignments, index)
    assert [v.type for v in violations] == ["repel"]


@pytest.mark.parametrize("seed", range(10))
def test_repelled_pair_kept_apart_when_possible(seed):
    guests = [make_guest("a"), make_guest("b"), make_guest("c")]
    index = ConstraintIndex.from_constraints([Constraint("repel", ["a", "b"])])
    assignments = assign_rounds(guests, 2, 1, index, MatchingWeights(), rng=np.random.default_rng(seed))
    assert not seated_together(assignments, "a", "b")
    assert find_violations(assignments, index) == []


@pytest.mark.parametrize("seed", range(10))
def test_second_round_avoids_first_round_pairs(seed):
    guests = make_guests(4)
    assignments = assign_rounds(guests, 2, 2, EMPTY_INDEX, MatchingWeights(), rng=np.random.default_rng(seed))
    assert repeated_pairings(assignments) == 0


@pytest.mark.parametrize("seed", range(5))
def test_capacity_and_completeness(seed):
    departments = ["Sales", "Engineering", "Finance", "Legal"]
    guests = [
        make_guest(
            f"g{i:02d}",
            department=departments[i % 4],
            interests=["ai", "golf", "wine"][: i % 3 + 1],
            job_level=["junior", "mid", "senior", "executive"][i % 4],
            goals=["network", "learn"][: i % 2 + 1],
        )
        for i in range(23)
    ]
    index = ConstraintIndex.from_constraints(
        [
            Constraint("pin", ["g00"], table_number=1),
            Constraint("pin", ["g01"], table_number=5),
            Constraint("repel", ["g02", "g03"]),
            Constraint("attract", ["g04", "g05"]),
        ]
    )
    rounds = 3
    assignments = assign_rounds(guests, 5, rounds, index, MatchingWeights(), rng=np.random.default_rng(seed))

    assert len(assignments) == len(guests) * rounds
    per_guest = Counter((a.guest_id, a.round_number) for a in assignments)
    assert set(per_guest.values()) == {1}
    assert {r for _, r in per_guest} == {1, 2, 3}
    for round_number in range(1, rounds + 1):
        sizes = table_sizes(assignments, round_number)
        assert max(sizes.values()) <= 5
        assert set(sizes) <= {1, 2, 3, 4, 5}


def test_extending_with_existing_history():
    guests = make_guests(4)
    history = TablemateHistory()
    history.record_round([["g01", "g02"], ["g03", "g04"]])
    assignments = assign_rounds(
        guests,
        2,
        2,
        EMPTY_INDEX,
        MatchingWeights(),
        rng=np.random.default_rng(11),
        history=history,
        start_round=2,
        previous_tables={"g01": 1, "g02": 1, "g03": 2, "g04": 2},
    )
    assert {a.round_number for a in assignments} == {2}
    assert not seated_together(assignments, "g01", "g02")
    assert not seated_together(assignments, "g03", "g04")


def test_invalid_table_size():
    with pytest.raises(ValueError):
        assign_rounds(make_guests(2), 0, 1, EMPTY_INDEX, ZERO)
