import pytest

from tablemix.constraints import (
    ConstraintIndex,
    canonical_pair,
    check_duplicate_constraint,
    concentration_penalty,
    find_constraint_conflicts,
    validate_constraint,
)
from tablemix.errors import InvalidConstraintError
from tablemix.models import Constraint

from conftest import make_guest


def test_canonical_pair_is_sorted():
    assert canonical_pair("b", "a") == ("a", "b")
    assert canonical_pair("a", "b") == ("a", "b")


def test_index_from_constraints():
    index = ConstraintIndex.from_constraints(
        [
            Constraint("pin", ["alice"], table_number=2),
            Constraint("repel", ["carol", "bob"]),
            Constraint("attract", ["dave", "alice"]),
        ]
    )
    assert index.pins == {"alice": 2}
    assert index.repels == {("bob", "carol")}
    assert index.attracts == {("alice", "dave")}
    assert index.pinned_table("alice") == 2
    assert index.pinned_table("bob") is None
    assert index.is_repelled("bob", "carol")
    assert index.is_repelled("carol", "bob")
    assert index.is_attracted("alice", "dave")
    assert not index.is_attracted("alice", "bob")


def test_index_skips_malformed_records():
    index = ConstraintIndex.from_constraints(
        [
            Constraint("pin", ["alice"]),
            Constraint("repel", ["bob"]),
        ]
    )
    assert not index


def test_concentration_penalty_values():
    occupants = [make_guest(f"s{i}", department="Sales") for i in range(8)]
    expected = [0, 1, 2.5, 5, 10, 15, 20, 20, 20]
    for count, multiplier in enumerate(expected):
        assert concentration_penalty("sales", occupants[:count], 2.0) == 2.0 * multiplier


def test_concentration_penalty_ignores_other_departments():
    occupants = [make_guest("a", department="Ops"), make_guest("b")]
    assert concentration_penalty("Sales", occupants, 1.0) == 0.0


def test_concentration_penalty_zero_cases():
    occupants = [make_guest("a", department="Sales")]
    assert concentration_penalty(None, occupants, 1.0) == 0.0
    assert concentration_penalty("", occupants, 1.0) == 0.0
    assert concentration_penalty("Sales", occupants, 0.0) == 0.0


def test_concentration_penalty_is_monotonic():
    occupants = [make_guest(f"s{i}", department="Sales") for i in range(10)]
    penalties = [concentration_penalty("Sales", occupants[:n], 0.8) for n in range(11)]
    assert penalties == sorted(penalties)


@pytest.mark.parametrize(
    "constraint, message",
    [
        (Constraint("seat", ["a"]), "Invalid constraint type"),
        (Constraint("pin", ["a", "b"], table_number=1), "exactly one guest"),
        (Constraint("pin", ["a"]), "require a table number"),
        (Constraint("pin", ["a"], table_number=0), "must be positive"),
        (Constraint("repel", ["a"]), "exactly two guests"),
        (Constraint("attract", ["a", "a"]), "two different guests"),
    ],
)
def test_validate_constraint_rejects(constraint, message):
    with pytest.raises(InvalidConstraintError, match=message):
        validate_constraint(constraint)


def test_validate_constraint_accepts():
    validate_constraint(Constraint("pin", ["a"], table_number=3))
    validate_constraint(Constraint("repel", ["a", "b"]))


def test_find_conflicts_repel_and_attract_same_pair():
    constraints = [
        Constraint("repel", ["a", "b"], id="c1"),
        Constraint("attract", ["b", "a"], id="c2"),
        Constraint("attract", ["a", "c"], id="c3"),
    ]
    conflicts = find_constraint_conflicts(constraints, table_size=4, guest_names={"a": "Ann", "b": "Bo"})
    assert len(conflicts) == 1
    assert conflicts[0].severity == "error"
    assert conflicts[0].constraint_ids == ["c1", "c2"]
    assert "Ann and Bo" in conflicts[0].message


def test_find_conflicts_too_many_pins():
    constraints = [
        Constraint("pin", ["a"], table_number=1, id="p1"),
        Constraint("pin", ["b"], table_number=1, id="p2"),
        Constraint("pin", ["c"], table_number=1, id="p3"),
        Constraint("pin", ["d"], table_number=2, id="p4"),
    ]
    conflicts = find_constraint_conflicts(constraints, table_size=2)
    assert len(conflicts) == 1
    assert conflicts[0].constraint_ids == ["p1", "p2", "p3"]
    assert "Table 1 has 3 pinned guests but only 2 seats" == conflicts[0].message


def test_index_keeps_first_pin_for_a_guest():
    index = ConstraintIndex.from_constraints(
        [
            Constraint("pin", ["a"], table_number=1),
            Constraint("pin", ["a"], table_number=2),
        ]
    )
    assert index.pins == {"a": 1}


@pytest.mark.parametrize(
    "constraint, message",
    [
        (Constraint("pin", ["a"], table_number=3), "This guest already has a pin constraint"),
        (Constraint("repel", ["c", "b"]), "This pair already has a repel constraint"),
        (Constraint("attract", ["a", "d"]), "This pair already has a attract constraint"),
    ],
)
def test_check_duplicate_constraint_rejects(constraint, message):
    existing = [
        Constraint("pin", ["a"], table_number=1),
        Constraint("repel", ["b", "c"]),
        Constraint("attract", ["d", "a"]),
    ]
    with pytest.raises(InvalidConstraintError, match=message):
        check_duplicate_constraint(constraint, existing)


def test_check_duplicate_constraint_allows_different_types():
    existing = [Constraint("repel", ["a", "b"]), Constraint("pin", ["a"], table_number=1)]
    check_duplicate_constraint(Constraint("attract", ["a", "b"]), existing)
    check_duplicate_constraint(Constraint("pin", ["b"], table_number=1), existing)


def test_find_conflicts_guest_pinned_to_two_tables():
    constraints = [
        Constraint("pin", ["a"], table_number=1, id="p1"),
        Constraint("pin", ["a"], table_number=2, id="p2"),
        Constraint("pin", ["b"], table_number=2, id="p3"),
    ]
    conflicts = find_constraint_conflicts(constraints, table_size=4, guest_names={"a": "Ann"})
    assert len(conflicts) == 1
    assert conflicts[0].severity == "error"
    assert conflicts[0].constraint_ids == ["p1", "p2"]
    assert conflicts[0].message == "Ann is pinned to tables 1, 2"
