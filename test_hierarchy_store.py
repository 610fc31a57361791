#!/usr/bin/env python3
"""
Test script for the planning tree: paper spec → jumbo → set → cut roll
Covers capacity checks on write, cascading deletes and optimizer import.
"""
import pytest

from roll_planner.exceptions import (
    CapacityExceeded,
    DuplicatePaperSpec,
    InvalidCutRoll,
    NodeNotFound,
)
from roll_planner.models import CutRollSource
from roll_planner.services.capacity_model import CapacityModel
from roll_planner.services.hierarchy_store import HierarchyStore


@pytest.fixture
def store():
    return HierarchyStore(CapacityModel())


@pytest.fixture
def first_set(store):
    spec = store.add_paper_spec(180, 18, "Golden")
    jumbo = store.add_jumbo_roll(spec.id)
    return store.sets_for_jumbo(jumbo.id)[0]


def test_new_jumbo_gets_three_numbered_sets(store):
    spec = store.add_paper_spec(180, 18, "Golden")

    first = store.add_jumbo_roll(spec.id)
    second = store.add_jumbo_roll(spec.id)

    assert (first.jumbo_number, second.jumbo_number) == (1, 2)
    assert [s.set_number for s in store.sets_for_jumbo(first.id)] == [1, 2, 3]
    assert store.total_sets_for_spec(spec.id) == 6


def test_add_set_uses_next_number(store, first_set):
    extra = store.add_set(first_set.jumbo_roll_id)

    assert extra.set_number == 4


def test_duplicate_paper_spec_ignores_shade_case(store):
    store.add_paper_spec(180, 18, "Golden")

    with pytest.raises(DuplicatePaperSpec):
        store.add_paper_spec(180, 18.0, " golden ")


def test_cut_roll_that_does_not_fit_reports_available_width(store, first_set):
    """Set holds 40" x 2 at planning width 123: a 50" cut leaves only 43" to work with"""
    store.add_or_edit_cut_roll(first_set.id, 40, 2, "client-1")

    with pytest.raises(CapacityExceeded) as exc_info:
        store.add_or_edit_cut_roll(first_set.id, 50, 1, "client-1")

    assert exc_info.value.available == 43
    assert exc_info.value.requested == 50
    assert "only 43\" available" in exc_info.value.message
    assert store.used_width(first_set.id) == 80


def test_cut_wider_than_planning_width_is_rejected(store, first_set):
    with pytest.raises(CapacityExceeded) as exc_info:
        store.add_or_edit_cut_roll(first_set.id, 124, 1, "client-1")

    assert exc_info.value.available == 123
    assert store.cuts_for_set(first_set.id) == []


def test_set_can_be_filled_exactly(store, first_set):
    store.add_or_edit_cut_roll(first_set.id, 41, 3, "client-1")

    assert store.remaining_width(first_set.id) == 0
    assert store.efficiency(first_set.id) == 1


def test_edit_excludes_the_cut_being_replaced(store, first_set):
    store.add_or_edit_cut_roll(first_set.id, 60, 1, "client-1")
    cut = store.add_or_edit_cut_roll(first_set.id, 60, 1, "client-2")

    edited = store.add_or_edit_cut_roll(first_set.id, 63, 1, "client-2", editing_id=cut.id)

    assert edited.id == cut.id
    assert store.used_width(first_set.id) == 123
    assert len(store.cuts_for_set(first_set.id)) == 2


def test_edit_can_move_cut_to_another_set(store, first_set):
    other_set = store.sets_for_jumbo(first_set.jumbo_roll_id)[1]
    cut = store.add_or_edit_cut_roll(first_set.id, 30, 1, "client-1")

    store.add_or_edit_cut_roll(other_set.id, 30, 1, "client-1", editing_id=cut.id)

    assert store.cuts_for_set(first_set.id) == []
    assert [c.id for c in store.cuts_for_set(other_set.id)] == [cut.id]


@pytest.mark.parametrize("width,quantity,client_id", [
    (0, 1, "client-1"),
    (-5, 1, "client-1"),
    (20, 0, "client-1"),
    (20, 1, ""),
])
def test_malformed_cut_roll_is_rejected(store, first_set, width, quantity, client_id):
    with pytest.raises(InvalidCutRoll):
        store.add_or_edit_cut_roll(first_set.id, width, quantity, client_id)


def test_efficiency_of_empty_set_is_zero(store, first_set):
    assert store.efficiency(first_set.id) == 0


def test_unknown_ids_raise_not_found(store):
    with pytest.raises(NodeNotFound):
        store.add_jumbo_roll("paper-missing")
    with pytest.raises(NodeNotFound):
        store.delete_cut_roll("cut-missing")


def test_delete_paper_spec_cascades(store):
    spec = store.add_paper_spec(180, 18, "Golden")
    jumbo = store.add_jumbo_roll(spec.id)
    store.add_jumbo_roll(spec.id)
    for roll_set in store.sets_for_jumbo(jumbo.id):
        store.add_or_edit_cut_roll(roll_set.id, 20, 1, "client-1")

    removed = store.delete_paper_spec(spec.id)

    assert removed == {"paper_specs": 1, "jumbo_rolls": 2, "sets": 6, "cut_rolls": 3}
    assert store.is_empty
    assert store.counts() == {"paper_specs": 0, "jumbo_rolls": 0, "sets": 0, "cut_rolls": 0}


def test_delete_set_removes_its_cut_rolls(store, first_set):
    store.add_or_edit_cut_roll(first_set.id, 20, 1, "client-1")

    assert store.delete_set(first_set.id) == {"sets": 1, "cut_rolls": 1}
    assert store.all_cut_rolls() == []


def test_optimizer_import_maps_roll_numbers_to_jumbo_and_set(store):
    rolls = [
        {"individual_roll_number": 1, "width_inches": 30, "gsm": 180, "bf": 18, "shade": "Golden",
         "client_id": "client-1"},
        {"individual_roll_number": 4, "width_inches": 25, "quantity": 2, "gsm": 180, "bf": 18,
         "shade": "Golden", "client_id": "client-2"},
        # Same roll number, different paper: a different physical roll
        {"individual_roll_number": 1, "width_inches": 40, "gsm": 210, "bf": 16, "shade": "Natural",
         "client_id": "client-1"},
    ]

    result = store.load_optimizer_rolls(rolls)

    assert len(result["placed"]) == 3
    assert result["orphaned"] == []
    golden = store.find_paper_spec(180, 18, "Golden")
    jumbos = store.jumbos_for_spec(golden.id)
    assert [j.jumbo_number for j in jumbos] == [1, 2]
    jumbo_two_set_one = store.sets_for_jumbo(jumbos[1].id)[0]
    assert store.used_width(jumbo_two_set_one.id) == 50
    assert all(c.source == CutRollSource.ALGORITHM for c in store.all_cut_rolls())


def test_optimizer_import_orphans_rolls_that_do_not_fit(store):
    rolls = [
        {"individual_roll_number": 1, "width_inches": 100, "gsm": 180, "bf": 18, "shade": "Golden",
         "client_id": "client-1"},
        {"individual_roll_number": 1, "width_inches": 30, "gsm": 180, "bf": 18, "shade": "Golden",
         "client_id": "client-1"},
        {"individual_roll_number": 2, "width_inches": 30, "client_id": "client-1"},
    ]

    result = store.load_optimizer_rolls(rolls)

    assert len(result["placed"]) == 1
    assert len(result["orphaned"]) == 2
    assert "available" in result["orphaned"][0]["reason"]
    assert result["orphaned"][1]["reason"] == "Missing paper specification"


def test_snapshot_reports_remaining_width(store, first_set):
    store.add_or_edit_cut_roll(first_set.id, 20, 2, "client-1", order_source="ORD-00010-26")

    tree = store.snapshot()

    set_view = tree[0]["jumbo_rolls"][0]["sets"][0]
    assert set_view["used_width"] == 40
    assert set_view["remaining_width"] == 83
    assert set_view["cut_rolls"][0]["order_source"] == "ORD-00010-26"
    assert tree[0]["total_cuts"] == 1


def test_available_width_is_reported_exactly(store, first_set):
    store.add_or_edit_cut_roll(first_set.id, 79.75, 1, "client-1")

    with pytest.raises(CapacityExceeded) as exc_info:
        store.add_or_edit_cut_roll(first_set.id, 50, 1, "client-1")

    assert exc_info.value.available == 43.25
    assert "only 43.25\" available" in exc_info.value.message


def test_set_width_holds_through_mixed_edits(store):
    """Add, edit, move and delete in sequence; no set may ever pass the planning width"""
    spec = store.add_paper_spec(180, 18, "Golden")
    jumbo = store.add_jumbo_roll(spec.id)
    set_a, set_b, set_c = store.sets_for_jumbo(jumbo.id)

    def assert_within_width():
        for usage in store.set_usage():
            assert usage["used_width"] <= store.capacity.planning_width

    first = store.add_or_edit_cut_roll(set_a.id, 40, 2, "client-1")
    assert_within_width()
    second = store.add_or_edit_cut_roll(set_a.id, 43, 1, "client-2")
    assert_within_width()
    with pytest.raises(CapacityExceeded):
        store.add_or_edit_cut_roll(set_a.id, 45, 1, "client-2", editing_id=second.id)
    assert_within_width()
    store.add_or_edit_cut_roll(set_b.id, 61.5, 2, "client-3")
    assert_within_width()
    with pytest.raises(CapacityExceeded):
        store.add_or_edit_cut_roll(set_b.id, 40, 2, "client-1", editing_id=first.id)
    assert_within_width()
    store.add_or_edit_cut_roll(set_c.id, 40, 2, "client-1", editing_id=first.id)
    assert_within_width()
    store.delete_cut_roll(second.id)
    assert_within_width()
    store.add_or_edit_cut_roll(set_a.id, 123, 1, "client-4")
    assert_within_width()
    store.delete_set(set_b.id)
    assert_within_width()

    usage = {u["set_id"]: u["used_width"] for u in store.set_usage()}
    assert usage == {set_a.id: 123, set_c.id: 80}


def test_import_fills_jumbo_gaps_without_duplicate_numbers(store):
    spec = store.add_paper_spec(180, 18, "Golden")
    first = store.add_jumbo_roll(spec.id)
    store.add_jumbo_roll(spec.id)
    store.delete_jumbo_roll(first.id)

    result = store.load_optimizer_rolls([
        {"individual_roll_number": 7, "width_inches": 30, "gsm": 180, "bf": 18, "shade": "Golden",
         "client_id": "client-1"},
    ])

    assert len(result["placed"]) == 1
    jumbos = store.jumbos_for_spec(spec.id)
    assert [j.jumbo_number for j in jumbos] == [1, 2, 3]
    target_set = store.sets_for_jumbo(jumbos[2].id)[0]
    assert store.used_width(target_set.id) == 30


def test_fully_orphaned_import_leaves_no_paper_spec(store):
    result = store.load_optimizer_rolls([
        {"individual_roll_number": 1, "width_inches": 130, "gsm": 230, "bf": 20, "shade": "White",
         "client_id": "client-1"},
        {"individual_roll_number": "x", "width_inches": 20, "gsm": 250, "bf": 20, "shade": "White",
         "client_id": "client-1"},
    ])

    assert result["placed"] == []
    assert len(result["orphaned"]) == 2
    assert store.is_empty
    assert store.counts()["jumbo_rolls"] == 0
