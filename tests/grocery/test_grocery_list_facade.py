"""Tests for the grocery list facade over an in-memory repository."""

from __future__ import annotations

import pytest

from aisle.grocery import GroceryItemNotFound, merge_quantities

MEIJER = 1
COSTCO = 2


def _names(items):
    return [item.name for item in items]


def test_add_appends_to_end_of_store(grocery_list):
    milk = grocery_list.add("Milk", MEIJER)
    eggs = grocery_list.add("Eggs", MEIJER)

    assert milk.sort_order == 1000
    assert eggs.sort_order == 2000
    assert milk.is_checked is False
    assert _names(grocery_list.list_items(MEIJER)) == ["Milk", "Eggs"]


def test_reorder_before_first_item_halves_key(grocery_list):
    milk = grocery_list.add("Milk", MEIJER)
    eggs = grocery_list.add("Eggs", MEIJER)

    moved = grocery_list.reorder(eggs.id, before_id=milk.id)

    assert moved.sort_order == 500
    assert _names(grocery_list.list_items(MEIJER)) == ["Eggs", "Milk"]


def test_reorder_moves_item_to_empty_store(grocery_list, memory_repository):
    eggs = memory_repository.seed("Eggs", MEIJER, 500.0)
    milk = memory_repository.seed("Milk", MEIJER, 1000.0)

    moved = grocery_list.reorder(milk.id, store_id=COSTCO, before_id=None)

    assert moved.store_id == COSTCO
    assert moved.sort_order == 1000
    assert [item.id for item in grocery_list.list_items(MEIJER)] == [eggs.id]
    assert [item.id for item in grocery_list.list_items(COSTCO)] == [milk.id]


def test_add_between_two_items_takes_midpoint(grocery_list, memory_repository):
    memory_repository.seed("Eggs", MEIJER, 500.0)
    milk = memory_repository.seed("Milk", MEIJER, 1000.0)

    bread = grocery_list.add("Bread", MEIJER, before_id=milk.id)

    assert bread.sort_order == 750
    listed = grocery_list.list_items(MEIJER)
    assert [(item.name, item.sort_order) for item in listed] == [
        ("Eggs", 500.0),
        ("Bread", 750.0),
        ("Milk", 1000.0),
    ]


def test_reorder_with_stale_before_id_places_at_end(grocery_list, memory_repository):
    first = memory_repository.seed("Apples", MEIJER, 1000.0)
    memory_repository.seed("Pears", MEIJER, 3000.0)

    moved = grocery_list.reorder(first.id, before_id=424242)

    assert moved.sort_order == 4000
    assert _names(grocery_list.list_items(MEIJER)) == ["Pears", "Apples"]


def test_clear_checked_keeps_survivors_untouched(grocery_list, memory_repository):
    seeded = [
        memory_repository.seed(name, MEIJER, key)
        for name, key in [("A", 1000.0), ("B", 2000.0), ("C", 3000.0), ("D", 4000.0)]
    ]
    grocery_list.toggle_checked(seeded[1].id)
    grocery_list.toggle_checked(seeded[3].id)

    deleted = grocery_list.clear_checked()

    assert deleted == 2
    remaining = grocery_list.list_items(MEIJER)
    assert [(item.name, item.sort_order) for item in remaining] == [("A", 1000.0), ("C", 3000.0)]
    assert not any(item.is_checked for item in grocery_list.list_items())


def test_clear_checked_spans_every_store(grocery_list):
    a = grocery_list.add("A", MEIJER)
    b = grocery_list.add("B", COSTCO)
    grocery_list.add("C", None)
    grocery_list.toggle_checked(a.id)
    grocery_list.toggle_checked(b.id)

    assert grocery_list.clear_checked() == 2
    assert _names(grocery_list.list_items()) == ["C"]


def test_placement_never_touches_other_keys(grocery_list, memory_repository):
    items = [memory_repository.seed(f"item-{pos}", MEIJER, 1000.0 * pos) for pos in range(1, 6)]
    memory_repository.patches.clear()

    grocery_list.reorder(items[4].id, before_id=items[1].id)
    grocery_list.add("new", MEIJER, before_id=items[0].id)

    assert [item_id for item_id, _ in memory_repository.patches] == [items[4].id]
    for item in items[:4]:
        assert memory_repository.items[item.id].sort_order == item.sort_order


def test_toggle_checked_leaves_ordering_alone(grocery_list):
    item = grocery_list.add("Milk", MEIJER)

    toggled = grocery_list.toggle_checked(item.id)
    assert toggled.is_checked is True
    assert toggled.sort_order == item.sort_order
    assert toggled.store_id == item.store_id

    assert grocery_list.toggle_checked(item.id).is_checked is False


@pytest.mark.parametrize("operation", ["toggle_checked", "reorder", "remove", "merge_quantity"])
def test_missing_item_raises_not_found(grocery_list, operation):
    args = (77, "2") if operation == "merge_quantity" else (77,)
    with pytest.raises(GroceryItemNotFound):
        getattr(grocery_list, operation)(*args)


def test_list_is_idempotent_and_sorts_unassigned_last(grocery_list, memory_repository):
    memory_repository.seed("loose", None, 10.0)
    memory_repository.seed("costco-b", COSTCO, 2000.0)
    memory_repository.seed("meijer-unordered", MEIJER, None)
    memory_repository.seed("meijer-a", MEIJER, 1000.0)
    memory_repository.seed("costco-a", COSTCO, 1000.0)

    first = grocery_list.list_items()
    second = grocery_list.list_items()

    assert first == second
    assert _names(first) == ["meijer-a", "meijer-unordered", "costco-a", "costco-b", "loose"]


def test_exhausted_keys_trigger_single_rebalance(grocery_list, memory_repository):
    a = memory_repository.seed("A", MEIJER, 1000.0)
    b = memory_repository.seed("B", MEIJER, 1000.0)
    c = memory_repository.seed("C", MEIJER, 3000.0)

    moved = grocery_list.reorder(c.id, before_id=b.id)

    assert moved.sort_order == 1500
    assert [item.id for item in grocery_list.list_items(MEIJER)] == [a.id, c.id, b.id]
    assert memory_repository.items[b.id].sort_order == 2000


def test_rebalance_renumbers_in_display_order(grocery_list, memory_repository):
    memory_repository.seed("x", MEIJER, 0.001)
    memory_repository.seed("y", MEIJER, None)
    memory_repository.seed("z", MEIJER, 0.0005)

    changed = grocery_list.rebalance(MEIJER)

    assert changed == 3
    listed = grocery_list.list_items(MEIJER)
    assert [(item.name, item.sort_order) for item in listed] == [
        ("z", 1000.0),
        ("x", 2000.0),
        ("y", 3000.0),
    ]
    assert grocery_list.rebalance(MEIJER) == 0


def test_is_crowded_reports_tight_keys(grocery_list, memory_repository):
    memory_repository.seed("x", MEIJER, 1.0)
    memory_repository.seed("y", MEIJER, 1.0 + 1e-9)

    assert grocery_list.is_crowded(MEIJER)
    assert not grocery_list.is_crowded(COSTCO)


def test_update_changes_fields_and_routes_store_change(grocery_list):
    grocery_list.add("Chips", COSTCO)
    salsa = grocery_list.add("Salsa", MEIJER, quantity="1 jar")

    updated = grocery_list.update(salsa.id, name="  Hot salsa ", store_id=COSTCO, is_organic=True)

    assert updated.name == "Hot salsa"
    assert updated.is_organic is True
    assert updated.store_id == COSTCO
    assert updated.sort_order == 2000
    assert _names(grocery_list.list_items(COSTCO)) == ["Chips", "Hot salsa"]


def test_update_rejects_ordering_fields(grocery_list):
    item = grocery_list.add("Milk", MEIJER)
    with pytest.raises(TypeError):
        grocery_list.update(item.id, sort_order=1.0)


def test_find_duplicate_ignores_case_whitespace_and_checked(grocery_list):
    checked = grocery_list.add("Milk", MEIJER)
    grocery_list.toggle_checked(checked.id)
    assert grocery_list.find_duplicate("milk") is None

    active = grocery_list.add("Milk", COSTCO)
    duplicate = grocery_list.find_duplicate("  MILK ")
    assert duplicate is not None
    assert duplicate.id == active.id


@pytest.mark.parametrize(
    ("current", "additional", "expected"),
    [
        ("2 lbs", "1 lb", "2 lbs + 1 lb"),
        ("1", "3", "3"),
        (None, "3", "3"),
        ("2 lbs", "1", "2 lbs"),
        ("2 lbs", "", "2 lbs"),
        (None, "", None),
    ],
)
def test_merge_quantities(current, additional, expected):
    assert merge_quantities(current, additional) == expected


def test_merge_quantity_persists(grocery_list):
    item = grocery_list.add("Flour", MEIJER, quantity="2 lbs")
    assert grocery_list.merge_quantity(item.id, "5 lbs").quantity == "2 lbs + 5 lbs"


def test_remove_by_name_skips_checked_items(grocery_list):
    keep = grocery_list.add("Bananas", MEIJER)
    grocery_list.toggle_checked(keep.id)
    grocery_list.add("bananas", COSTCO)
    grocery_list.add(" BANANAS", None)
    grocery_list.add("Apples", MEIJER)

    assert grocery_list.remove_by_name("Bananas") == 2
    assert sorted(_names(grocery_list.list_items())) == ["Apples", "Bananas"]


def test_link_meals_deduplicates_in_order(grocery_list):
    item = grocery_list.add("Rice", MEIJER, linked_meal_ids=["m1"])

    linked = grocery_list.link_meals(item.id, ["m2", "m1", "m3"])

    assert linked.linked_meal_ids == ["m1", "m2", "m3"]


def test_list_by_week_plan(grocery_list):
    grocery_list.add("Rice", MEIJER, week_plan_id="2024-06-10")
    grocery_list.add("Beans", COSTCO, week_plan_id="2024-06-10")
    grocery_list.add("Tea", MEIJER, week_plan_id="2024-06-17")

    assert _names(grocery_list.list_by_week_plan("2024-06-10")) == ["Rice", "Beans"]


def test_move_partition_to_unassigned_keeps_order(grocery_list):
    grocery_list.add("loose", None)
    first = grocery_list.add("first", COSTCO)
    second = grocery_list.add("second", COSTCO)
    grocery_list.reorder(second.id, before_id=first.id)

    moved = grocery_list.move_partition_to_unassigned(COSTCO)

    assert moved == 2
    assert grocery_list.list_items(COSTCO) == []
    assert _names(grocery_list.list_items(None)) == ["loose", "second", "first"]


def test_reorder_before_itself_leaves_item_in_place(grocery_list, memory_repository):
    first = memory_repository.seed("A", MEIJER, 1000.0)
    memory_repository.seed("B", MEIJER, 2000.0)
    memory_repository.patches.clear()

    unchanged = grocery_list.reorder(first.id, before_id=first.id)

    assert unchanged.sort_order == 1000
    assert memory_repository.patches == []
    assert _names(grocery_list.list_items(MEIJER)) == ["A", "B"]


def test_reorder_before_itself_into_other_store_appends(grocery_list, memory_repository):
    item = memory_repository.seed("A", MEIJER, 1000.0)
    memory_repository.seed("C", COSTCO, 1000.0)

    moved = grocery_list.reorder(item.id, store_id=COSTCO, before_id=item.id)

    assert (moved.store_id, moved.sort_order) == (COSTCO, 2000)


def test_underflowing_first_key_rebalances(grocery_list, memory_repository):
    tiny = memory_repository.seed("tiny", MEIJER, 5e-324)

    added = grocery_list.add("front", MEIJER, before_id=tiny.id)

    assert added.sort_order == 500
    assert memory_repository.items[tiny.id].sort_order == 1000
    assert _names(grocery_list.list_items(MEIJER)) == ["front", "tiny"]


@pytest.mark.parametrize("blank", ["", "   "])
def test_blank_names_are_rejected(grocery_list, blank):
    item = grocery_list.add("Milk", MEIJER)

    with pytest.raises(ValueError):
        grocery_list.add(blank, MEIJER)
    with pytest.raises(ValueError):
        grocery_list.update(item.id, name=blank, store_id=COSTCO)

    assert grocery_list.get(item.id).store_id == MEIJER
    assert _names(grocery_list.list_items()) == ["Milk"]
