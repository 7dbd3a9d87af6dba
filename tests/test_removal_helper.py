from conftest import flower_slot, plain_slot

from gnomegarden.helpers import RemovalHelper
from gnomegarden.models import Malformed, Ok, PlantedItem, SlotRef


def planted(category, slot_id, label=""):
    return PlantedItem(asset_id=f"{category}_{slot_id}", category=category, garden_spot=slot_id, timestamp=0,
                       label=label)


def test_display_ids_cover_removable_items_in_garden_order(make_template):
    template = make_template({"flowers": [flower_slot(0), flower_slot(1)], "background": [plain_slot(2)]})
    garden = [planted("flowers", 1), planted("background", 2), planted("flowers", 7), planted("flowers", 0)]

    numbering = RemovalHelper.assign_display_ids(template, garden)

    assert numbering == {1: SlotRef("flowers", 1), 2: SlotRef("flowers", 0)}


def test_missing_display_id_leaves_garden_unchanged():
    garden = [planted("flowers", 0, "poppies"), planted("flowers", 2, "tulips")]
    numbering = {1: SlotRef("flowers", 0), 3: SlotRef("flowers", 2)}

    remaining, labels, freed = RemovalHelper.remove_by_display_id(garden, [2], numbering)

    assert remaining == garden
    assert labels == []
    assert freed == []


def test_removal_returns_labels_and_frees_slots():
    garden = [planted("flowers", 0, "poppies"), planted("flowers", 1, "tulips"), planted("path", 2)]
    numbering = {1: SlotRef("flowers", 0), 2: SlotRef("flowers", 1), 3: SlotRef("path", 2)}

    remaining, labels, freed = RemovalHelper.remove_by_display_id(garden, [2, 3, 1, 1], numbering)

    assert [item.slot_ref for item in remaining] == [SlotRef("path", 2)]
    assert labels == ["tulips", "poppies"]
    assert freed == [SlotRef("flowers", 1), SlotRef("flowers", 0)]


def test_parse_display_ids():
    assert RemovalHelper.parse_display_ids(["1", "#3", "three", 4]) == Ok([1, 3, 4])
    assert RemovalHelper.parse_display_ids("2") == Ok([2])
    assert isinstance(RemovalHelper.parse_display_ids(None), Malformed)
    assert isinstance(RemovalHelper.parse_display_ids(["nope"]), Malformed)
    assert isinstance(RemovalHelper.parse_display_ids(3.5), Malformed)


def test_join_labels():
    assert RemovalHelper.join_labels(["poppies"]) == "poppies"
    assert RemovalHelper.join_labels(["poppies", "", "tulips", "daisies"]) == "poppies, tulips and daisies"
    assert RemovalHelper.join_labels([""]) == ""
