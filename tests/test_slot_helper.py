import random

from conftest import flower_slot, plain_slot

from gnomegarden.helpers import SlotHelper
from gnomegarden.models import PlantedItem, SlotRef, UserProgress


def planted(category, slot_id):
    return PlantedItem(asset_id=f"{category}_{slot_id}", category=category, garden_spot=slot_id, timestamp=0)


def test_available_count_matches_template_minus_garden(data_helper):
    rng = random.Random(7)
    for template in data_helper.templates:
        all_slots = [(slot.category, slot.id) for slot in template.iter_slots()]
        for _ in range(20):
            filled = rng.sample(all_slots, rng.randint(0, len(all_slots)))
            garden = [planted(category, slot_id) for category, slot_id in filled]

            available = SlotHelper.compute_available(template, garden)

            assert len(available) == template.slot_count - len(garden)


def test_compute_available_is_idempotent(small_template):
    garden = [planted("background", 2)]

    first = SlotHelper.compute_available(small_template, garden)
    second = SlotHelper.compute_available(small_template, garden)

    assert set(first) == set(second)


def test_stale_references_are_ignored(small_template):
    garden = [planted("flowers", 99), planted("hero", 0)]

    available = SlotHelper.compute_available(small_template, garden)

    assert len(available) == small_template.slot_count


def test_select_next_never_returns_a_filled_slot(data_helper):
    rng = random.Random(11)
    helper = SlotHelper(rng)
    for template in data_helper.templates:
        all_slots = [(slot.category, slot.id) for slot in template.iter_slots()]
        for _ in range(30):
            filled = rng.sample(all_slots, rng.randint(0, len(all_slots) - 1))
            garden = [planted(category, slot_id) for category, slot_id in filled]
            progress = UserProgress(flowers=rng.randint(0, 2))

            spot = helper.select_next(SlotHelper.compute_available(template, garden), progress)

            assert spot is not None
            assert spot not in {item.slot_ref for item in garden}


def test_onboarding_flower_comes_first(make_template):
    template = make_template({
        "flowers": [flower_slot(0), flower_slot(1)],
        "background": [plain_slot(2)],
        "path": [plain_slot(3)],
    })
    helper = SlotHelper(random.Random(3))

    spot = helper.select_next(SlotHelper.compute_available(template, []), UserProgress(flowers=0))

    assert spot.category == "flowers"


def test_background_before_seat_once_flowers_started(small_template):
    helper = SlotHelper(random.Random(5))
    available = SlotHelper.compute_available(small_template, [planted("flowers", 0)])

    assert helper.select_next(available, UserProgress(flowers=1)).category == "background"


def test_path_after_background(make_template):
    template = make_template({"path": [plain_slot(0)], "seat": [plain_slot(1)], "hero": [plain_slot(2)]})
    helper = SlotHelper(random.Random(5))

    assert helper.select_next(SlotHelper.compute_available(template, []), UserProgress(flowers=1)) == \
        SlotRef("path", 0)


def test_full_garden_has_no_next_slot():
    assert SlotHelper(random.Random(1)).select_next([], UserProgress()) is None


def test_take_and_release_spot():
    available = [SlotRef("flowers", 0)]

    assert SlotHelper.take_spot(available, SlotRef("flowers", 0))
    assert not SlotHelper.take_spot(available, SlotRef("flowers", 0))

    SlotHelper.release_spot(available, SlotRef("flowers", 0))
    SlotHelper.release_spot(available, SlotRef("flowers", 0))
    assert available == [SlotRef("flowers", 0)]
