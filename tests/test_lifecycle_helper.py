import random

from conftest import NOW

from gnomegarden.helpers import LifeCycleHelper
from gnomegarden.models import LifeCycleSettings, PlantedItem, Stage


def flower(timestamp, category="flowers"):
    return PlantedItem(asset_id="poppy_red", category=category, garden_spot=0, timestamp=timestamp)


def make_helper():
    return LifeCycleHelper(LifeCycleSettings(), random.Random(9))


def test_stage_boundary_is_inclusive():
    helper = make_helper()
    item = flower(NOW)

    assert helper.stage(item, NOW) is Stage.GROWING
    assert helper.stage(item, NOW + 480_000) is Stage.GROWING
    assert helper.stage(item, NOW + 480_001) is Stage.WEED


def test_no_weeds_while_growing():
    assert make_helper().weed_count(flower(NOW), NOW + 100_000, 3) == 0


def test_weeds_appear_after_maturity_and_are_capped():
    helper = make_helper()
    item = flower(NOW)

    assert helper.weed_count(item, NOW + 482_000, 3) == 1
    assert helper.weed_count(item, NOW + 480_000 + 2000 * 81, 3) == 2
    assert helper.weed_count(item, NOW + 100 * 480_000, 3) == 3


def test_only_flowers_grow_weeds():
    assert make_helper().weed_count(flower(NOW, category="background"), NOW + 10 * 480_000, 3) == 0


def test_planting_timestamp_is_rounded_into_the_future():
    assert make_helper().planting_timestamp(NOW + 1234) == NOW + 10_000


def test_weeding_resets_overgrown_flowers():
    helper = make_helper()
    overgrown = flower(NOW - 480_000)
    young = flower(NOW - 1000)
    tree = flower(NOW - 10 * 480_000, category="background")

    items, changed = helper.weed([overgrown, young, tree], NOW)

    assert changed
    assert NOW <= items[0].timestamp <= NOW + 10_000
    assert items[0].timestamp % 5000 == 0
    assert items[0].weeded
    assert helper.stage(items[0], NOW) is Stage.GROWING
    assert items[1].timestamp == NOW - 1000
    assert items[2].timestamp == NOW - 10 * 480_000


def test_nothing_to_weed():
    items, changed = make_helper().weed([flower(NOW)], NOW + 1000)
    assert not changed


def test_growth_steps():
    helper = make_helper()
    item = flower(NOW)

    assert helper.growth(item, NOW - 10_000, 3) == (1.0, 0.0, 0.0)
    assert helper.growth(item, NOW + 2000, 3) == (1.0, 1 / 3, 0.0)
    assert helper.growth(item, NOW + 60_000, 3) == (1.0, 1.0, 1.0)
    assert helper.growth(item, NOW + 480_001, 2) == (1.0, 1.0)


def test_regrown_flowers_stay_full_size():
    helper = make_helper()
    items, _ = helper.weed([flower(NOW - 500_000)], NOW)

    assert helper.growth(items[0], NOW, 3) == (1.0, 1.0, 1.0)


def test_first_weed_timestamp_uses_the_first_flower():
    helper = make_helper()
    items = [flower(NOW, category="path"), flower(NOW + 5000), flower(NOW + 9000)]

    assert helper.first_weed_timestamp(items) == NOW + 5000 + 480_000
    assert helper.first_weed_timestamp([flower(NOW, category="seat")]) == 0
