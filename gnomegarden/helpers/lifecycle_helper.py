import math
import random
from typing import Iterable, List, Optional, Tuple

from ..models import FLOWERS, LifeCycleSettings, PlantedItem, Stage
from .time_helper import TimeHelper


def clamp(value: float, low: float, high: float) -> float:
    return low if value <= low else high if value >= high else value


class LifeCycleHelper:
    """
    Derives a planted item's life-cycle from its timestamp. Everything is a function of the
    `now` passed in (epoch milliseconds); there is no background clock.
    """

    def __init__(self, settings: Optional[LifeCycleSettings] = None, rng: Optional[random.Random] = None):
        self.settings = settings or LifeCycleSettings()
        self.rng = rng or random.Random()

    def planting_timestamp(self, now: int) -> int:
        """The timestamp stored for a freshly planted item."""
        return TimeHelper.round_down(now + self.settings.plant_delay_ms, self.settings.rounding_seconds)

    def regrow_timestamp(self, now: int) -> int:
        offset = self.rng.randint(1, self.settings.regrow_jitter_seconds) * 1000
        return TimeHelper.round_down(now + offset, self.settings.rounding_seconds)

    def elapsed_ticks(self, item: PlantedItem, now: int) -> int:
        return math.floor((now - item.timestamp) / self.settings.tick_ms) + 1

    def stage(self, item: PlantedItem, now: int) -> Stage:
        # Inclusive at exactly one full cycle.
        if now - item.timestamp <= self.settings.cycle_ms:
            return Stage.GROWING
        return Stage.WEED

    def weeds_enabled(self, category: str) -> bool:
        return category in self.settings.weed_enabled_categories

    def weed_count(self, item: PlantedItem, now: int, max_weeds: int) -> int:
        """Weeds grow one per `weed_interval` ticks past maturity, capped at the slot's positions."""

        if not self.weeds_enabled(item.category) or self.stage(item, now) is Stage.GROWING:
            return 0

        overdue = (self.elapsed_ticks(item, now) - self.settings.life_cycle_length) / self.settings.weed_interval
        return math.ceil(clamp(overdue, 0, max_weeds))

    def growth(self, item: PlantedItem, now: int, positions: int) -> Tuple[float, ...]:
        """Fraction of full size shown at each of the slot's sub-positions. Re-grown items stay full size."""

        steps = self.settings.growth_steps
        if item.weeded or self.stage(item, now) is Stage.WEED:
            return tuple(1.0 for _ in range(positions))

        ticks = self.elapsed_ticks(item, now)
        sizes = []
        for index in range(positions):
            progress = steps if index == 0 else clamp(ticks - index, 0, steps)
            sizes.append(progress / steps)
        return tuple(sizes)

    def needs_weeding(self, item: PlantedItem, now: int) -> bool:
        return item.category == FLOWERS and item.timestamp <= now - self.settings.cycle_ms

    def weed(self, items: Iterable[PlantedItem], now: int) -> Tuple[List[PlantedItem], bool]:
        """
        Resets every overgrown flower so it starts growing again.
        Returns the items and whether anything was actually weeded.
        """

        updated_items = list(items)
        changed = False
        for item in updated_items:
            if self.needs_weeding(item, now):
                item.timestamp = self.regrow_timestamp(now)
                item.weeded = True
                changed = True
        return updated_items, changed

    def first_weed_timestamp(self, items: Iterable[PlantedItem]) -> int:
        """When the first flower in the garden turns to weed, or 0 if there are no flowers."""

        first_flower = next((item for item in items if item.category == FLOWERS), None)
        if first_flower is None:
            return 0
        return first_flower.timestamp + self.settings.cycle_ms
