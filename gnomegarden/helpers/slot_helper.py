import random
from typing import Iterable, List, Optional

from ..models import (
    BACKGROUND,
    FLOWERS,
    PATH,
    GardenTemplate,
    PlantedItem,
    SlotRef,
    UserProgress,
)


class SlotHelper:
    """
    Works out which template slots are still free and which one the gnome should fill next.
    Nothing here touches persisted state; callers pass the template and the garden in.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    @staticmethod
    def compute_available(template: GardenTemplate, garden_progress: Iterable[PlantedItem]) -> List[SlotRef]:
        """
        Every (category, slot id) pair in the template minus those already planted.
        References to slots the template does not define are ignored.
        """

        filled = {item.slot_ref for item in garden_progress}
        return [
            SlotRef(slot.category, slot.id)
            for slot in template.iter_slots()
            if SlotRef(slot.category, slot.id) not in filled
        ]

    @staticmethod
    def _first_of(available: List[SlotRef], category: str) -> Optional[SlotRef]:
        return next((spot for spot in available if spot.category == category), None)

    def select_next(self, available: List[SlotRef], user_progress: UserProgress) -> Optional[SlotRef]:
        """
        Picks the slot to fill next: the onboarding flower first, then background, then path,
        then any remaining slot at random. Returns None when the garden is full.
        """

        if not available:
            return None

        if user_progress.flowers == 0:
            if spot := self._first_of(available, FLOWERS):
                return spot

        for category in (BACKGROUND, PATH):
            if spot := self._first_of(available, category):
                return spot

        return self.rng.choice(available)

    @staticmethod
    def take_spot(available: List[SlotRef], spot: SlotRef) -> bool:
        """Removes a spot from the session's available list. Returns False if it was not there."""

        if spot in available:
            available.remove(spot)
            return True
        return False

    @staticmethod
    def release_spot(available: List[SlotRef], spot: SlotRef):
        if spot not in available:
            available.append(spot)
