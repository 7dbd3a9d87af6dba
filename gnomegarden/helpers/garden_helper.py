import dataclasses
from typing import Any, Dict, List, Optional, Set

from .game_state_helper import GameStateHelper

from ..models import (
    CATEGORIES,
    GardenSnapshot,
    PlantedItem,
    SlotRef,
    Stage,
    UserProfile,
    UserProgress,
)


class GardenHelper:
    """
    Manages user garden records. Raw dicts from storage are validated into an internal mutable
    UserProfile, and profiles are written back as plain dicts.
    """

    def __init__(self, game_state_helper: GameStateHelper):
        self.game_state_helper = game_state_helper
        self._user_cache: Dict[int, UserProfile] = {}

    @staticmethod
    def _as_int(value: Any, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    @classmethod
    def _dict_to_progress(cls, progress_dict: Any) -> UserProgress:
        progress = UserProgress()
        if not isinstance(progress_dict, dict):
            return progress

        for category in CATEGORIES:
            progress.set(category, max(0, cls._as_int(progress_dict.get(category, 0))))
        return progress

    @classmethod
    def _dict_to_planted_item(cls, item_dict: Any) -> Optional[PlantedItem]:
        if not isinstance(item_dict, dict):
            return None

        category = item_dict.get("category")
        asset_id = item_dict.get("asset_id")
        if category not in CATEGORIES or not asset_id:
            return None

        try:
            garden_spot = int(item_dict["garden_spot"])
        except (KeyError, TypeError, ValueError):
            return None

        return PlantedItem(
            asset_id=str(asset_id),
            category=category,
            garden_spot=garden_spot,
            timestamp=cls._as_int(item_dict.get("timestamp"), 0),
            label=item_dict.get("label") or "",
            weeded=bool(item_dict.get("weeded", False)),
        )

    def _deserialize_user(self, user_id: int, user_dict: Dict[str, Any]) -> UserProfile:
        defaults = {
            "template_index": None, "progress": {}, "garden": [], "story_visited": False,
            "onboarding_1": False, "onboarding_2": False, "onboarding_3": False, "sound_enabled": True,
        }

        for key, value in defaults.items():
            user_dict.setdefault(key, value)

        garden: List[PlantedItem] = []
        seen: Set[SlotRef] = set()
        for raw_item in user_dict["garden"] if isinstance(user_dict["garden"], list) else []:
            item = self._dict_to_planted_item(raw_item)
            # A slot can only hold one item; later duplicates are dropped.
            if item is None or item.slot_ref in seen:
                continue
            seen.add(item.slot_ref)
            garden.append(item)

        return UserProfile(
            user_id=user_id,
            template_index=self._as_int(user_dict["template_index"]) or None,
            progress=self._dict_to_progress(user_dict["progress"]),
            garden=garden,
            story_visited=bool(user_dict["story_visited"]),
            onboarding_1=bool(user_dict["onboarding_1"]),
            onboarding_2=bool(user_dict["onboarding_2"]),
            onboarding_3=bool(user_dict["onboarding_3"]),
            sound_enabled=bool(user_dict["sound_enabled"]),
        )

    def save_user_profile(self, user_profile: UserProfile):
        """Converts a UserProfile object back to a dict and saves it to the IN-MEMORY state."""

        serializable_data = dataclasses.asdict(user_profile)
        serializable_data.pop('user_id')

        self.game_state_helper.set_user_data(user_profile.user_id, serializable_data)

    def has_record(self, user_id: int) -> bool:
        return bool(self.game_state_helper.get_user_data(user_id))

    def get_user_profile(self, user_id: int) -> UserProfile:
        if user_id in self._user_cache:
            return self._user_cache[user_id]

        raw_data = dict(self.game_state_helper.get_user_data(user_id))

        user_profile = self._deserialize_user(user_id, raw_data)
        self._user_cache[user_id] = user_profile

        return user_profile

    def forget_user(self, user_id: int) -> bool:
        self._user_cache.pop(user_id, None)
        return self.game_state_helper.delete_user_data(user_id)

    @staticmethod
    def get_text_garden_display(snapshot: GardenSnapshot) -> str:
        if not snapshot.items:
            return "🟫 Nothing planted yet."

        lines = []
        for item in snapshot.items:
            prefix = f"**#{item.remove_id}**" if item.remove_id else "▫️"
            name = item.label or item.asset_id.replace("_", " ")
            if item.stage is Stage.WEED and item.weed_count:
                state = f"🌿 overrun by {item.weed_count} weed{'s' if item.weed_count != 1 else ''}"
            elif item.growth and min(item.growth) < 1.0:
                state = f"🌱 growing ({sum(item.growth) / len(item.growth):.0%})"
            else:
                state = "🌸 in bloom" if item.category == "flowers" else "✅ in place"
            lines.append(f"{prefix} {name} ({item.category} {item.slot_id}): {state}")
        return "\n".join(lines)
