from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .assets import CATEGORIES


@dataclass(frozen=True)
class SlotRef:
    """Identifies a template slot by category and id."""
    category: str
    slot_id: int


@dataclass
class PlantedItem:
    """A filled slot in a user's garden."""
    asset_id: str
    category: str
    garden_spot: int
    timestamp: int
    label: str = ""
    weeded: bool = False

    @property
    def slot_ref(self) -> SlotRef:
        return SlotRef(self.category, self.garden_spot)


@dataclass
class UserProgress:
    """How many questions of each category the user has gone through."""
    flowers: int = 0
    background: int = 0
    path: int = 0
    seat: int = 0
    secondary: int = 0
    hero: int = 0

    def get(self, category: str) -> int:
        if category not in CATEGORIES:
            raise KeyError(category)
        return getattr(self, category)

    def set(self, category: str, value: int):
        if category not in CATEGORIES:
            raise KeyError(category)
        setattr(self, category, value)

    def as_dict(self) -> Dict[str, int]:
        return {category: self.get(category) for category in CATEGORIES}


@dataclass
class UserProfile:
    """The internal, mutable representation of a user's persisted garden record."""
    user_id: int
    template_index: Optional[int] = None
    progress: UserProgress = field(default_factory=UserProgress)
    garden: List[PlantedItem] = field(default_factory=list)
    story_visited: bool = False
    onboarding_1: bool = False
    onboarding_2: bool = False
    onboarding_3: bool = False
    sound_enabled: bool = True


@dataclass
class SessionState:
    """Per-session scratch state. Rebuilt from the profile at session start, never persisted."""
    user_id: int
    last_turn: int = 0
    scene: str = "Welcome"
    available_spots: List[SlotRef] = field(default_factory=list)
    next_position: Optional[SlotRef] = None
    error_count: int = 0
    no_match_count: int = 0
    current_question: Optional[Tuple[str, int]] = None
    first_weed_timestamp: int = 0
    new_visitor: bool = False
    ended: bool = False
    display_ids: Dict[int, SlotRef] = field(default_factory=dict)

