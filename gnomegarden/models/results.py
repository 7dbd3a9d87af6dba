from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Generic, Optional, Tuple, TypeVar, Union

from .assets import Position

T = TypeVar("T")


class Stage(Enum):
    GROWING = "growing"
    WEED = "weed"


class AnswerOutcome(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    AMBIGUOUS = "ambiguous"
    REPEATED = "repeated"


class Scene:
    """Conversation scenes. A turn handler may move the session to another scene."""
    WELCOME = "Welcome"
    STORY = "Story"
    ON_BOARDING = "OnBoarding"
    GAME = "Game"
    GARDEN_ANIMATION = "GardenAnimation"
    FIRST_WEED = "FirstWeedScene"
    GAME_OVER = "GameOver"
    CONFIRM_NEW_GARDEN = "ConfirmNewGarden"
    REMOVE = "Remove"
    CLOSE_REMOVE = "CloseRemove"
    SETTINGS = "Settings"
    INSTRUCTIONS = "Instructions"
    END = "End"


class CanvasState:
    """Render states understood by the presentation layer."""
    PRELOAD = "PRELOAD"
    WELCOME = "WELCOME"
    STORY = "STORY"
    ON_BOARDING = "ON_BOARDING"
    GAME = "GAME"
    UPDATE_GARDEN = "UPDATE_GARDEN"
    GAME_OVER = "GAME_OVER"
    REMOVE = "REMOVE"
    SETTINGS = "SETTINGS"
    INSTRUCTIONS = "INSTRUCTIONS"
    RESET_GAME = "RESET_GAME"
    DEFAULT = "DEFAULT"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Malformed:
    reason: str = ""


ParseResult = Union[Ok, Malformed]


@dataclass(frozen=True)
class AnswerResolution:
    outcome: AnswerOutcome
    error_count: int
    give_up: bool = False
    answer_key: Optional[str] = None


@dataclass(frozen=True)
class RenderedItem:
    """A planted item resolved against the template, ready to draw."""
    category: str
    slot_id: int
    asset_id: str
    label: str
    stage: Stage
    weed_count: int
    positions: Tuple[Position, ...]
    growth: Tuple[float, ...]
    size: float
    remove_id: int = 0
    id_pos: Optional[Position] = None


@dataclass(frozen=True)
class GardenSnapshot:
    gnome_pos: int = -1
    gnome_size: int = 1
    items: Tuple[RenderedItem, ...] = field(default_factory=tuple)

    @property
    def removable_items(self) -> Tuple[RenderedItem, ...]:
        return tuple(item for item in self.items if item.remove_id > 0)


@dataclass(frozen=True)
class RenderCommand:
    """Everything the presentation layer needs after a turn."""
    state: str
    progress_snapshot: Dict[str, int]
    garden_snapshot: GardenSnapshot
    prompt_suggestions: Tuple[str, ...] = field(default_factory=tuple)
    speech: str = ""
    text_ui: str = ""
    next_scene: Optional[str] = None
    end_session: bool = False
    template_index: Optional[int] = None
