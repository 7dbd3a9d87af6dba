from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

FLOWERS = "flowers"
BACKGROUND = "background"
PATH = "path"
SEAT = "seat"
SECONDARY = "secondary"
HERO = "hero"

CATEGORIES: Tuple[str, ...] = (FLOWERS, BACKGROUND, PATH, SEAT, SECONDARY, HERO)


@dataclass(frozen=True)
class Position:
    """A relative render position, normalized to the -1..1 range of the garden grid."""
    x: float
    y: float


@dataclass(frozen=True)
class TemplateSlot:
    """A single plantable position in a garden template."""
    id: int
    category: str
    size: float = 1.0
    items: Tuple[Position, ...] = field(default_factory=tuple)
    removable: bool = False
    id_pos: Optional[Position] = None
    gnome_pos: Optional[Position] = None


@dataclass(frozen=True)
class GardenTemplate:
    """A fixed layout of slots across all categories for one garden variant."""
    index: int
    name: str
    slots: Mapping[str, Tuple[TemplateSlot, ...]] = field(default_factory=lambda: MappingProxyType({}))

    def iter_slots(self):
        for category in CATEGORIES:
            yield from self.slots.get(category, ())

    def get_slot(self, category: str, slot_id: int) -> Optional[TemplateSlot]:
        for slot in self.slots.get(category, ()):
            if slot.id == slot_id:
                return slot
        return None

    @property
    def slot_count(self) -> int:
        return sum(len(slots) for slots in self.slots.values())


@dataclass(frozen=True)
class SlotFill:
    """The garden update attached to an answer."""
    asset_id: str
    category: str
    label: str = ""


@dataclass(frozen=True)
class Answer:
    key: str
    update: SlotFill
    response_tts: str = ""
    response_tos: str = ""


@dataclass(frozen=True)
class QuestionScript:
    """A question the gnome asks, with exactly the answers it understands."""
    category: str
    question_tts: str
    question_tos: str = ""
    answers: Tuple[Answer, ...] = field(default_factory=tuple)

    @property
    def answer_keys(self) -> Tuple[str, ...]:
        return tuple(a.key for a in self.answers)

    def find_answer(self, key: str) -> Optional[Answer]:
        for answer in self.answers:
            if answer.key == key:
                return answer
        return None


@dataclass(frozen=True)
class ContentCatalog:
    """Static conversation content: questions per category plus scene and gnome lines."""
    questions: Mapping[str, Tuple[QuestionScript, ...]]
    scenes: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))
    gnome_responses: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))

    def question_count(self, category: str) -> int:
        return len(self.questions.get(category, ()))

    def scene_text(self, key: str, default: str = "") -> str:
        value = self.scenes.get(key, default)
        return value if isinstance(value, str) else default

    def scene_list(self, key: str) -> Tuple[str, ...]:
        value = self.scenes.get(key, ())
        if isinstance(value, str):
            return (value,)
        return tuple(value)

    def gnome_text(self, key: str, default: str = "") -> str:
        value = self.gnome_responses.get(key, default)
        return value if isinstance(value, str) else default

    def gnome_list(self, key: str) -> Tuple[str, ...]:
        value = self.gnome_responses.get(key, ())
        if isinstance(value, str):
            return (value,)
        return tuple(value)


@dataclass(frozen=True)
class LifeCycleSettings:
    """Time arithmetic for planted items. Intervals are in seconds, lengths in ticks."""
    update_interval: int = 2
    life_cycle_length: int = 240
    weed_interval: int = 80
    rounding_seconds: int = 5
    plant_delay_ms: int = 10000
    regrow_jitter_seconds: int = 10
    growth_steps: int = 3
    weed_enabled_categories: Tuple[str, ...] = (FLOWERS,)

    @property
    def tick_ms(self) -> int:
        return 1000 * self.update_interval

    @property
    def cycle_ms(self) -> int:
        return self.update_interval * self.life_cycle_length * 1000

    @classmethod
    def from_global_state(cls, values: Dict[str, object]) -> "LifeCycleSettings":
        defaults = cls()
        return cls(
            update_interval=int(values.get("update_interval", defaults.update_interval)),
            life_cycle_length=int(values.get("life_cycle_length", defaults.life_cycle_length)),
            weed_interval=int(values.get("weed_interval", defaults.weed_interval)),
        )
