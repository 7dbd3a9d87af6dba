from .assets import (
    CATEGORIES,
    FLOWERS,
    BACKGROUND,
    PATH,
    SEAT,
    SECONDARY,
    HERO,
    Position,
    TemplateSlot,
    GardenTemplate,
    SlotFill,
    Answer,
    QuestionScript,
    ContentCatalog,
    LifeCycleSettings,
)
from .user_data import (
    SlotRef,
    PlantedItem,
    UserProgress,
    UserProfile,
    SessionState,
)
from .results import (
    Stage,
    AnswerOutcome,
    Scene,
    CanvasState,
    Ok,
    Malformed,
    ParseResult,
    AnswerResolution,
    RenderedItem,
    GardenSnapshot,
    RenderCommand,
)

__all__ = [
    "CATEGORIES",
    "FLOWERS",
    "BACKGROUND",
    "PATH",
    "SEAT",
    "SECONDARY",
    "HERO",
    "Position",
    "TemplateSlot",
    "GardenTemplate",
    "SlotFill",
    "Answer",
    "QuestionScript",
    "ContentCatalog",
    "LifeCycleSettings",
    "SlotRef",
    "PlantedItem",
    "UserProgress",
    "UserProfile",
    "SessionState",
    "Stage",
    "AnswerOutcome",
    "Scene",
    "CanvasState",
    "Ok",
    "Malformed",
    "ParseResult",
    "AnswerResolution",
    "RenderedItem",
    "GardenSnapshot",
    "RenderCommand",
]
