from .time_helper import TimeHelper
from .session_helper import SessionHelper
from .logging_helper import LoggingHelper
from .data_helper import DataHelper
from .image_helper import ImageHelper
from .game_state_helper import GameStateHelper
from .garden_helper import GardenHelper
from .template_helper import TemplateHelper
from .slot_helper import SlotHelper
from .question_helper import QuestionHelper
from .lifecycle_helper import LifeCycleHelper
from .removal_helper import RemovalHelper
from .conversation_helper import ConversationHelper
from .render_helper import RenderHelper
