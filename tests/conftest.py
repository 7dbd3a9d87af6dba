import copy
import pathlib
import random
from typing import List, Tuple

import pytest

import gnomegarden
from gnomegarden.helpers import DataHelper
from gnomegarden.models import GardenTemplate

BUNDLED_DATA_PATH = pathlib.Path(gnomegarden.__file__).parent / "data"

# A multiple of the 5 second rounding step.
NOW = 1_700_000_000_000


class FakeLogger:
    """Stands in for LoggingHelper; keeps every message instead of sending it anywhere."""

    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def init_log(self, message: str, level: str = "INFO"):
        self.messages.append((message, level))

    async def log_to_discord(self, message: str, level: str = "INFO", embed=None):
        self.messages.append((message, level))

    def levels(self) -> List[str]:
        return [level for _, level in self.messages]


class FakeValue:
    """Mimics a Red Config value: awaitable to read, `.set()` to write."""

    def __init__(self, value):
        self.value = value

    async def __call__(self):
        return copy.deepcopy(self.value)

    async def set(self, value):
        self.value = copy.deepcopy(value)


class FakeConfig:
    def __init__(self, game_state=None, log_channel_id=None):
        self.game_state = FakeValue(game_state if game_state is not None else {})
        self.log_channel_id = FakeValue(log_channel_id)

    def register_global(self, **defaults):
        pass


def flower_slot(slot_id: int, positions: int = 3) -> dict:
    return {
        "id": slot_id,
        "size": 1,
        "items": [{"x": 0.1 * i, "y": -0.1 * i} for i in range(positions)],
        "removeable": True,
        "id_pos": {"x": 0.0, "y": 0.2},
        "gnome_pos": {"x": 0.2, "y": -0.2},
    }


def plain_slot(slot_id: int) -> dict:
    return {"id": slot_id, "size": 2, "items": [{"x": 0.5, "y": 0.5}], "gnome_pos": {"x": 0.3, "y": 0.3}}


@pytest.fixture
def logger():
    return FakeLogger()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def data_helper(logger):
    helper = DataHelper(BUNDLED_DATA_PATH, logger)
    helper.load_all_data()
    return helper


@pytest.fixture
def catalog(data_helper):
    return data_helper.catalog


@pytest.fixture
def make_template(logger, tmp_path):
    parser = DataHelper(tmp_path, logger)

    def _make(raw: dict, index: int = 1) -> GardenTemplate:
        return parser.parse_template(index, f"garden{index:02d}-grid", raw)

    return _make


@pytest.fixture
def small_template(make_template):
    """One flower slot, two background slots and a seat."""
    return make_template({
        "flowers": [flower_slot(0)],
        "background": [plain_slot(1), plain_slot(2)],
        "seat": [plain_slot(3)],
    })
