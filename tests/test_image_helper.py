import io

import discord
import pytest
from PIL import Image

from gnomegarden.helpers import ImageHelper
from gnomegarden.models import GardenSnapshot, Position, RenderedItem, Stage


def weedy_snapshot():
    return GardenSnapshot(gnome_pos=0, gnome_size=2, items=(
        RenderedItem(category="flowers", slot_id=0, asset_id="poppy_red", label="poppies", stage=Stage.WEED,
                     weed_count=2, positions=(Position(0.1, 0.1), Position(-0.2, 0.3), Position(0.0, -0.4)),
                     growth=(1.0, 1.0, 1.0), size=1.0, remove_id=1, id_pos=Position(0.0, 0.2)),
        RenderedItem(category="background", slot_id=6, asset_id="oak tree", label="oak tree", stage=Stage.GROWING,
                     weed_count=0, positions=(Position(0.8, 0.8),), growth=(0.5,), size=3.0),
        RenderedItem(category="path", slot_id=7, asset_id="gravel", label="", stage=Stage.GROWING,
                     weed_count=0, positions=(Position(-0.5, -0.5),), growth=(0.0,), size=1.0),
    ))


@pytest.fixture
def image_helper(tmp_path, logger):
    helper = ImageHelper(tmp_path, logger)
    helper.load_assets()
    return helper


def test_positions_map_onto_the_canvas(image_helper):
    size = ImageHelper.CANVAS_SIZE

    assert image_helper.to_pixels(Position(0.0, 0.0)) == (size // 2, size // 2)
    left, top = image_helper.to_pixels(Position(-1.0, 1.0))
    assert left < size // 2 and top < size // 2
    assert image_helper.to_pixels(Position(5.0, -5.0)) == image_helper.to_pixels(Position(1.0, -1.0))


def test_render_produces_a_png(image_helper):
    buffer = image_helper.render_garden_png(weedy_snapshot(), Position(0.2, -0.2))

    assert buffer.getvalue().startswith(b"\x89PNG")
    image = Image.open(io.BytesIO(buffer.getvalue()))
    assert image.size == (ImageHelper.CANVAS_SIZE, ImageHelper.CANVAS_SIZE)


def test_empty_garden_still_renders(image_helper):
    assert image_helper.render_garden_png(GardenSnapshot()).getvalue().startswith(b"\x89PNG")


def test_cached_assets_are_pasted(tmp_path, logger):
    (tmp_path / "images").mkdir()
    Image.new("RGBA", (8, 8), (0, 0, 255, 255)).save(tmp_path / "images" / "oak_tree.png")
    helper = ImageHelper(tmp_path, logger)
    helper.load_assets()

    assert "oak_tree.png" in helper.image_cache
    assert helper.render_garden_png(weedy_snapshot()).getvalue().startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_generate_garden_image_wraps_a_discord_file(image_helper):
    file = await image_helper.generate_garden_image(weedy_snapshot())

    assert isinstance(file, discord.File)
    assert file.filename == "garden.png"
