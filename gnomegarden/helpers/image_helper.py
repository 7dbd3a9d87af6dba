import io
import pathlib
from typing import Dict, Optional, Tuple

import discord
from PIL import Image, ImageDraw, ImageFont

from .logging_helper import LoggingHelper
from ..models import BACKGROUND, FLOWERS, HERO, PATH, SEAT, SECONDARY, GardenSnapshot, Position, RenderedItem, Stage


class ImageHelper:
    """Handles PIL-based garden image generation for the cog."""

    CANVAS_SIZE: int = 800
    BASE_ITEM_RADIUS: int = 28
    GNOME_RADIUS: int = 22
    GNOME_HOME = Position(0.0, -0.85)

    SKY_COLOR = (168, 214, 140, 255)
    WEED_COLOR = (96, 112, 40, 255)
    GNOME_COLOR = (200, 40, 40, 255)
    CATEGORY_COLORS: Dict[str, Tuple[int, int, int, int]] = {
        FLOWERS: (236, 120, 180, 255),
        BACKGROUND: (46, 120, 60, 255),
        PATH: (196, 170, 120, 255),
        SEAT: (140, 90, 50, 255),
        SECONDARY: (250, 210, 80, 255),
        HERO: (90, 140, 220, 255),
    }

    def __init__(self, data_path_obj: pathlib.Path, logger: LoggingHelper):
        self.data_path = data_path_obj
        self.logger = logger

        self.image_cache: Dict[str, Image.Image] = {}
        self.label_font: Optional[ImageFont.ImageFont] = None

    @staticmethod
    def _sanitize_id_for_filename(asset_id: str) -> str:
        return asset_id.replace(" ", "_")

    def load_assets(self):
        """Caches optional PNG assets. Items without an asset are drawn as shapes."""

        self.image_cache.clear()
        image_dir = self.data_path / "images"

        if image_dir.is_dir():
            for image_path in image_dir.glob("*.png"):
                try:
                    self.image_cache[image_path.name] = Image.open(image_path).convert("RGBA")
                except OSError as e:
                    self.logger.init_log(f"Failed to load image asset '{image_path.name}': {e}", "ERROR")
            self.logger.init_log(f"Loaded {len(self.image_cache)} image assets into memory cache.", "INFO")
        else:
            self.logger.init_log(f"No image asset directory at {image_dir}. Drawing the garden from shapes.", "INFO")

        try:
            font_path = self.data_path / "font" / "Roboto-Medium.ttf"
            self.label_font = ImageFont.truetype(str(font_path), 22)
        except OSError:
            self.label_font = ImageFont.load_default()

    def to_pixels(self, position: Position) -> Tuple[int, int]:
        """Maps a -1..1 template position onto the canvas. +y is up."""

        half = self.CANVAS_SIZE / 2
        x = half + max(-1.0, min(1.0, position.x)) * (half - self.BASE_ITEM_RADIUS)
        y = half - max(-1.0, min(1.0, position.y)) * (half - self.BASE_ITEM_RADIUS)
        return int(round(x)), int(round(y))

    def _paste_or_draw(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, item: RenderedItem,
                       center: Tuple[int, int], radius: int):
        asset = self.image_cache.get(f"{self._sanitize_id_for_filename(item.asset_id)}.png")
        if asset is not None:
            side = max(1, radius * 2)
            resized = asset.resize((side, side))
            canvas.paste(resized, (center[0] - radius, center[1] - radius), resized)
            return

        color = self.CATEGORY_COLORS.get(item.category, (255, 255, 255, 255))
        x, y = center
        draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=color, outline=(0, 0, 0, 255))

    def _draw_item(self, canvas: Image.Image, draw: ImageDraw.ImageDraw, item: RenderedItem):
        positions = item.positions or (Position(0.0, 0.0),)
        full_radius = max(4, int(self.BASE_ITEM_RADIUS * item.size))

        for index, position in enumerate(positions):
            growth = item.growth[index] if index < len(item.growth) else 1.0
            if growth <= 0:
                continue
            center = self.to_pixels(position)
            self._paste_or_draw(canvas, draw, item, center, max(2, int(full_radius * growth)))

        if item.stage is Stage.WEED:
            for position in positions[:item.weed_count]:
                x, y = self.to_pixels(position)
                offset = full_radius // 2
                draw.polygon(
                    [(x - offset, y + offset), (x, y - offset), (x + offset, y + offset)], fill=self.WEED_COLOR)

        if item.remove_id:
            x, y = self.to_pixels(item.id_pos or positions[0])
            draw.rectangle((x - 14, y - 14, x + 14, y + 14), fill=(255, 255, 255, 230), outline=(0, 0, 0, 255))
            label = str(item.remove_id)
            bbox = draw.textbbox((0, 0), label, font=self.label_font)
            draw.text((x - (bbox[2] - bbox[0]) / 2, y - (bbox[3] - bbox[1]) / 2 - bbox[1]), label,
                      fill=(0, 0, 0, 255), font=self.label_font)

    def render_garden_png(self, snapshot: GardenSnapshot, gnome_position: Optional[Position] = None) -> io.BytesIO:
        """Draws the snapshot on a square canvas and returns it as PNG bytes."""

        canvas = Image.new("RGBA", (self.CANVAS_SIZE, self.CANVAS_SIZE), self.SKY_COLOR)
        draw = ImageDraw.Draw(canvas)
        if self.label_font is None:
            self.label_font = ImageFont.load_default()

        # Background and path first so that flowers and decorations sit on top.
        draw_order = {BACKGROUND: 0, PATH: 1, SEAT: 2, SECONDARY: 3, HERO: 4, FLOWERS: 5}
        for item in sorted(snapshot.items, key=lambda i: draw_order.get(i.category, 6)):
            self._draw_item(canvas, draw, item)

        x, y = self.to_pixels(gnome_position or self.GNOME_HOME)
        radius = self.GNOME_RADIUS * snapshot.gnome_size
        draw.polygon([(x - radius, y + radius), (x, y - radius * 2), (x + radius, y + radius)], fill=self.GNOME_COLOR)

        img_byte_arr = io.BytesIO()
        canvas.save(img_byte_arr, format='PNG')
        img_byte_arr.seek(0)
        return img_byte_arr

    async def generate_garden_image(
            self, snapshot: GardenSnapshot, gnome_position: Optional[Position] = None
    ) -> Optional[discord.File]:
        """Generates the garden picture for a turn, or None if drawing failed."""

        try:
            buffer = self.render_garden_png(snapshot, gnome_position)
        except (OSError, ValueError) as e:
            await self.logger.log_to_discord(f"Garden image rendering failed: {e}", "ERROR")
            return None
        return discord.File(buffer, filename="garden.png")
