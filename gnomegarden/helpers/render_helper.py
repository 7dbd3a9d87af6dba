import re
from typing import List, Optional

import discord

from ..models import CATEGORIES, CanvasState, RenderCommand
from .garden_helper import GardenHelper


class RenderHelper:
    """Turns the render commands produced by a turn into Discord embeds."""

    FOOTER_TEXT = "Gnome Garden - Garden Progress Systems"
    STATE_TITLES = {
        CanvasState.PRELOAD: "🌼 Opening the garden gate...",
        CanvasState.WELCOME: "🌼 Welcome to the Gnome Garden",
        CanvasState.STORY: "📖 The Gnome's Story",
        CanvasState.ON_BOARDING: "🧑‍🌾 Getting Started",
        CanvasState.GAME: "🪴 The Gnome Asks...",
        CanvasState.UPDATE_GARDEN: "🌱 The Garden Grows",
        CanvasState.GAME_OVER: "🏡 Your Garden Is Full",
        CanvasState.REMOVE: "🧺 Clearing Flowers",
        CanvasState.SETTINGS: "⚙️ Garden Settings",
        CanvasState.INSTRUCTIONS: "❓ How To Play",
        CanvasState.RESET_GAME: "🌄 A Brand New Garden",
        CanvasState.DEFAULT: "🧙 The Gnome",
    }
    STATE_COLORS = {
        CanvasState.GAME_OVER: discord.Color.gold(),
        CanvasState.REMOVE: discord.Color.orange(),
        CanvasState.SETTINGS: discord.Color.light_grey(),
        CanvasState.DEFAULT: discord.Color.blurple(),
    }

    _TAG_PATTERN = re.compile(r"<[^>]+>")

    @classmethod
    def strip_markup(cls, speech: str) -> str:
        """Removes audio/markup tags and collapses whitespace left behind."""
        return " ".join(cls._TAG_PATTERN.sub(" ", speech or "").split())

    @staticmethod
    def format_suggestions(suggestions) -> str:
        return " · ".join(f"`{s}`" for s in suggestions)

    @staticmethod
    def format_progress(progress_snapshot) -> str:
        return " | ".join(f"{category.capitalize()}: {progress_snapshot.get(category, 0)}" for category in CATEGORIES)

    def build_embed(self, render: RenderCommand, show_text_garden: bool = False,
                    image_filename: Optional[str] = None) -> discord.Embed:
        description_parts: List[str] = []
        speech = self.strip_markup(render.speech)
        if speech:
            description_parts.append(speech)
        if render.text_ui and self.strip_markup(render.text_ui) != speech:
            description_parts.append(f"*{self.strip_markup(render.text_ui)}*")

        embed = discord.Embed(
            title=self.STATE_TITLES.get(render.state, self.STATE_TITLES[CanvasState.DEFAULT]),
            description="\n\n".join(description_parts) or None,
            color=self.STATE_COLORS.get(render.state, discord.Color.green()),
        )

        if render.prompt_suggestions:
            embed.add_field(name="💬 You could say", value=self.format_suggestions(render.prompt_suggestions),
                            inline=False)

        if show_text_garden:
            embed.add_field(name="🌳 Garden", value=GardenHelper.get_text_garden_display(render.garden_snapshot)[:1024],
                            inline=False)

        if image_filename:
            embed.set_image(url=f"attachment://{image_filename}")

        footer = self.FOOTER_TEXT
        if render.end_session:
            footer = f"{footer} · Session ended"
        embed.set_footer(text=footer)
        return embed

    def merge_turn(self, renders: List[RenderCommand]) -> Optional[RenderCommand]:
        """
        A turn can chain through several scenes. The last render decides what is shown; speech from
        earlier renders in the chain is spoken first.
        """

        if not renders:
            return None

        last = renders[-1]
        speech = " ".join(filter(None, (self.strip_markup(r.speech) for r in renders)))
        return RenderCommand(
            state=last.state,
            progress_snapshot=last.progress_snapshot,
            garden_snapshot=last.garden_snapshot,
            prompt_suggestions=last.prompt_suggestions,
            speech=speech,
            text_ui=last.text_ui,
            next_scene=last.next_scene,
            end_session=any(r.end_session for r in renders),
            template_index=last.template_index,
        )

    def build_progress_embed(self, render: RenderCommand, display_name: str) -> discord.Embed:
        embed = discord.Embed(color=discord.Color.blue())
        embed.set_author(name=f"{display_name}: Gnome Garden")
        embed.add_field(name="📈 Question Progress", value=self.format_progress(render.progress_snapshot), inline=False)
        embed.add_field(name="🌳 Garden", value=GardenHelper.get_text_garden_display(render.garden_snapshot)[:1024],
                        inline=False)
        if render.template_index:
            embed.set_footer(text=f"{self.FOOTER_TEXT} · Template #{render.template_index}")
        else:
            embed.set_footer(text=self.FOOTER_TEXT)
        return embed
