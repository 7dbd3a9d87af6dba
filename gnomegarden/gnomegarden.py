import io
import json
import random
import traceback
from typing import List, Optional

import discord
from redbot.core import Config, commands, data_manager

from .decorators import has_active_session, is_cog_ready
from .helpers import (
    ConversationHelper,
    DataHelper,
    GameStateHelper,
    GardenHelper,
    ImageHelper,
    LifeCycleHelper,
    LoggingHelper,
    QuestionHelper,
    RemovalHelper,
    RenderHelper,
    SessionHelper,
    SlotHelper,
    TemplateHelper,
    TimeHelper,
)
from .models import CanvasState, Position, RenderCommand, Scene, SessionState, UserProfile


class GnomeGarden(commands.Cog):
    """The Gnome Garden - Answer the gnome's questions and watch your garden grow."""

    _DISPLAY_TEXT_GARDEN_WITH_IMAGE: bool = False

    def __init__(self, bot: commands.Bot):
        self._initialized = False

        self.bot = bot
        self.config = Config.get_conf(self, identifier=718204551930472301)
        self.config.register_global(game_state={}, log_channel_id=None)

        self.cog_data_path = data_manager.bundled_data_path(self)
        self.rng = random.Random()
        self.session_helper = SessionHelper()
        self.logger = LoggingHelper(bot)
        self.data_loader = DataHelper(self.cog_data_path, self.logger)
        self.data_loader.load_all_data()

        self.game_state_helper = GameStateHelper(self.config, self.logger)
        self.render_helper = RenderHelper()

        self.image_helper: Optional[ImageHelper] = None
        self.garden_helper: Optional[GardenHelper] = None
        self.template_helper: Optional[TemplateHelper] = None
        self.lifecycle_helper: Optional[LifeCycleHelper] = None
        self.conversation_helper: Optional[ConversationHelper] = None

        self.startup_task = self.bot.loop.create_task(self.startup())

    def cog_unload(self):
        """Cog cleanup method."""

        if self.startup_task:
            self.startup_task.cancel()

        self.session_helper.clear_all_sessions()
        self.logger.init_log("Gnome Garden cog systems are now offline.", "INFO")

    async def _load_and_initialize_helpers(self):
        await self.game_state_helper.load_game_state()

        self.image_helper = ImageHelper(self.cog_data_path, self.logger)
        self.garden_helper = GardenHelper(self.game_state_helper)
        self.template_helper = TemplateHelper(self.data_loader.templates, self.rng)
        self.lifecycle_helper = LifeCycleHelper(self.game_state_helper.get_life_cycle_settings(), self.rng)
        self.conversation_helper = ConversationHelper(
            self.data_loader.catalog,
            self.template_helper,
            SlotHelper(self.rng),
            QuestionHelper(self.data_loader.catalog, self.rng),
            self.lifecycle_helper,
            RemovalHelper(),
            self.rng,
        )

        self.image_helper.load_assets()

    async def startup(self):
        """Loads the persisted state once the bot is ready. Life-cycle values are computed per turn."""

        await self.bot.wait_until_ready()

        self.logger.set_log_channel(await self.config.log_channel_id())
        await self.logger.flush_init_log_queue()

        try:
            await self._load_and_initialize_helpers()
        except Exception as e:
            await self.logger.log_to_discord(
                f"System Startup: CRITICAL failure while loading the garden: {e}\n{traceback.format_exc()}",
                "CRITICAL")
            return

        self._initialized = True
        await self.logger.log_to_discord("System Startup: Gnome Garden is online.", "INFO")

    @staticmethod
    def _can_render(ctx: commands.Context) -> bool:
        permissions = ctx.channel.permissions_for(ctx.me)
        return permissions.embed_links and permissions.attach_files

    def _gnome_position(self, profile: UserProfile, session: SessionState) -> Optional[Position]:
        if session.next_position is None:
            return None
        template = self.template_helper.get_template(profile.template_index)
        slot = template.get_slot(session.next_position.category, session.next_position.slot_id)
        return slot.gnome_pos if slot else None

    async def _send_turn(self, ctx: commands.Context, renders: List[RenderCommand], profile: UserProfile,
                         session: SessionState):
        render = self.render_helper.merge_turn(renders)
        if render is None:
            return

        garden_image_file: Optional[discord.File] = None
        display_text_garden = self._DISPLAY_TEXT_GARDEN_WITH_IMAGE

        if render.state != CanvasState.PRELOAD:
            try:
                garden_image_file = await self.image_helper.generate_garden_image(
                    render.garden_snapshot, self._gnome_position(profile, session))
            except Exception as e:
                await self.logger.log_to_discord(
                    f"Garden image generation failed for {ctx.author.id}: {e}\n{traceback.format_exc()}", "ERROR")
            if garden_image_file is None:
                display_text_garden = True

        embed = self.render_helper.build_embed(
            render,
            show_text_garden=display_text_garden,
            image_filename=garden_image_file.filename if garden_image_file else None,
        )
        embed.set_author(name=f"{ctx.author.display_name}'s Garden", icon_url=ctx.author.display_avatar.url)
        await ctx.send(embed=embed, file=garden_image_file)

    async def _run_turn(self, ctx: commands.Context, intent: str, argument=None):
        """Runs one intent for the author, persists their garden and answers in the channel."""

        now = TimeHelper.get_current_timestamp_ms()
        session = self.session_helper.get_session(ctx.author.id, now)
        if session is None:
            await ctx.send(embed=discord.Embed(
                description="The gnome wandered off while you were away. Use `garden start` to call them back.",
                color=discord.Color.orange()))
            return

        profile = self.garden_helper.get_user_profile(ctx.author.id)
        self.session_helper.touch(session, now)

        try:
            renders = self.conversation_helper.handle(intent, profile, session, now, argument)
        except Exception as e:
            await self.logger.log_to_discord(
                f"Turn '{intent}' failed for user {ctx.author.id} in scene {session.scene}: {e}\n"
                f"{traceback.format_exc()}", "CRITICAL")
            await ctx.send(embed=discord.Embed(
                description=self.data_loader.catalog.gnome_text(
                    "default_response", "Hmm, the gnome got distracted. Could you try that again?"),
                color=discord.Color.red()))
            return

        self.garden_helper.save_user_profile(profile)
        await self.game_state_helper.commit_to_disk()

        if session.ended:
            self.session_helper.end_session(ctx.author.id)

        await self._send_turn(ctx, renders, profile, session)

    @commands.group(name="garden", invoke_without_command=True)
    @is_cog_ready()
    async def garden_command(self, ctx: commands.Context, *, utterance: str = ""):
        """Talk to the gnome. Anything said outside a known command is treated as an answer."""

        session = self.session_helper.get_session(ctx.author.id)
        if session is None:
            await ctx.send_help(ctx.command)
            return

        if session.scene == Scene.GAME and utterance:
            await self._run_turn(ctx, "answer", utterance)
        else:
            await self._run_turn(ctx, "no_match" if utterance else "play")

    @garden_command.command(name="start")
    async def garden_start_command(self, ctx: commands.Context):
        """Open the garden gate and start a session with the gnome."""

        capable = self._can_render(ctx)
        now = TimeHelper.get_current_timestamp_ms()
        session = self.session_helper.start_session(ctx.author.id, now)
        profile = self.garden_helper.get_user_profile(ctx.author.id)

        try:
            renders = self.conversation_helper.start(profile, session, now, capable)
        except Exception as e:
            self.session_helper.end_session(ctx.author.id)
            await self.logger.log_to_discord(
                f"Session start failed for user {ctx.author.id}: {e}\n{traceback.format_exc()}", "CRITICAL")
            await ctx.send("The garden gate is stuck. Please try again later.")
            return

        if not capable:
            self.session_helper.end_session(ctx.author.id)
            await ctx.send(self.render_helper.strip_markup(renders[-1].speech))
            return

        self.garden_helper.save_user_profile(profile)
        await self.game_state_helper.commit_to_disk()
        await self.logger.log_to_discord(
            f"Session opened for user {ctx.author.id} on template #{profile.template_index}.", "DEBUG")
        await self._send_turn(ctx, renders, profile, session)

    @garden_command.command(name="story")
    @has_active_session()
    async def garden_story_command(self, ctx: commands.Context):
        """Hear how the gnome came to the garden."""
        await self._run_turn(ctx, "story")

    @garden_command.command(name="play")
    @has_active_session()
    async def garden_play_command(self, ctx: commands.Context):
        """Carry on gardening."""
        await self._run_turn(ctx, "play")

    @garden_command.command(name="answer", aliases=["say"])
    @has_active_session()
    async def garden_answer_command(self, ctx: commands.Context, *, answer: str):
        """Answer the gnome's question."""
        await self._run_turn(ctx, "answer", answer)

    @garden_command.command(name="both")
    @has_active_session()
    async def garden_both_command(self, ctx: commands.Context):
        await self._run_turn(ctx, "both")

    @garden_command.command(name="repeat")
    @has_active_session()
    async def garden_repeat_command(self, ctx: commands.Context):
        await self._run_turn(ctx, "repeat")

    @garden_command.command(name="skip")
    @has_active_session()
    async def garden_skip_command(self, ctx: commands.Context):
        """Skip the current question without planting anything."""
        await self._run_turn(ctx, "skip")

    @garden_command.command(name="weed")
    @has_active_session()
    async def garden_weed_command(self, ctx: commands.Context):
        """Pull the weeds from overgrown flowers."""
        await self._run_turn(ctx, "weed")

    @garden_command.command(name="skipweed")
    @has_active_session()
    async def garden_skipweed_command(self, ctx: commands.Context):
        await self._run_turn(ctx, "skip_weeding")

    @garden_command.command(name="remove")
    @has_active_session()
    async def garden_remove_command(self, ctx: commands.Context, *flower_ids: str):
        """Show removal numbers, or remove the flowers with the given numbers."""

        session = self.session_helper.get_session(ctx.author.id)
        if flower_ids and session.scene == Scene.REMOVE:
            await self._run_turn(ctx, "remove_by_ids", list(flower_ids))
        else:
            await self._run_turn(ctx, "open_remove")

    @garden_command.command(name="settings")
    @has_active_session()
    async def garden_settings_command(self, ctx: commands.Context):
        await self._run_turn(ctx, "open_settings")

    @garden_command.command(name="sound")
    @has_active_session()
    async def garden_sound_command(self, ctx: commands.Context, state: str = ""):
        """Turn the gnome's sound effects on or off."""
        await self._run_turn(ctx, "set_sound", state)

    @garden_command.command(name="instructions", aliases=["howto"])
    @has_active_session()
    async def garden_instructions_command(self, ctx: commands.Context):
        await self._run_turn(ctx, "open_instructions")

    @garden_command.command(name="newgarden")
    @has_active_session()
    async def garden_newgarden_command(self, ctx: commands.Context):
        """Ask the gnome to start over on a brand new garden."""
        await self._run_turn(ctx, "confirm_new_garden")

    @garden_command.command(name="reset")
    @has_active_session()
    async def garden_reset_command(self, ctx: commands.Context):
        """Confirm starting over. Your question progress is kept."""
        await self._run_turn(ctx, "reset_game")

    @garden_command.command(name="keep")
    @has_active_session()
    async def garden_keep_command(self, ctx: commands.Context):
        await self._run_turn(ctx, "keep_garden")

    @garden_command.command(name="quit", aliases=["bye"])
    @has_active_session()
    async def garden_quit_command(self, ctx: commands.Context):
        """Say goodbye to the gnome."""
        await self._run_turn(ctx, "close")

    @garden_command.command(name="view")
    async def garden_view_command(self, ctx: commands.Context, user: Optional[discord.Member] = None):
        """View your garden or another user's."""

        target_user = user or ctx.author
        if not self.garden_helper.has_record(target_user.id):
            await ctx.send(embed=discord.Embed(
                description=f"{target_user.mention} has not planted a garden yet.",
                color=discord.Color.orange()))
            return

        profile = self.garden_helper.get_user_profile(target_user.id)
        session = self.session_helper.get_session(target_user.id) or SessionState(user_id=target_user.id)
        now = TimeHelper.get_current_timestamp_ms()

        snapshot = self.conversation_helper.build_snapshot(profile, session, now)
        render = RenderCommand(state=CanvasState.DEFAULT, progress_snapshot=profile.progress.as_dict(),
                               garden_snapshot=snapshot, template_index=profile.template_index)

        embed = self.render_helper.build_progress_embed(render, target_user.display_name)
        garden_image_file = await self.image_helper.generate_garden_image(
            snapshot, self._gnome_position(profile, session))
        if garden_image_file:
            embed.set_image(url=f"attachment://{garden_image_file.filename}")
        await ctx.send(embed=embed, file=garden_image_file)

    @commands.group(name="gardenadmin")
    @is_cog_ready()
    @commands.is_owner()
    async def cmd_admin_group(self, ctx: commands.Context):
        """Base command for owner-only Gnome Garden utilities."""
        pass

    @cmd_admin_group.command(name="settings")
    async def admin_settings_command(self, ctx: commands.Context, key: Optional[str] = None,
                                     value: Optional[int] = None):
        """Shows the life-cycle settings, or sets one of them."""

        if key is None:
            embed = discord.Embed(title="⚙️ Admin: Life-Cycle Settings", color=discord.Color.blue())
            for setting in GameStateHelper.GLOBAL_DEFAULTS:
                embed.add_field(name=setting, value=str(self.game_state_helper.get_global_state(setting)))
            embed.set_footer(text=f"Active sessions: {self.session_helper.active_count()}")
            await ctx.send(embed=embed)
            return

        if key not in GameStateHelper.GLOBAL_DEFAULTS or value is None or value <= 0:
            await ctx.send(embed=discord.Embed(
                title="❌ Invalid Input",
                description=f"Use one of {', '.join(f'`{k}`' for k in GameStateHelper.GLOBAL_DEFAULTS)} "
                            f"with a positive integer.",
                color=discord.Color.red()))
            return

        previous = self.game_state_helper.get_global_state(key)
        self.game_state_helper.set_global_state(key, value)
        self.lifecycle_helper.settings = self.game_state_helper.get_life_cycle_settings()
        await self.game_state_helper.commit_to_disk()

        await self.logger.log_to_discord(f"Admin {ctx.author.id} changed {key}: {previous} -> {value}.", "INFO")
        await ctx.send(embed=discord.Embed(
            title="✅ Admin: Setting Updated",
            description=f"`{key}` changed from {previous} to **{value}**.",
            color=discord.Color.green()))

    @cmd_admin_group.command(name="logchannel")
    async def admin_logchannel_command(self, ctx: commands.Context, channel: Optional[discord.TextChannel] = None):
        """Sets the log channel. Without a channel, logs go to the console."""

        channel_id = channel.id if channel else None
        await self.config.log_channel_id.set(channel_id)
        self.logger.set_log_channel(channel_id)
        await ctx.send(embed=discord.Embed(
            description=f"Garden logs now go to {channel.mention}." if channel else "Garden logs now go to the console.",
            color=discord.Color.green()))

    @cmd_admin_group.command(name="dump")
    async def admin_dump_command(self, ctx: commands.Context, user: Optional[discord.User] = None):
        """Dumps the game state, or one user's garden, into a JSON file."""

        try:
            data = self.game_state_helper.get_user_data(user.id) if user else self.game_state_helper.game_state
            buffer = io.BytesIO(json.dumps(data, indent=4).encode('utf-8'))
            now = TimeHelper.get_current_timestamp_ms()
            suffix = f"_{user.id}" if user else ""
            file = discord.File(buffer, filename=f"gnome_garden{suffix}_{now // 1000}.json")
            await ctx.send(embed=discord.Embed(title="⚙️ Admin: Game State Dump",
                                               description=f"Taken at {TimeHelper.format_timestamp_ms(now)}.",
                                               color=discord.Color.green()),
                           file=file)
        except (TypeError, ValueError) as e:
            await ctx.send(embed=discord.Embed(
                title="❌ Error During Data Dump",
                description=f"The game state could not be serialized:\n`{e}`",
                color=discord.Color.red()))

    @cmd_admin_group.command(name="resetuser")
    async def admin_resetuser_command(self, ctx: commands.Context, user: discord.User):
        """Erases a user's garden and progress."""

        self.session_helper.end_session(user.id)
        existed = self.garden_helper.forget_user(user.id)
        await self.game_state_helper.commit_to_disk()

        await self.logger.log_to_discord(f"Admin {ctx.author.id} reset the garden of user {user.id}.", "WARNING")
        await ctx.send(embed=discord.Embed(
            description=f"The garden of {user.mention} was reset." if existed
            else f"{user.mention} had no garden to reset.",
            color=discord.Color.green() if existed else discord.Color.orange()))

