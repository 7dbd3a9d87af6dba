from datetime import datetime, timezone
from typing import List, Optional, Tuple

import discord
from redbot.core import commands


class LoggingHelper:
    """Handles all logging operations: the garden log channel on Discord plus console output."""

    MAX_MESSAGE_LENGTH = 2000
    CHUNK_LENGTH = 1900

    def __init__(self, bot: commands.Bot, log_channel_id: Optional[int] = None):
        self.bot = bot
        self.log_channel_id = log_channel_id
        self._init_log_queue: List[Tuple[str, str]] = []

    def set_log_channel(self, channel_id: Optional[int]):
        self.log_channel_id = channel_id

    @staticmethod
    def _timestamp() -> str:
        return datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')

    async def log_to_discord(self, message: str, level: str = "INFO", embed: Optional[discord.Embed] = None):
        """Sends a formatted log message to the garden log channel, or the console if none is set."""

        if not self.log_channel_id:
            print(f"[GARDEN|{level.upper()}|{self._timestamp()}] {message}")
            return

        if not self.bot.is_ready():
            self._init_log_queue.append((message, level))
            print(f"[LOG_QUEUE|{level.upper()}] Bot not ready. Queued: {message}")
            return

        log_channel = self.bot.get_channel(self.log_channel_id)

        if not isinstance(log_channel, discord.TextChannel):
            print(
                f"[LOG_ERROR|{level.upper()}] Log channel {self.log_channel_id} not found or not a TextChannel. "
                f"Message: {message}")
            return

        log_prefix = f"`[{self._timestamp()}] [{level.upper()}]` "

        try:
            full_message = log_prefix + message

            if len(full_message) <= self.MAX_MESSAGE_LENGTH:
                await log_channel.send(content=full_message, embed=embed,
                                       allowed_mentions=discord.AllowedMentions.none())
            else:
                await log_channel.send(content=f"{log_prefix}Log message exceeds {self.MAX_MESSAGE_LENGTH} "
                                               f"characters. See chunks below.",
                                       embed=embed, allowed_mentions=discord.AllowedMentions.none())

                for i in range(0, len(message), self.CHUNK_LENGTH):
                    await log_channel.send(
                        f"```{level.upper()} Chunk {i // self.CHUNK_LENGTH + 1}```\n{message[i:i + self.CHUNK_LENGTH]}",
                        allowed_mentions=discord.AllowedMentions.none())
        except discord.Forbidden:
            print(f"[LOG_FORBIDDEN] No permission to send to log channel {self.log_channel_id}.")
        except discord.HTTPException as e:
            print(f"[LOG_HTTP_ERROR] Failed to send to log channel {self.log_channel_id}: {e}")

    def init_log(self, message: str, level: str = "INFO"):
        """
        Synchronous logger for use during cog initialization. Prints to the console immediately
        and queues the message for the log channel until the bot is ready.
        """

        print(f"[INIT_LOG|{level.upper()}|{self._timestamp()}] {message}")
        self._init_log_queue.append((message, level))

    async def flush_init_log_queue(self):
        """Sends any queued logs generated before the bot was ready."""

        if not self._init_log_queue:
            return

        queued = list(self._init_log_queue)
        self._init_log_queue.clear()

        if not self.log_channel_id:
            return

        await self.log_to_discord(f"Flushing {len(queued)} queued startup logs...", "DEBUG")
        for msg, level in queued:
            await self.log_to_discord(msg, level)
