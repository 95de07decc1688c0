"""Message listener Cog for Houston.

Every human-authored guild message is handed to the moderation service.
"""

import discord
from discord.ext import commands

from houston.bot.runtime import HoustonRuntime
from houston.util import discord_utils
from houston.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog feeding incoming messages to the rule engine."""

    def __init__(self, discord_bot_instance: discord.Bot, runtime: HoustonRuntime):
        self.bot = discord_bot_instance
        self.runtime = runtime
        logger.info("[MESSAGE LISTENER] Message listener cog loaded")

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        """Run auto-moderation on guild messages from humans; DMs, bots and webhooks are ignored."""
        if message.guild is None or discord_utils.is_ignored_author(message):
            return

        try:
            await self.runtime.moderation.evaluate_message(message)
        except Exception as exc:
            logger.error("[MESSAGE LISTENER] Error moderating message %s: %s", message.id, exc)


def setup(discord_bot_instance: discord.Bot, runtime: HoustonRuntime) -> None:
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, runtime))
