"""Event listener Cog for Houston.

Handles the bot lifecycle (initial rule fetch on ready) and forwards bans and
timeouts applied in Discord to the backend.
"""

import discord
from discord.ext import commands

from houston.bot.runtime import HoustonRuntime
from houston.util.logger import get_logger

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing lifecycle and punishment event handlers."""

    def __init__(self, discord_bot_instance: discord.Bot, runtime: HoustonRuntime):
        self.bot = discord_bot_instance
        self.runtime = runtime
        logger.info("[EVENTS LISTENER] Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self) -> None:
        """
        Log the connection and load the rule set.

        ``on_ready`` fires again after reconnects; the rule fetch only runs on
        the first one, later updates arrive through the sync endpoint.
        """
        if self.bot.user:
            logger.info("Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")

        if await self.runtime.initial_rule_fetch():
            logger.info("[EVENTS LISTENER] Auto-moderation active with %d rules", self.runtime.rule_cache.size())

    @commands.Cog.listener(name="on_member_ban")
    async def on_member_ban(self, guild: discord.Guild, user: discord.User) -> None:
        await self.runtime.punishments.report_ban(guild, user)

    @commands.Cog.listener(name="on_member_update")
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        await self.runtime.punishments.report_timeout(before, after)


def setup(discord_bot_instance: discord.Bot, runtime: HoustonRuntime) -> None:
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, runtime))
