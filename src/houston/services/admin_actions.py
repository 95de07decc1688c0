"""
Administrative actions requested through the REST control plane.

These bypass the rule engine entirely: the backend asks the bot to lift a
timeout, lift a ban or deliver a direct message, and gets a structured
answer back. Failures are raised as :class:`AdminActionError` carrying the
HTTP status the API should respond with.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import discord

from houston.datatypes.discord_datatypes import GuildID, UserID
from houston.util.logger import get_logger

logger = get_logger("admin_actions")

DEFAULT_REVOKE_REASON = "Revoked via Houston dashboard"


class AdminActionError(Exception):
    """An administrative action could not be carried out.

    Attributes:
        status_code (int): HTTP status describing the failure.
    """

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class AdminActionResult:
    guild_id: str | None
    user_id: str
    message: str
    delivered: bool = True

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": True,
            "userId": self.user_id,
            "message": self.message,
            "delivered": self.delivered,
        }
        if self.guild_id is not None:
            payload["guildId"] = self.guild_id
        return payload


def ensure_bot_ready(bot: discord.Bot | None) -> discord.Bot:
    """Return ``bot`` if it is connected, otherwise raise a 503 :class:`AdminActionError`."""
    if bot is None or not bot.is_ready():
        raise AdminActionError("Discord client is not ready", 503)
    return bot


def _parse_ids(guild_id: str, user_id: str) -> tuple[GuildID, UserID]:
    try:
        return GuildID(guild_id), UserID(user_id)
    except ValueError as exc:
        raise AdminActionError(str(exc), 400) from None


def _get_guild(bot: discord.Bot, guild_id: GuildID) -> discord.Guild:
    guild = bot.get_guild(guild_id.to_int())
    if guild is None:
        raise AdminActionError(f"Guild {guild_id} not found", 404)
    return guild


async def _get_member(guild: discord.Guild, user_id: UserID) -> discord.Member:
    member = guild.get_member(user_id.to_int())
    if member is not None:
        return member
    try:
        return await guild.fetch_member(user_id.to_int())
    except discord.NotFound:
        raise AdminActionError(f"Member {user_id} not found in guild {guild.id}", 404) from None


async def revoke_timeout(bot: discord.Bot | None, guild_id: str, user_id: str, reason: str | None = None) -> AdminActionResult:
    """
    Remove an active timeout from a guild member.

    Args:
        bot (discord.Bot | None): Connected bot instance.
        guild_id (str): Guild snowflake.
        user_id (str): User snowflake.
        reason (str | None): Audit log reason.

    Returns:
        AdminActionResult: Outcome description.

    Raises:
        AdminActionError: Bot not ready (503), invalid ids (400), unknown guild
            or member (404), missing permissions (403).
    """
    bot = ensure_bot_ready(bot)
    guild_snowflake, user_snowflake = _parse_ids(guild_id, user_id)
    guild = _get_guild(bot, guild_snowflake)
    member = await _get_member(guild, user_snowflake)

    if member.communication_disabled_until is None or member.communication_disabled_until <= discord.utils.utcnow():
        logger.info("[ADMIN] Member %s in guild %s has no active timeout", user_snowflake, guild_snowflake)
        return AdminActionResult(str(guild_snowflake), str(user_snowflake), "Member has no active timeout")

    try:
        await member.remove_timeout(reason=reason or DEFAULT_REVOKE_REASON)
    except discord.Forbidden:
        raise AdminActionError("Missing permissions to remove timeout", 403) from None

    logger.info("[ADMIN] Removed timeout for %s in guild %s", user_snowflake, guild_snowflake)
    return AdminActionResult(str(guild_snowflake), str(user_snowflake), "Timeout removed")


async def revoke_ban(bot: discord.Bot | None, guild_id: str, user_id: str, reason: str | None = None) -> AdminActionResult:
    """
    Lift a ban in a guild.

    Raises:
        AdminActionError: Bot not ready (503), invalid ids (400), unknown guild
            or user not banned (404), missing permissions (403).
    """
    bot = ensure_bot_ready(bot)
    guild_snowflake, user_snowflake = _parse_ids(guild_id, user_id)
    guild = _get_guild(bot, guild_snowflake)

    try:
        await guild.unban(discord.Object(id=user_snowflake.to_int()), reason=reason or DEFAULT_REVOKE_REASON)
    except discord.NotFound:
        raise AdminActionError(f"User {user_snowflake} is not banned in guild {guild_snowflake}", 404) from None
    except discord.Forbidden:
        raise AdminActionError("Missing permissions to unban", 403) from None

    logger.info("[ADMIN] Unbanned %s in guild %s", user_snowflake, guild_snowflake)
    return AdminActionResult(str(guild_snowflake), str(user_snowflake), "Ban removed")


async def send_direct_message(bot: discord.Bot | None, user_id: str, content: str) -> AdminActionResult:
    """
    Deliver ``content`` to a user by DM.

    A user with DMs closed is not an error: the result is returned with
    ``delivered=False`` and a warning is logged.

    Raises:
        AdminActionError: Bot not ready (503), invalid id (400), unknown user (404).
    """
    bot = ensure_bot_ready(bot)
    try:
        user_snowflake = UserID(user_id)
    except ValueError as exc:
        raise AdminActionError(str(exc), 400) from None

    try:
        user = bot.get_user(user_snowflake.to_int()) or await bot.fetch_user(user_snowflake.to_int())
    except discord.NotFound:
        raise AdminActionError(f"User {user_snowflake} not found", 404) from None

    try:
        await user.send(content)
    except discord.HTTPException as exc:
        logger.warning("[ADMIN] Could not send DM to %s: %s", user_snowflake, exc)
        return AdminActionResult(None, str(user_snowflake), "DM could not be delivered", delivered=False)

    logger.info("[ADMIN] Sent DM to %s", user_snowflake)
    return AdminActionResult(None, str(user_snowflake), "DM sent")
