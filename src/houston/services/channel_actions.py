"""
Channel-level actions requested through the REST control plane.

The backend uses these to post announcements, create webhooks for its users,
list the guilds and text channels it can target, and open or close forum
threads for job postings. Like :mod:`houston.services.admin_actions`, every
failure is raised as :class:`AdminActionError` with the HTTP status to answer.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, List

import aiohttp
import discord

from houston.datatypes.discord_datatypes import ChannelID, UserID
from houston.services.admin_actions import AdminActionError, ensure_bot_ready
from houston.util.logger import get_logger

logger = get_logger("channel_actions")

WEBHOOK_REASON = "Webhook created via API for the Houston platform"

AVATAR_MAX_BYTES = 8 * 1024 * 1024
AVATAR_TIMEOUT_SECONDS = 10.0

AvatarFetcher = Callable[[str], Awaitable[bytes]]


def _parse_channel_id(channel_id: str) -> ChannelID:
    try:
        return ChannelID(channel_id)
    except ValueError as exc:
        raise AdminActionError(str(exc), 400) from None


async def _resolve_channel(bot: discord.Bot, channel_id: ChannelID):
    """Return the channel from the cache, fetching it when it is not cached.

    Raises:
        AdminActionError: Unknown channel (404) or no access to it (403).
    """
    channel = bot.get_channel(channel_id.to_int())
    if channel is not None:
        return channel
    try:
        return await bot.fetch_channel(channel_id.to_int())
    except discord.NotFound:
        raise AdminActionError(f"Channel {channel_id} not found", 404) from None
    except discord.Forbidden:
        raise AdminActionError(f"Missing access to channel {channel_id}", 403) from None


def message_url(guild_id: int | str, channel_id: int | str, message_id: int | str) -> str:
    return f"https://discord.com/channels/{guild_id}/{channel_id}/{message_id}"


# ==========================================
# Messages
# ==========================================

async def send_channel_message(bot: discord.Bot | None, channel_id: str, content: str) -> Dict[str, Any]:
    """
    Post ``content`` to a text channel right away.

    Args:
        bot (discord.Bot | None): Connected bot instance.
        channel_id (str): Target channel snowflake.
        content (str): Message body.

    Returns:
        Dict[str, Any]: ``success``, ``message``, ``channelId`` and ``messageId``.

    Raises:
        AdminActionError: Bot not ready (503), invalid id (400), unknown or
            non-text channel (404), missing permissions (403).
    """
    bot = ensure_bot_ready(bot)
    channel_snowflake = _parse_channel_id(channel_id)
    channel = await _resolve_channel(bot, channel_snowflake)
    if not isinstance(channel, discord.TextChannel):
        raise AdminActionError("Channel not found or is not a text channel", 404)

    try:
        sent = await channel.send(content)
    except discord.Forbidden:
        raise AdminActionError(f"Missing permissions to send messages in {channel_snowflake}", 403) from None

    logger.info("[CHANNELS] Sent message %s to channel %s", sent.id, channel_snowflake)
    return {
        "success": True,
        "message": "Message sent",
        "channelId": str(channel_snowflake),
        "messageId": str(sent.id),
    }


# ==========================================
# Webhooks
# ==========================================

async def download_avatar(url: str, *, timeout_seconds: float = AVATAR_TIMEOUT_SECONDS) -> bytes:
    """
    Download a webhook avatar image.

    Raises:
        AdminActionError: The image could not be downloaded or is too large (400).
    """
    timeout = aiohttp.ClientTimeout(total=timeout_seconds)
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                if response.status >= 400:
                    raise AdminActionError(f"Avatar download failed with HTTP {response.status}", 400)
                data = bytearray()
                async for chunk in response.content.iter_chunked(64 * 1024):
                    data.extend(chunk)
                    if len(data) > AVATAR_MAX_BYTES:
                        raise AdminActionError("Avatar image is too large", 400)
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
        logger.warning("[CHANNELS] Could not download avatar %s: %s", url, exc)
        raise AdminActionError("Could not download avatar", 400) from None

    return bytes(data)


async def create_webhook(
    bot: discord.Bot | None,
    channel_id: str,
    name: str,
    avatar_url: str,
    *,
    fetch_avatar: AvatarFetcher = download_avatar,
) -> Dict[str, Any]:
    """
    Create a webhook in a text channel, using ``avatar_url`` as its default avatar.

    Returns:
        Dict[str, Any]: ``webhookUrl`` of the new webhook.

    Raises:
        AdminActionError: Bot not ready (503), invalid id, non-text channel or
            unusable avatar (400), unknown channel (404), missing Manage
            Webhooks permission (403).
    """
    bot = ensure_bot_ready(bot)
    channel_snowflake = _parse_channel_id(channel_id)
    channel = await _resolve_channel(bot, channel_snowflake)
    if not isinstance(channel, discord.TextChannel):
        raise AdminActionError("The id does not belong to a text channel", 400)

    avatar = await fetch_avatar(avatar_url)
    try:
        webhook = await channel.create_webhook(name=name, avatar=avatar, reason=WEBHOOK_REASON)
    except discord.InvalidArgument:
        raise AdminActionError("Avatar must be a PNG, JPEG, GIF or WEBP image", 400) from None
    except discord.Forbidden:
        raise AdminActionError("Missing permissions to manage webhooks", 403) from None

    logger.info("[CHANNELS] Created webhook %r in channel %s", name, channel_snowflake)
    return {"webhookUrl": webhook.url}


# ==========================================
# Guild listing
# ==========================================

def list_guilds(bot: discord.Bot | None) -> List[Dict[str, Any]]:
    """
    List the guilds the bot is in with their text and announcement channels.

    Channels are in the guild's UI order.

    Raises:
        AdminActionError: Bot not ready (503).
    """
    bot = ensure_bot_ready(bot)
    guilds = []
    for guild in bot.guilds:
        guilds.append(
            {
                "id": str(guild.id),
                "name": guild.name,
                "iconURL": guild.icon.url if guild.icon else None,
                "channels": [{"id": str(channel.id), "name": channel.name} for channel in guild.text_channels],
            }
        )
    return guilds


# ==========================================
# Forum threads
# ==========================================

async def create_forum_thread(
    bot: discord.Bot | None,
    channel_id: str,
    thread_name: str,
    content: str,
    mention_user_id: str | None = None,
) -> Dict[str, Any]:
    """
    Open a thread in a forum channel, optionally pinging a user in the first post.

    Returns:
        Dict[str, Any]: ``threadId``, ``messageId`` and ``messageUrl`` of the starter post.

    Raises:
        AdminActionError: Bot not ready (503), invalid ids or not a forum
            channel (400), unknown channel (404), missing permissions (403).
    """
    bot = ensure_bot_ready(bot)
    channel_snowflake = _parse_channel_id(channel_id)
    if mention_user_id:
        try:
            content = f"<@{UserID(mention_user_id)}>\n\n{content}"
        except ValueError as exc:
            raise AdminActionError(str(exc), 400) from None

    channel = await _resolve_channel(bot, channel_snowflake)
    if not isinstance(channel, discord.ForumChannel):
        raise AdminActionError("The channel is not a forum channel", 400)

    try:
        thread = await channel.create_thread(name=thread_name, content=content)
    except discord.Forbidden:
        raise AdminActionError("Missing permissions to create threads", 403) from None

    # The starter post of a forum thread shares the thread's id
    logger.info("[CHANNELS] Created forum thread %s in channel %s", thread.id, channel_snowflake)
    return {
        "threadId": str(thread.id),
        "messageId": str(thread.id),
        "messageUrl": message_url(channel.guild.id, thread.id, thread.id),
    }


async def close_forum_thread(bot: discord.Bot | None, thread_id: str, closing_message: str | None = None) -> Dict[str, Any]:
    """
    Post an optional closing message, then archive and lock a thread.

    Raises:
        AdminActionError: Bot not ready (503), invalid id or not a thread (400),
            unknown thread (404), missing permissions (403).
    """
    bot = ensure_bot_ready(bot)
    thread_snowflake = _parse_channel_id(thread_id)
    thread = await _resolve_channel(bot, thread_snowflake)
    if not isinstance(thread, discord.Thread):
        raise AdminActionError("The channel is not a thread", 400)

    try:
        if closing_message:
            await thread.send(closing_message)
        await thread.edit(archived=True, locked=True)
    except discord.Forbidden:
        raise AdminActionError("Missing permissions to close the thread", 403) from None

    logger.info("[CHANNELS] Closed thread %s", thread_snowflake)
    return {"success": True, "threadId": str(thread_snowflake), "message": "Thread closed"}
