"""
discord_utils.py
================

Low-level Discord utility functions for Houston.

Stateless helpers for member resolution, best-effort DMs, text truncation and
the moderation log embed. Higher-level components (action executor, admin
actions, cogs) build on these and keep their own state.
"""

import datetime
from typing import Union

import discord

from houston.util.logger import get_logger

logger = get_logger("discord_utils")

# Discord embed limits
EMBED_FIELD_LIMIT = 1024
EMBED_TITLE_LIMIT = 256


def resolve_member(message: discord.Message) -> discord.Member | None:
    """
    Return the guild member behind a message, or None outside a guild context.

    Args:
        message (discord.Message): The message whose author is inspected.

    Returns:
        discord.Member | None: The member when the author is one, None for DMs and uncached users.
    """
    author = message.author
    return author if isinstance(author, discord.Member) else None


def is_ignored_author(message: discord.Message) -> bool:
    """
    Check if a message should never reach the rule engine (bots and webhooks).

    Args:
        message (discord.Message): The message to check.

    Returns:
        bool: True if the author is a bot or the message came from a webhook.
    """
    return bool(message.author.bot or getattr(message, "webhook_id", None))


def format_user_tag(user: Union[discord.User, discord.Member]) -> str:
    """Return ``name#discriminator`` for legacy accounts and the plain username otherwise."""
    discriminator = getattr(user, "discriminator", "0")
    if discriminator and discriminator != "0":
        return f"{user.name}#{discriminator}"
    return str(user.name)


def truncate_text(text: str, limit: int = EMBED_FIELD_LIMIT, suffix: str = "...") -> str:
    """
    Shorten ``text`` to at most ``limit`` characters, appending ``suffix`` when cut.

    Args:
        text (str): Text to shorten.
        limit (int): Maximum length of the result.
        suffix (str): Marker appended to truncated text.

    Returns:
        str: The original text or its truncated form.
    """
    if len(text) <= limit:
        return text
    if limit <= len(suffix):
        return text[:limit]
    return text[: limit - len(suffix)] + suffix


async def send_dm_to_user(target_user: Union[discord.User, discord.Member], message_content: str) -> bool:
    """
    Attempt to send a direct message to a user, suppressing every failure.

    Args:
        target_user (discord.User | discord.Member): The user to DM.
        message_content (str): The message content.

    Returns:
        bool: True if DM sent successfully, False otherwise.
    """
    try:
        await target_user.send(message_content)
        return True
    except discord.Forbidden:
        logger.warning("Could not DM %s: they may have DMs disabled.", target_user.id)
    except Exception as exc:
        logger.warning("Failed to send DM to %s: %s", target_user.id, exc)
    return False


def build_rule_log_embed(message: discord.Message, rule_name: str) -> discord.Embed:
    """
    Build the notice posted to a moderation log channel when a rule fires.

    The embed identifies the author and origin channel, records the time,
    quotes the message content (truncated to the field limit) and lists
    attachment links.

    Args:
        message (discord.Message): The message that triggered the rule.
        rule_name (str): Name of the triggered rule.

    Returns:
        discord.Embed: The constructed embed object.
    """
    author = message.author
    embed = discord.Embed(
        title=truncate_text(f"🛡️ Auto-moderation: {rule_name}", EMBED_TITLE_LIMIT),
        color=discord.Color.orange(),
        timestamp=datetime.datetime.now(datetime.timezone.utc),
    )
    embed.add_field(name="User", value=f"{author.mention} (`{author.id}`)\n{format_user_tag(author)}", inline=True)
    embed.add_field(name="Channel", value=f"<#{message.channel.id}>", inline=True)

    created_at = getattr(message, "created_at", None)
    if created_at is not None:
        embed.add_field(name="Sent", value=f"<t:{int(created_at.timestamp())}:F>", inline=True)

    content = message.content or "*[no text content]*"
    embed.add_field(name="Content", value=truncate_text(content), inline=False)

    if message.attachments:
        links = "\n".join(attachment.url for attachment in message.attachments)
        embed.add_field(name="Attachments", value=truncate_text(links), inline=False)

    embed.set_footer(text=f"Message ID: {message.id}")
    return embed
