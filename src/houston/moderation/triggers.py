"""
Trigger predicates for moderation rules.

Each trigger kind is a pure function of the message and its typed config.
The spam trigger is the only stateful one and consults the
:class:`SpamWindowTracker` owned by the :class:`TriggerEvaluator`.
"""

from __future__ import annotations

import re

import discord

from houston.datatypes.rule_datatypes import (
    AttachmentCountTrigger,
    CapsTrigger,
    EmojiTrigger,
    KeywordTrigger,
    LinksTrigger,
    MentionCountTrigger,
    ModerationRule,
    SpamTrigger,
    UnknownTrigger,
)
from houston.moderation.spam_tracker import SpamWindowTracker
from houston.util.discord_utils import resolve_member
from houston.util.logger import get_logger

logger = get_logger("triggers")

# Messages shorter than this never fire the caps trigger
CAPS_MIN_LENGTH = 10

LINK_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)

EMOJI_PATTERN = re.compile(
    r"<a?:\w+:\d+>"
    "|["
    "©®‼⁉™ℹ↔-↙↩↪"
    "⌚⌛⌨⏏⏩-⏳⏸-⏺Ⓜ"
    "▪▫▶◀◻-◾"
    "☀-➿"
    "⤴⤵⬅-⬇⬛⬜⭐⭕"
    "〰〽㊗㊙"
    "\U0001f000-\U0001f0ff"
    "\U0001f10d-\U0001f10f\U0001f12f\U0001f16c-\U0001f171\U0001f17e\U0001f17f\U0001f18e\U0001f191-\U0001f19a"
    "\U0001f1e6-\U0001f1ff"
    "\U0001f201\U0001f202\U0001f21a\U0001f22f\U0001f232-\U0001f23a\U0001f250\U0001f251"
    "\U0001f300-\U0001f64f"
    "\U0001f680-\U0001f6ff"
    "\U0001f774-\U0001f77f\U0001f7d5-\U0001f7ff"
    "\U0001f80c-\U0001f80f\U0001f848-\U0001f84f\U0001f85a-\U0001f85f\U0001f888-\U0001f88f\U0001f8ae-\U0001f8ff"
    "\U0001f90c-\U0001f93a\U0001f93c-\U0001f945\U0001f947-\U0001faff"
    "\U0001fc00-\U0001fffd"
    "]"
)
"""Custom Discord emoji tokens or single emoji code points (pictographic ranges)."""


# ==========================================
# Measurements
# ==========================================

def count_links(content: str) -> int:
    return len(LINK_PATTERN.findall(content))


def count_emojis(content: str) -> int:
    return len(EMOJI_PATTERN.findall(content))


def uppercase_percentage(content: str) -> float:
    """Return the share of uppercase letters among cased letters, in percent (0 when there are none)."""
    cased = [char for char in content if char.isupper() or char.islower()]
    if not cased:
        return 0.0
    upper = sum(1 for char in cased if char.isupper())
    return upper / len(cased) * 100


# ==========================================
# Predicates
# ==========================================

def attachments_exceeded(message: discord.Message, config: AttachmentCountTrigger) -> bool:
    return len(message.attachments) > config.max_attachments


def mentions_exceeded(message: discord.Message, config: MentionCountTrigger) -> bool:
    distinct_users = {user.id for user in message.mentions}
    return len(distinct_users) > config.max_mentions


def caps_excessive(message: discord.Message, config: CapsTrigger) -> bool:
    content = message.content or ""
    if len(content) < CAPS_MIN_LENGTH:
        return False
    if not any(char.isupper() or char.islower() for char in content):
        return False
    return uppercase_percentage(content) >= config.max_percentage


def links_exceeded(message: discord.Message, config: LinksTrigger) -> bool:
    return count_links(message.content or "") > config.max_links


def emojis_exceeded(message: discord.Message, config: EmojiTrigger) -> bool:
    return count_emojis(message.content or "") > config.max_emojis


def keyword_matched(message: discord.Message, config: KeywordTrigger) -> bool:
    content = message.content or ""
    if config.case_sensitive:
        return any(keyword in content for keyword in config.keywords)
    folded = content.casefold()
    return any(keyword.casefold() in folded for keyword in config.keywords)


def is_exempt(message: discord.Message, rule: ModerationRule) -> bool:
    """
    Return True if ``rule`` must be skipped for ``message``.

    A message is exempt when it was posted in one of the rule's exempt
    channels, or when its author is a member holding one of the exempt roles.
    Without a member context (DMs, uncached users) role exemptions never match.
    """
    if str(message.channel.id) in rule.exempt_channel_ids:
        return True

    if not rule.exempt_role_ids:
        return False
    member = resolve_member(message)
    if member is None:
        return False
    return any(str(role.id) in rule.exempt_role_ids for role in member.roles)


class TriggerEvaluator:
    """
    Dispatch a rule's trigger to the matching predicate.

    Unknown trigger types log a warning and evaluate to "not triggered".

    Args:
        spam_tracker (SpamWindowTracker): Shared per-user message window.
    """

    def __init__(self, spam_tracker: SpamWindowTracker) -> None:
        self.spam_tracker = spam_tracker

    def spam_detected(self, message: discord.Message, config: SpamTrigger) -> bool:
        return self.spam_tracker.exceeds_threshold(
            user_id=str(message.author.id),
            message_id=str(message.id),
            content=message.content or "",
            window_seconds=config.time_window_seconds,
            min_messages=config.min_messages,
        )

    def evaluate(self, message: discord.Message, rule: ModerationRule) -> bool:
        """Return True if ``message`` violates ``rule``'s trigger."""
        match rule.trigger:
            case AttachmentCountTrigger() as config:
                return attachments_exceeded(message, config)
            case MentionCountTrigger() as config:
                return mentions_exceeded(message, config)
            case SpamTrigger() as config:
                return self.spam_detected(message, config)
            case CapsTrigger() as config:
                return caps_excessive(message, config)
            case LinksTrigger() as config:
                return links_exceeded(message, config)
            case EmojiTrigger() as config:
                return emojis_exceeded(message, config)
            case KeywordTrigger() as config:
                return keyword_matched(message, config)
            case UnknownTrigger(trigger_type=trigger_type):
                logger.warning("[TRIGGERS] Unknown trigger type %s on rule %s", trigger_type, rule.id)
                return False
        logger.warning("[TRIGGERS] Unsupported trigger config %r on rule %s", rule.trigger, rule.id)
        return False
