"""
Moderation rule data structures.

Rules are pushed or pulled from the backend as camelCase JSON. This module
turns that payload into immutable snapshots whose trigger and action options
are typed per variant instead of being passed around as loose dictionaries.

Key Features:
- `TriggerType` / `ActionType`: Wire names of the supported trigger and action kinds.
- One frozen config dataclass per trigger kind and per action kind, with the
  documented defaults applied at parse time.
- `ModerationRule` / `ModerationAction`: Validated rule snapshots held in the rule cache.
- `ActionResult` / `ModerationReport`: Outcome of a triggered rule, serialized for the backend.

Unknown trigger or action types are kept as raw strings with their raw option
mapping so the engine can fail open on them later instead of rejecting the
whole rule set.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple, Union

from houston.util.logger import get_logger

logger = get_logger("rule_datatypes")

DEFAULT_REASON = "Moderation rule violation"
DEFAULT_DM_MESSAGE = "You violated a moderation rule."
DEFAULT_WARNING_MESSAGE = "Heads up: your message was removed for breaking the server rules."


class RuleValidationError(ValueError):
    """Raised when a rule or action payload is missing required fields."""


class TriggerType(Enum):
    """Enumeration of supported rule triggers (backend wire names)."""

    ATTACHMENTS_COUNT = "MESSAGE_ATTACHMENTS_COUNT"
    MENTIONS_COUNT = "MESSAGE_MENTIONS_COUNT"
    SPAM = "MESSAGE_SPAM"
    CAPS_EXCESSIVE = "MESSAGE_CAPS_EXCESSIVE"
    LINKS_SPAM = "MESSAGE_LINKS_SPAM"
    EMOJI_SPAM = "MESSAGE_EMOJI_SPAM"
    CUSTOM_KEYWORD = "CUSTOM_KEYWORD"

    def __str__(self) -> str:
        return self.value


class ActionType(Enum):
    """Enumeration of supported rule actions (backend wire names)."""

    DELETE_MESSAGE = "DELETE_MESSAGE"
    TIMEOUT = "TIMEOUT"
    BAN = "BAN"
    KICK = "KICK"
    SEND_DM = "SEND_DM"
    SEND_LOG_MESSAGE = "SEND_LOG_MESSAGE"
    SEND_WARNING_MESSAGE = "SEND_WARNING_MESSAGE"
    ADD_ROLE = "ADD_ROLE"
    REMOVE_ROLE = "REMOVE_ROLE"
    LOG_ONLY = "LOG_ONLY"

    def __str__(self) -> str:
        return self.value


def _lookup_enum(enum_cls, value: str):
    try:
        return enum_cls(value)
    except ValueError:
        return None


# ==========================================
# Option coercion
# ==========================================

def _int_option(options: Mapping[str, Any], key: str, default: int) -> int:
    """Read an integer option; missing, ``None`` or zero falls back to ``default``."""
    value = options.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        logger.warning("[RULE DATATYPES] Option %s=%r is not a number; using %s", key, value, default)
        return default
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        logger.warning("[RULE DATATYPES] Option %s=%r is not a number; using %s", key, value, default)
        return default
    return number or default


def _float_option(options: Mapping[str, Any], key: str, default: float) -> float:
    value = options.get(key)
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("[RULE DATATYPES] Option %s=%r is not a number; using %s", key, value, default)
        return default
    if math.isnan(number):
        return default
    return number or default


def _bool_option(options: Mapping[str, Any], key: str, default: bool) -> bool:
    value = options.get(key)
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _str_option(options: Mapping[str, Any], key: str, default: str | None) -> str | None:
    value = options.get(key)
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def _str_tuple(value: Any, key: str) -> Tuple[str, ...]:
    """Read a list of ids or words; a lone string or integer counts as a one-item list.

    Raises:
        RuleValidationError: If ``value`` is neither a list nor a single string or integer.
    """
    if value is None:
        return ()
    if isinstance(value, (str, int)) and not isinstance(value, bool):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise RuleValidationError(f"{key} must be an array")
    return tuple(str(item) for item in value if item is not None and str(item) != "")


# ==========================================
# Trigger configurations
# ==========================================

@dataclass(frozen=True, slots=True)
class AttachmentCountTrigger:
    """Fires when a message carries more than ``max_attachments`` attachments."""

    max_attachments: int = 3


@dataclass(frozen=True, slots=True)
class MentionCountTrigger:
    """Fires when a message mentions more than ``max_mentions`` distinct users."""

    max_mentions: int = 5


@dataclass(frozen=True, slots=True)
class SpamTrigger:
    """Fires when a user sends ``min_messages`` or more messages within ``time_window_seconds``."""

    time_window_seconds: float = 5.0
    min_messages: int = 5


@dataclass(frozen=True, slots=True)
class CapsTrigger:
    """Fires when at least ``max_percentage`` percent of the cased letters are uppercase."""

    max_percentage: float = 70.0


@dataclass(frozen=True, slots=True)
class LinksTrigger:
    """Fires when a message contains more than ``max_links`` http(s) links."""

    max_links: int = 3


@dataclass(frozen=True, slots=True)
class EmojiTrigger:
    """Fires when a message contains more than ``max_emojis`` emoji."""

    max_emojis: int = 10


@dataclass(frozen=True, slots=True)
class KeywordTrigger:
    """Fires when a message contains any of ``keywords`` as a substring."""

    keywords: Tuple[str, ...] = ()
    case_sensitive: bool = False


@dataclass(frozen=True, slots=True)
class UnknownTrigger:
    """Placeholder for trigger types this build does not understand."""

    trigger_type: str
    options: Mapping[str, Any] = field(default_factory=dict)


TriggerConfig = Union[
    AttachmentCountTrigger,
    MentionCountTrigger,
    SpamTrigger,
    CapsTrigger,
    LinksTrigger,
    EmojiTrigger,
    KeywordTrigger,
    UnknownTrigger,
]


def parse_trigger_config(trigger_type: str, options: Mapping[str, Any] | None) -> TriggerConfig:
    """Build the typed configuration for ``trigger_type`` from its raw option mapping.

    Args:
        trigger_type (str): Backend wire name of the trigger.
        options (Mapping[str, Any] | None): Raw ``triggerConfig`` mapping.

    Returns:
        TriggerConfig: The typed configuration, or ``UnknownTrigger`` for unsupported types.
    """
    options = dict(options or {})
    match _lookup_enum(TriggerType, trigger_type):
        case TriggerType.ATTACHMENTS_COUNT:
            return AttachmentCountTrigger(max_attachments=_int_option(options, "maxAttachments", 3))
        case TriggerType.MENTIONS_COUNT:
            return MentionCountTrigger(max_mentions=_int_option(options, "maxMentions", 5))
        case TriggerType.SPAM:
            return SpamTrigger(
                time_window_seconds=_float_option(options, "timeWindow", 5.0),
                min_messages=_int_option(options, "minMessages", 5),
            )
        case TriggerType.CAPS_EXCESSIVE:
            return CapsTrigger(max_percentage=_float_option(options, "maxPercentage", 70.0))
        case TriggerType.LINKS_SPAM:
            return LinksTrigger(max_links=_int_option(options, "maxLinks", 3))
        case TriggerType.EMOJI_SPAM:
            return EmojiTrigger(max_emojis=_int_option(options, "maxEmojis", 10))
        case TriggerType.CUSTOM_KEYWORD:
            return KeywordTrigger(
                keywords=_str_tuple(options.get("keywords"), "keywords"),
                case_sensitive=_bool_option(options, "caseSensitive", False),
            )
        case _:
            return UnknownTrigger(trigger_type=trigger_type, options=options)


# ==========================================
# Action configurations
# ==========================================

@dataclass(frozen=True, slots=True)
class DeleteMessageConfig:
    pass


@dataclass(frozen=True, slots=True)
class TimeoutConfig:
    """Timeout options. ``dm_message`` is sent best-effort before the timeout."""

    duration_seconds: int = 300
    reason: str = DEFAULT_REASON
    dm_message: str | None = None


@dataclass(frozen=True, slots=True)
class BanConfig:
    """Ban options. ``dm_message`` is sent best-effort before the ban."""

    reason: str = DEFAULT_REASON
    dm_message: str | None = None


@dataclass(frozen=True, slots=True)
class KickConfig:
    reason: str = DEFAULT_REASON


@dataclass(frozen=True, slots=True)
class SendDMConfig:
    message: str = DEFAULT_DM_MESSAGE


@dataclass(frozen=True, slots=True)
class SendLogMessageConfig:
    channel_id: str | None = None


@dataclass(frozen=True, slots=True)
class SendWarningConfig:
    message: str = DEFAULT_WARNING_MESSAGE


@dataclass(frozen=True, slots=True)
class RoleChangeConfig:
    role_id: str | None = None


@dataclass(frozen=True, slots=True)
class LogOnlyConfig:
    pass


@dataclass(frozen=True, slots=True)
class UnknownActionConfig:
    action_type: str
    options: Mapping[str, Any] = field(default_factory=dict)


ActionConfig = Union[
    DeleteMessageConfig,
    TimeoutConfig,
    BanConfig,
    KickConfig,
    SendDMConfig,
    SendLogMessageConfig,
    SendWarningConfig,
    RoleChangeConfig,
    LogOnlyConfig,
    UnknownActionConfig,
]


def parse_action_config(action_type: str, options: Mapping[str, Any] | None) -> ActionConfig:
    """Build the typed configuration for ``action_type`` from its raw option mapping."""
    options = dict(options or {})
    match _lookup_enum(ActionType, action_type):
        case ActionType.DELETE_MESSAGE:
            return DeleteMessageConfig()
        case ActionType.TIMEOUT:
            return TimeoutConfig(
                duration_seconds=_int_option(options, "duration", 300),
                reason=_str_option(options, "reason", DEFAULT_REASON),
                dm_message=_str_option(options, "dmMessage", None),
            )
        case ActionType.BAN:
            return BanConfig(
                reason=_str_option(options, "reason", DEFAULT_REASON),
                dm_message=_str_option(options, "dmMessage", None),
            )
        case ActionType.KICK:
            return KickConfig(reason=_str_option(options, "reason", DEFAULT_REASON))
        case ActionType.SEND_DM:
            return SendDMConfig(message=_str_option(options, "message", DEFAULT_DM_MESSAGE))
        case ActionType.SEND_LOG_MESSAGE:
            return SendLogMessageConfig(channel_id=_str_option(options, "channelId", None))
        case ActionType.SEND_WARNING_MESSAGE:
            return SendWarningConfig(message=_str_option(options, "message", DEFAULT_WARNING_MESSAGE))
        case ActionType.ADD_ROLE | ActionType.REMOVE_ROLE:
            return RoleChangeConfig(role_id=_str_option(options, "roleId", None))
        case ActionType.LOG_ONLY:
            return LogOnlyConfig()
        case _:
            return UnknownActionConfig(action_type=action_type, options=options)


# ==========================================
# Rules and actions
# ==========================================

@dataclass(frozen=True, slots=True)
class ModerationAction:
    """One effect applied when a rule matches.

    Attributes:
        id (str): Backend identifier of the action.
        action_type (str): Wire name of the action kind (may be unknown).
        config (ActionConfig): Typed options for this action kind.
        order (int): Author-declared position within the rule.
        raw_config (Mapping[str, Any]): Options as received, echoed back in reports.
    """

    id: str
    action_type: str
    config: ActionConfig
    order: int = 0
    raw_config: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "ModerationAction":
        """Build an action from its backend object.

        A malformed action never rejects its rule. A missing ``actionType``
        becomes an :class:`UnknownActionConfig`, which fails with "Unknown
        action type" when executed, and a non-object ``actionConfig`` is
        read as empty so the action runs with its defaults.
        """
        if not isinstance(payload, Mapping):
            logger.warning("[RULE DATATYPES] Action %r is not an object; treating it as unknown", payload)
            payload = {}
        action_type = payload.get("actionType")
        action_type = action_type if isinstance(action_type, str) else str(action_type or "")
        raw_config = payload.get("actionConfig") or {}
        if not isinstance(raw_config, Mapping):
            logger.warning("[RULE DATATYPES] actionConfig of %s is not an object; using defaults", action_type or "action")
            raw_config = {}
        return cls(
            id=str(payload.get("id") or ""),
            action_type=action_type,
            config=parse_action_config(action_type, raw_config),
            order=_int_option(payload, "order", 0),
            raw_config=dict(raw_config),
        )


@dataclass(frozen=True, slots=True)
class ModerationRule:
    """Immutable snapshot of a moderation rule held in the rule cache.

    Attributes:
        id (str): Unique rule identifier.
        name (str): Display name; breaks priority ties.
        enabled (bool): Only enabled rules are cached.
        priority (int): Higher values are evaluated first.
        trigger_type (str): Wire name of the trigger (may be unknown).
        trigger (TriggerConfig): Typed trigger options.
        exempt_role_ids (frozenset[str]): Roles that bypass this rule.
        exempt_channel_ids (frozenset[str]): Channels where this rule is skipped.
        actions (Tuple[ModerationAction, ...]): Actions in authored order.
    """

    id: str
    name: str
    trigger_type: str
    trigger: TriggerConfig
    enabled: bool = True
    priority: int = 0
    exempt_role_ids: frozenset[str] = frozenset()
    exempt_channel_ids: frozenset[str] = frozenset()
    actions: Tuple[ModerationAction, ...] = ()

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "ModerationRule":
        """Validate and convert a backend rule object.

        ``id``, ``name``, ``triggerType`` and an ``actions`` array are required;
        everything else falls back to defaults.

        Raises:
            RuleValidationError: If a required field is missing or malformed.
        """
        if not isinstance(payload, Mapping):
            raise RuleValidationError("Rule must be an object")
        rule_id = payload.get("id")
        name = payload.get("name")
        trigger_type = payload.get("triggerType")
        actions = payload.get("actions")
        if not rule_id or not name or not trigger_type or not isinstance(actions, list):
            raise RuleValidationError("Invalid rule structure")

        trigger_options = payload.get("triggerConfig") or {}
        if not isinstance(trigger_options, Mapping):
            raise RuleValidationError(f"triggerConfig of rule {rule_id} must be an object")

        return cls(
            id=str(rule_id),
            name=str(name),
            trigger_type=str(trigger_type),
            trigger=parse_trigger_config(str(trigger_type), trigger_options),
            enabled=_bool_option(payload, "enabled", True),
            priority=_int_option(payload, "priority", 0),
            exempt_role_ids=frozenset(_str_tuple(payload.get("exemptRoleIds"), "exemptRoleIds")),
            exempt_channel_ids=frozenset(_str_tuple(payload.get("exemptChannelIds"), "exemptChannelIds")),
            actions=tuple(ModerationAction.from_wire(action) for action in actions),
        )

    def to_summary(self) -> Dict[str, str]:
        """Return the lightweight listing used by the cache status endpoint."""
        return {"id": self.id, "name": self.name, "triggerType": self.trigger_type}


# ==========================================
# Results and reports
# ==========================================

@dataclass(slots=True)
class ActionResult:
    """Outcome of one executed action."""

    action_type: str
    success: bool
    error: str | None = None
    config: Mapping[str, Any] = field(default_factory=dict)

    def to_wire_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "actionType": self.action_type,
            "success": self.success,
            "config": dict(self.config),
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True, slots=True)
class AttachmentInfo:
    url: str
    name: str
    content_type: str | None = None

    def to_wire_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "name": self.name, "contentType": self.content_type}


def isoformat_utc(moment: datetime) -> str:
    """Format ``moment`` as an ISO 8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True)
class ModerationReport:
    """Everything the backend needs to log one triggered rule."""

    rule_id: str
    guild_id: str
    target_user_id: str
    target_user_tag: str
    channel_id: str
    message_id: str
    message_content: str
    attachments: List[AttachmentInfo] = field(default_factory=list)
    action_results: List[ActionResult] = field(default_factory=list)
    triggered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_wire_dict(self) -> Dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "guildId": self.guild_id,
            "targetUserId": self.target_user_id,
            "targetUserTag": self.target_user_tag,
            "channelId": self.channel_id,
            "messageId": self.message_id,
            "messageContent": self.message_content,
            "messageAttachments": [attachment.to_wire_dict() for attachment in self.attachments],
            "actionResults": [result.to_wire_dict() for result in self.action_results],
            "triggeredAt": isoformat_utc(self.triggered_at),
        }
