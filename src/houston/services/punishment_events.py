"""
Forward bans and timeouts applied on Discord to the backend.

Moderators can punish members directly in the Discord client, bypassing the
rule engine. These events are still recorded by the backend, so the bot
reports them as they happen, enriched with the moderator and reason taken
from the guild audit log when the bot can read it.
"""

from __future__ import annotations

import asyncio
import datetime
from typing import Any, Dict, Union

import discord

from houston.datatypes.rule_datatypes import isoformat_utc
from houston.services.backend_client import BackendClient, BackendError
from houston.util.discord_utils import format_user_tag
from houston.util.logger import get_logger

logger = get_logger("punishment_events")

DEFAULT_EVENT_REASON = "No reason provided"
BAN_AUDIT_LIMIT = 1
TIMEOUT_AUDIT_LIMIT = 5
# Audit entries older than this are not attributed to a timeout event
TIMEOUT_AUDIT_WINDOW = datetime.timedelta(seconds=5)


class PunishmentEventReporter:
    """
    Report ban and timeout events to the backend.

    Args:
        backend (BackendClient): Backend client used for the event endpoints.
        timeout_seconds (float): Request timeout for event submissions.
    """

    def __init__(self, backend: BackendClient, timeout_seconds: float = 10.0) -> None:
        self.backend = backend
        self.timeout_seconds = timeout_seconds

    async def _find_audit_entry(
        self,
        guild: discord.Guild,
        action: discord.AuditLogAction,
        target_id: int,
        limit: int,
        max_age: datetime.timedelta | None = None,
    ) -> discord.AuditLogEntry | None:
        """Return the newest audit entry for ``target_id``, or None when absent or unreadable."""
        now = discord.utils.utcnow()
        try:
            async for entry in guild.audit_logs(limit=limit, action=action):
                target = entry.target
                if target is None or getattr(target, "id", None) != target_id:
                    continue
                if max_age is not None and now - entry.created_at > max_age:
                    continue
                return entry
        except discord.Forbidden:
            logger.debug("[PUNISHMENTS] Audit log access denied in guild %s", guild.id)
        except discord.HTTPException as exc:
            logger.warning("[PUNISHMENTS] Audit log fetch failed in guild %s: %s", guild.id, exc)
        return None

    @staticmethod
    def _moderator_fields(entry: discord.AuditLogEntry | None) -> Dict[str, Any]:
        moderator = entry.user if entry is not None else None
        return {
            "moderatorId": str(moderator.id) if moderator is not None else None,
            "moderatorTag": format_user_tag(moderator) if moderator is not None else None,
        }

    async def _post(self, kind: str, payload: Dict[str, Any]) -> bool:
        try:
            if kind == "ban":
                await self.backend.post_ban(payload, timeout_seconds=self.timeout_seconds)
            else:
                await self.backend.post_timeout(payload, timeout_seconds=self.timeout_seconds)
        except asyncio.CancelledError:
            raise
        except BackendError as exc:
            logger.error("[PUNISHMENTS] Failed to report %s for user %s: %s", kind, payload["userId"], exc.to_log_dict())
            return False
        logger.info("[PUNISHMENTS] Reported %s for %s to backend", kind, payload["username"])
        return True

    async def report_ban(self, guild: discord.Guild, user: Union[discord.User, discord.Member]) -> bool:
        """
        Report that ``user`` was banned from ``guild``.

        Returns:
            bool: True when the backend accepted the event.
        """
        if not self.backend.is_configured:
            logger.warning("[PUNISHMENTS] Backend API not configured; ban of %s not reported", user.id)
            return False

        logger.info("[PUNISHMENTS] User %s was banned from guild %s", format_user_tag(user), guild.id)
        entry = await self._find_audit_entry(guild, discord.AuditLogAction.ban, user.id, BAN_AUDIT_LIMIT)
        payload = {
            "guildId": str(guild.id),
            "userId": str(user.id),
            "username": format_user_tag(user),
            **self._moderator_fields(entry),
            "reason": (entry.reason if entry is not None else None) or DEFAULT_EVENT_REASON,
            "permanent": True,
            "bannedAt": isoformat_utc(discord.utils.utcnow()),
        }
        return await self._post("ban", payload)

    async def report_timeout(self, before: discord.Member, after: discord.Member) -> bool:
        """
        Report a timeout that was newly applied or extended between ``before`` and ``after``.

        Lifted or shortened timeouts and unrelated member updates are ignored.

        Returns:
            bool: True when an event was sent and accepted.
        """
        old_until = before.communication_disabled_until
        new_until = after.communication_disabled_until
        if old_until == new_until or new_until is None:
            return False
        if old_until is not None and new_until <= old_until:
            return False

        if not self.backend.is_configured:
            logger.warning("[PUNISHMENTS] Backend API not configured; timeout of %s not reported", after.id)
            return False

        logger.info("[PUNISHMENTS] User %s timed out until %s", format_user_tag(after), new_until)
        entry = await self._find_audit_entry(
            after.guild,
            discord.AuditLogAction.member_update,
            after.id,
            TIMEOUT_AUDIT_LIMIT,
            max_age=TIMEOUT_AUDIT_WINDOW,
        )
        now = discord.utils.utcnow()
        payload = {
            "guildId": str(after.guild.id),
            "userId": str(after.id),
            "username": format_user_tag(after),
            **self._moderator_fields(entry),
            "reason": (entry.reason if entry is not None else None) or DEFAULT_EVENT_REASON,
            "duration": max(0, int((new_until - now).total_seconds())),
            "expiresAt": isoformat_utc(new_until),
            "appliedAt": isoformat_utc(now),
        }
        return await self._post("timeout", payload)
