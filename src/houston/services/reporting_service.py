"""
Reporting of triggered rules to the backend, with a small diagnostics buffer.

A report submission never raises into the moderation path. Each attempt is
counted as a success or a failure, and the most recent failures are kept
(newest first) so the debug endpoint can explain why logs are missing.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterable, List

import discord

from houston.datatypes.rule_datatypes import (
    ActionResult,
    AttachmentInfo,
    ModerationReport,
    ModerationRule,
    isoformat_utc,
)
from houston.services.backend_client import LOGS_PATH, BackendClient, BackendError
from houston.util.discord_utils import format_user_tag
from houston.util.logger import get_logger

logger = get_logger("reporting_service")


@dataclass(slots=True)
class ReportFailure:
    """One failed report submission."""

    error: str
    url: str
    status: int | None = None
    body: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": isoformat_utc(self.timestamp),
            "error": self.error,
            "status": self.status,
            "body": self.body,
            "url": self.url,
        }


def build_report(message: discord.Message, rule: ModerationRule, results: Iterable[ActionResult]) -> ModerationReport:
    """
    Assemble the report for ``rule`` firing on ``message``.

    Args:
        message (discord.Message): The offending message.
        rule (ModerationRule): The rule that triggered.
        results (Iterable[ActionResult]): Outcomes of the executed actions.

    Returns:
        ModerationReport: Report ready for :meth:`ReportingClient.submit`.
    """
    attachments = [
        AttachmentInfo(url=attachment.url, name=attachment.filename, content_type=attachment.content_type)
        for attachment in message.attachments
    ]
    return ModerationReport(
        rule_id=rule.id,
        guild_id=str(message.guild.id) if message.guild is not None else "",
        target_user_id=str(message.author.id),
        target_user_tag=format_user_tag(message.author),
        channel_id=str(message.channel.id),
        message_id=str(message.id),
        message_content=message.content or "",
        attachments=attachments,
        action_results=list(results),
    )


class ReportingClient:
    """
    Submit moderation reports and keep delivery diagnostics.

    Args:
        backend (BackendClient): Client for the backend log endpoint.
        max_errors (int): Number of recent failures kept for diagnostics.
    """

    def __init__(self, backend: BackendClient, max_errors: int = 20) -> None:
        self.backend = backend
        self.max_errors = max(1, max_errors)
        self.success_count = 0
        self.failure_count = 0
        self._recent_errors: Deque[ReportFailure] = deque(maxlen=self.max_errors)

    def _record_failure(self, failure: ReportFailure) -> None:
        self.failure_count += 1
        self._recent_errors.appendleft(failure)

    async def submit(self, report: ModerationReport) -> bool:
        """
        Send ``report`` to the backend.

        Returns:
            bool: True on a 2xx response. Every failure is logged and recorded, never raised.
        """
        url = self.backend.url_for(LOGS_PATH)
        if not self.backend.is_configured:
            logger.error("[REPORTING] INTERNAL_API_KEY not configured, cannot log moderation action")
            self._record_failure(ReportFailure(error="INTERNAL_API_KEY not configured", url=url))
            return False

        try:
            await self.backend.post_log(report.to_wire_dict())
        except asyncio.CancelledError:
            raise
        except BackendError as exc:
            logger.error("[REPORTING] Failed to log moderation action for rule %s: %s", report.rule_id, exc.to_log_dict())
            self._record_failure(ReportFailure(error=str(exc), url=exc.url, status=exc.status, body=exc.body))
            return False
        except Exception as exc:
            logger.error("[REPORTING] Unexpected error logging rule %s: %s", report.rule_id, exc)
            self._record_failure(ReportFailure(error=str(exc) or type(exc).__name__, url=url))
            return False

        self.success_count += 1
        logger.info("[REPORTING] Logged moderation action for rule %s", report.rule_id)
        return True

    @property
    def recent_errors(self) -> List[ReportFailure]:
        """Recent failures, newest first."""
        return list(self._recent_errors)

    def debug_info(self) -> Dict[str, Any]:
        """Return the reporting diagnostics snapshot exposed by the debug endpoint."""
        return {
            "backendUrl": self.backend.base_url,
            "apiKeyConfigured": self.backend.is_configured,
            "apiKeyLength": len(self.backend.api_key),
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "recentErrors": [failure.to_dict() for failure in self._recent_errors],
        }
