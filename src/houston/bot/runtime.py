"""
Process-wide container for Houston's moderation components.

Everything the cogs and the REST API share is built here once, from the
application configuration, and torn down through :meth:`HoustonRuntime.close`.
"""

from __future__ import annotations

import discord

from houston.configuration.app_configuration import AppConfig
from houston.moderation.action_executor import ActionExecutor
from houston.moderation.moderation_service import ModerationService
from houston.moderation.rule_cache import RuleCache
from houston.moderation.spam_tracker import SpamWindowTracker
from houston.moderation.triggers import TriggerEvaluator
from houston.services.backend_client import BackendClient
from houston.services.punishment_events import PunishmentEventReporter
from houston.services.reporting_service import ReportingClient
from houston.util.logger import get_logger

logger = get_logger("runtime")


class HoustonRuntime:
    """
    Owns the rule cache, spam tracker, backend client and the services built on them.

    Args:
        config (AppConfig): Source of every tunable.
        bot (discord.Bot | None): Discord client; may be attached later with :meth:`attach_bot`.
    """

    def __init__(self, config: AppConfig, bot: discord.Bot | None = None) -> None:
        self.config = config
        self.api_key = config.internal_api_key
        self.backend = BackendClient(
            config.backend_url,
            self.api_key,
            timeout_seconds=config.backend_event_timeout_seconds,
        )
        self.rule_cache = RuleCache(self.backend)
        self.spam_tracker = SpamWindowTracker(
            sweep_probability=config.spam_sweep_probability,
            sweep_ceiling_seconds=config.spam_sweep_ceiling_seconds,
        )
        self.evaluator = TriggerEvaluator(self.spam_tracker)
        self.executor = ActionExecutor(bot)
        self.reporter = ReportingClient(self.backend, max_errors=config.report_error_history)
        self.moderation = ModerationService(self.rule_cache, self.evaluator, self.executor, self.reporter)
        self.punishments = PunishmentEventReporter(self.backend, timeout_seconds=config.backend_event_timeout_seconds)
        self.bot = bot
        self._initial_fetch_done = False

        if not self.api_key:
            logger.warning("[RUNTIME] INTERNAL_API_KEY is not set; backend calls and the REST API are disabled")

    def attach_bot(self, bot: discord.Bot) -> None:
        self.bot = bot
        self.executor.bot = bot

    async def initial_rule_fetch(self) -> bool:
        """Pull the rule set once per process; later calls are no-ops returning False."""
        if self._initial_fetch_done:
            return False
        self._initial_fetch_done = True
        return await self.rule_cache.fetch_and_load(
            max_retries=self.config.rules_fetch_max_retries,
            delay_seconds=self.config.rules_fetch_delay_seconds,
            timeout_seconds=self.config.rules_fetch_timeout_seconds,
        )

    async def close(self) -> None:
        """Release the HTTP session and drop in-memory state."""
        await self.backend.close()
        self.spam_tracker.clear()
        self.rule_cache.clear()
        logger.info("[RUNTIME] Runtime closed")
