"""
Per-message moderation pipeline.

For each incoming guild message every active rule is considered in priority
order. A rule is skipped when the message is exempt from it. Otherwise its
trigger is evaluated, and when it fires the rule's actions are executed and a
report is submitted. A match never stops evaluation of the following rules,
so one message can produce several independent reports.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import List

import discord

from houston.datatypes.rule_datatypes import ActionResult, ModerationRule
from houston.moderation.action_executor import ActionExecutor
from houston.moderation.rule_cache import RuleCache
from houston.moderation.triggers import TriggerEvaluator, is_exempt
from houston.services.reporting_service import ReportingClient, build_report
from houston.util.logger import get_logger

logger = get_logger("moderation_service")


class RuleOutcome(Enum):
    EXEMPT = "exempt"
    NOT_TRIGGERED = "not_triggered"
    TRIGGERED = "triggered"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class RuleEvaluation:
    """What happened to one rule for one message."""

    rule_id: str
    outcome: RuleOutcome
    results: List[ActionResult] = field(default_factory=list)
    reported: bool = False


class ModerationService:
    """
    Run the rule engine against guild messages.

    Args:
        rule_cache (RuleCache): Source of the active rules.
        evaluator (TriggerEvaluator): Trigger dispatch.
        executor (ActionExecutor): Applies the actions of triggered rules.
        reporter (ReportingClient): Sends one report per triggered rule.
    """

    def __init__(
        self,
        rule_cache: RuleCache,
        evaluator: TriggerEvaluator,
        executor: ActionExecutor,
        reporter: ReportingClient,
    ) -> None:
        self.rule_cache = rule_cache
        self.evaluator = evaluator
        self.executor = executor
        self.reporter = reporter

    async def evaluate_message(self, message: discord.Message) -> List[RuleEvaluation]:
        """
        Evaluate ``message`` against every active rule.

        Args:
            message (discord.Message): A guild message from a human author.

        Returns:
            List[RuleEvaluation]: One entry per active rule, in evaluation order.
            Empty when no rules are loaded.
        """
        rules = self.rule_cache.get_all_rules()
        if not rules:
            return []

        evaluations: List[RuleEvaluation] = []
        for rule in rules:
            try:
                evaluations.append(await self._evaluate_rule(message, rule))
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.error("[MODERATION] Error evaluating rule %s on message %s: %s", rule.id, message.id, exc)
                evaluations.append(RuleEvaluation(rule_id=rule.id, outcome=RuleOutcome.ERROR))
        return evaluations

    async def _evaluate_rule(self, message: discord.Message, rule: ModerationRule) -> RuleEvaluation:
        if is_exempt(message, rule):
            return RuleEvaluation(rule_id=rule.id, outcome=RuleOutcome.EXEMPT)

        if not self.evaluator.evaluate(message, rule):
            return RuleEvaluation(rule_id=rule.id, outcome=RuleOutcome.NOT_TRIGGERED)

        logger.info(
            "[MODERATION] Rule %r (%s) triggered by user %s in channel %s",
            rule.name,
            rule.trigger_type,
            message.author.id,
            message.channel.id,
        )
        results = await self.executor.execute_rule_actions(message, rule)
        reported = await self.reporter.submit(build_report(message, rule, results))
        return RuleEvaluation(rule_id=rule.id, outcome=RuleOutcome.TRIGGERED, results=results, reported=reported)
