"""
Execution of the actions attached to a triggered moderation rule.

Actions run one at a time, each awaited before the next starts. Every action
yields an :class:`ActionResult`; a failing action is recorded and the
remaining ones still run.

Before execution the actions are put in a safe order: notifications first,
then everything else, then actions that remove the member from the guild.
That way a DM or log notice is always attempted while the user can still
receive it.
"""

from __future__ import annotations

import asyncio
import datetime
from typing import Iterable, List

import discord

from houston.datatypes.discord_datatypes import ChannelID, RoleID
from houston.datatypes.rule_datatypes import (
    ActionResult,
    ActionType,
    BanConfig,
    DeleteMessageConfig,
    KickConfig,
    LogOnlyConfig,
    ModerationAction,
    ModerationRule,
    RoleChangeConfig,
    SendDMConfig,
    SendLogMessageConfig,
    SendWarningConfig,
    TimeoutConfig,
    UnknownActionConfig,
)
from houston.util.discord_utils import build_rule_log_embed, resolve_member, send_dm_to_user
from houston.util.logger import get_logger

logger = get_logger("action_executor")

MESSAGING_ACTIONS = frozenset({ActionType.SEND_DM.value, ActionType.SEND_LOG_MESSAGE.value})
DESTRUCTIVE_ACTIONS = frozenset({ActionType.BAN.value, ActionType.KICK.value})

# Discord rejects timeouts longer than 28 days
MAX_TIMEOUT_SECONDS = 28 * 24 * 60 * 60


class ActionFailure(Exception):
    """Raised by an action handler for expected failures (missing member, bad config...)."""


def order_actions(actions: Iterable[ModerationAction]) -> List[ModerationAction]:
    """
    Return ``actions`` in safe execution order.

    Actions are first sorted by their declared ``order`` (stable), then
    regrouped as messaging → other → destructive. The grouping always wins
    over the declared order.

    Args:
        actions (Iterable[ModerationAction]): Actions as authored.

    Returns:
        List[ModerationAction]: Actions in execution order.
    """
    by_order = sorted(actions, key=lambda action: action.order)
    messaging = [action for action in by_order if action.action_type in MESSAGING_ACTIONS]
    destructive = [action for action in by_order if action.action_type in DESTRUCTIVE_ACTIONS]
    other = [
        action
        for action in by_order
        if action.action_type not in MESSAGING_ACTIONS and action.action_type not in DESTRUCTIVE_ACTIONS
    ]
    return messaging + other + destructive


class ActionExecutor:
    """
    Apply moderation actions to a message, its author and its guild.

    Args:
        bot (discord.Bot | None): Used to resolve log channels that are not in the guild cache.
    """

    def __init__(self, bot: discord.Bot | None = None) -> None:
        self.bot = bot

    async def execute_rule_actions(self, message: discord.Message, rule: ModerationRule) -> List[ActionResult]:
        """
        Run every action of ``rule`` against ``message`` in safe order.

        Returns:
            List[ActionResult]: One result per action, in execution order.
        """
        results: List[ActionResult] = []
        for action in order_actions(rule.actions):
            results.append(await self.execute(message, action, rule))
        return results

    async def execute(self, message: discord.Message, action: ModerationAction, rule: ModerationRule) -> ActionResult:
        """Run one action and capture its outcome; never raises except on cancellation."""
        try:
            await self._dispatch(message, action, rule)
        except asyncio.CancelledError:
            raise
        except ActionFailure as exc:
            logger.warning("[ACTION EXECUTOR] %s failed for rule %s: %s", action.action_type, rule.id, exc)
            return ActionResult(action.action_type, False, str(exc), action.raw_config)
        except Exception as exc:
            logger.error("[ACTION EXECUTOR] Error executing %s for rule %s: %s", action.action_type, rule.id, exc)
            return ActionResult(action.action_type, False, str(exc) or type(exc).__name__, action.raw_config)

        logger.debug("[ACTION EXECUTOR] %s succeeded for rule %s on message %s", action.action_type, rule.id, message.id)
        return ActionResult(action.action_type, True, None, action.raw_config)

    async def _dispatch(self, message: discord.Message, action: ModerationAction, rule: ModerationRule) -> None:
        match action.config:
            case DeleteMessageConfig():
                await message.delete()
            case TimeoutConfig() as config:
                await self._timeout(message, config)
            case BanConfig() as config:
                await self._ban(message, config)
            case KickConfig() as config:
                member = self._require_member(message)
                await member.kick(reason=config.reason)
            case SendDMConfig() as config:
                await self._send_dm(message, config)
            case SendLogMessageConfig() as config:
                await self._send_log_message(message, config, rule)
            case SendWarningConfig() as config:
                await self._send_warning(message, config)
            case RoleChangeConfig() as config:
                await self._change_role(message, action.action_type, config)
            case LogOnlyConfig():
                pass
            case UnknownActionConfig(action_type=action_type):
                logger.warning("[ACTION EXECUTOR] Unknown action type: %s", action_type)
                raise ActionFailure("Unknown action type")
            case _:
                raise ActionFailure("Unknown action type")

    # --------------------------
    # Handlers
    # --------------------------
    @staticmethod
    def _require_member(message: discord.Message) -> discord.Member:
        member = resolve_member(message)
        if member is None:
            raise ActionFailure("Member not found")
        return member

    async def _timeout(self, message: discord.Message, config: TimeoutConfig) -> None:
        member = self._require_member(message)
        if config.dm_message:
            await send_dm_to_user(member, config.dm_message)
        duration = min(max(config.duration_seconds, 1), MAX_TIMEOUT_SECONDS)
        until = discord.utils.utcnow() + datetime.timedelta(seconds=duration)
        await member.timeout(until, reason=config.reason)

    async def _ban(self, message: discord.Message, config: BanConfig) -> None:
        member = self._require_member(message)
        if config.dm_message:
            await send_dm_to_user(member, config.dm_message)
        await member.ban(reason=config.reason)

    async def _send_dm(self, message: discord.Message, config: SendDMConfig) -> None:
        try:
            await message.author.send(config.message)
        except discord.Forbidden:
            raise ActionFailure("Could not send DM (user may have DMs disabled)") from None

    async def _resolve_channel(self, message: discord.Message, channel_id: ChannelID):
        guild = message.guild
        channel = guild.get_channel_or_thread(channel_id.to_int()) if guild is not None else None
        if channel is None and self.bot is not None:
            channel = self.bot.get_channel(channel_id.to_int())
            if channel is None:
                try:
                    channel = await self.bot.fetch_channel(channel_id.to_int())
                except (discord.NotFound, discord.Forbidden):
                    channel = None
        return channel

    async def _send_log_message(self, message: discord.Message, config: SendLogMessageConfig, rule: ModerationRule) -> None:
        if not config.channel_id:
            raise ActionFailure("Log channel not configured")
        try:
            channel_id = ChannelID(config.channel_id)
        except ValueError:
            raise ActionFailure(f"Invalid log channel id: {config.channel_id}") from None

        channel = await self._resolve_channel(message, channel_id)
        if channel is None:
            raise ActionFailure("Log channel not found")
        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            raise ActionFailure("Log channel is not a text channel")

        await channel.send(embed=build_rule_log_embed(message, rule.name))

    async def _send_warning(self, message: discord.Message, config: SendWarningConfig) -> None:
        channel = message.channel
        if not isinstance(channel, discord.abc.Messageable):
            raise ActionFailure("Channel does not support text messages")
        await channel.send(f"{message.author.mention}, {config.message}")

    async def _change_role(self, message: discord.Message, action_type: str, config: RoleChangeConfig) -> None:
        member = resolve_member(message)
        if member is None or not config.role_id:
            raise ActionFailure("Member or roleId not found")
        try:
            role = discord.Object(id=RoleID(config.role_id).to_int())
        except ValueError:
            raise ActionFailure(f"Invalid role id: {config.role_id}") from None

        if action_type == ActionType.ADD_ROLE.value:
            await member.add_roles(role, reason="Auto-moderation rule")
        else:
            await member.remove_roles(role, reason="Auto-moderation rule")
