"""Tests for action ordering and execution."""

import asyncio
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from houston.datatypes.rule_datatypes import ModerationAction, ModerationRule, parse_trigger_config
from houston.moderation.action_executor import MAX_TIMEOUT_SECONDS, ActionExecutor, order_actions


def action(action_type: str, config=None, order: int = 0) -> ModerationAction:
    return ModerationAction.from_wire(
        {"id": f"{action_type}-{order}", "actionType": action_type, "actionConfig": config or {}, "order": order}
    )


def rule_with(*actions: ModerationAction) -> ModerationRule:
    return ModerationRule(
        id="r1",
        name="Rule One",
        trigger_type="CUSTOM_KEYWORD",
        trigger=parse_trigger_config("CUSTOM_KEYWORD", {"keywords": ["x"]}),
        actions=tuple(actions),
    )


def forbidden() -> discord.Forbidden:
    response = MagicMock()
    response.status = 403
    response.reason = "Forbidden"
    return discord.Forbidden(response, "Missing Permissions")


class TestOrdering:
    def test_messaging_moves_before_ban(self):
        ordered = order_actions([action("BAN"), action("SEND_DM")])
        assert [a.action_type for a in ordered] == ["SEND_DM", "BAN"]

    def test_groups_win_over_declared_order(self):
        ordered = order_actions(
            [
                action("KICK", order=0),
                action("DELETE_MESSAGE", order=1),
                action("SEND_LOG_MESSAGE", order=2),
                action("TIMEOUT", order=3),
                action("SEND_DM", order=4),
            ]
        )
        assert [a.action_type for a in ordered] == ["SEND_LOG_MESSAGE", "SEND_DM", "DELETE_MESSAGE", "TIMEOUT", "KICK"]

    def test_declared_order_within_group(self):
        ordered = order_actions([action("TIMEOUT", order=2), action("DELETE_MESSAGE", order=1)])
        assert [a.action_type for a in ordered] == ["DELETE_MESSAGE", "TIMEOUT"]

    def test_warning_message_is_not_a_messaging_action(self):
        ordered = order_actions([action("SEND_WARNING_MESSAGE"), action("SEND_DM")])
        assert [a.action_type for a in ordered] == ["SEND_DM", "SEND_WARNING_MESSAGE"]


class TestExecuteRuleActions:
    @pytest.mark.asyncio
    async def test_dm_runs_before_ban(self, make_message):
        calls = []
        message = make_message("x")
        message.author.send = AsyncMock(side_effect=lambda *_: calls.append("dm"))
        message.author.ban = AsyncMock(side_effect=lambda **_: calls.append("ban"))

        results = await ActionExecutor().execute_rule_actions(message, rule_with(action("BAN"), action("SEND_DM")))

        assert calls == ["dm", "ban"]
        assert [r.action_type for r in results] == ["SEND_DM", "BAN"]
        assert all(r.success for r in results)

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_remaining_actions(self, make_message):
        message = make_message("x")
        message.delete = AsyncMock(side_effect=RuntimeError("gone"))

        results = await ActionExecutor().execute_rule_actions(
            message, rule_with(action("DELETE_MESSAGE", order=0), action("TIMEOUT", order=1))
        )

        assert [(r.action_type, r.success) for r in results] == [("DELETE_MESSAGE", False), ("TIMEOUT", True)]
        assert results[0].error == "gone"
        message.author.timeout.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, make_message):
        message = make_message("x")
        message.delete = AsyncMock(side_effect=asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await ActionExecutor().execute_rule_actions(message, rule_with(action("DELETE_MESSAGE")))

    @pytest.mark.asyncio
    async def test_result_echoes_raw_config(self, make_message):
        results = await ActionExecutor().execute_rule_actions(
            make_message("x"), rule_with(action("TIMEOUT", {"duration": 60, "reason": "calm down"}))
        )
        assert results[0].config == {"duration": 60, "reason": "calm down"}


class TestHandlers:
    @pytest.mark.asyncio
    async def test_timeout_with_dm_and_clamp(self, make_message):
        message = make_message("x")
        executor = ActionExecutor()

        result = await executor.execute(
            message,
            action("TIMEOUT", {"duration": 10**9, "reason": "r", "dmMessage": "bye"}),
            rule_with(),
        )

        assert result.success
        message.author.send.assert_awaited_once_with("bye")
        until = message.author.timeout.await_args.args[0]
        assert until - discord.utils.utcnow() <= timedelta(seconds=MAX_TIMEOUT_SECONDS)
        assert message.author.timeout.await_args.kwargs == {"reason": "r"}

    @pytest.mark.asyncio
    async def test_timeout_dm_failure_is_ignored(self, make_message):
        message = make_message("x")
        message.author.send = AsyncMock(side_effect=forbidden())

        result = await ActionExecutor().execute(message, action("TIMEOUT", {"dmMessage": "bye"}), rule_with())

        assert result.success
        message.author.timeout.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_zero_timeout_duration_lasts_default_five_minutes(self, make_message):
        message = make_message("x")

        result = await ActionExecutor().execute(message, action("TIMEOUT", {"duration": 0}), rule_with())

        assert result.success
        remaining = message.author.timeout.await_args.args[0] - discord.utils.utcnow()
        assert timedelta(seconds=290) <= remaining <= timedelta(seconds=300)

    @pytest.mark.asyncio
    async def test_member_required(self, make_message):
        message = make_message("x", author=SimpleNamespace(id=1, mention="<@1>", send=AsyncMock()))

        for action_type in ("TIMEOUT", "BAN", "KICK"):
            result = await ActionExecutor().execute(message, action(action_type), rule_with())
            assert not result.success
            assert result.error == "Member not found"

    @pytest.mark.asyncio
    async def test_kick_uses_reason(self, make_message):
        message = make_message("x")
        await ActionExecutor().execute(message, action("KICK", {"reason": "bye"}), rule_with())
        message.author.kick.assert_awaited_once_with(reason="bye")

    @pytest.mark.asyncio
    async def test_dm_forbidden_is_reported(self, make_message):
        message = make_message("x")
        message.author.send = AsyncMock(side_effect=forbidden())

        result = await ActionExecutor().execute(message, action("SEND_DM", {"message": "hi"}), rule_with())

        assert not result.success
        assert result.error == "Could not send DM (user may have DMs disabled)"

    @pytest.mark.asyncio
    async def test_log_message_sent_to_guild_channel(self, make_message, make_channel):
        log_channel = make_channel(999)
        message = make_message("bad words")
        message.guild.get_channel_or_thread = MagicMock(return_value=log_channel)

        result = await ActionExecutor().execute(message, action("SEND_LOG_MESSAGE", {"channelId": "999"}), rule_with())

        assert result.success
        message.guild.get_channel_or_thread.assert_called_once_with(999)
        embed = log_channel.send.await_args.kwargs["embed"]
        assert "Rule One" in embed.title

    @pytest.mark.asyncio
    async def test_log_message_falls_back_to_bot_fetch(self, make_message, make_channel):
        log_channel = make_channel(999)
        bot = MagicMock()
        bot.get_channel = MagicMock(return_value=None)
        bot.fetch_channel = AsyncMock(return_value=log_channel)

        result = await ActionExecutor(bot).execute(
            make_message("x"), action("SEND_LOG_MESSAGE", {"channelId": "999"}), rule_with()
        )

        assert result.success
        bot.fetch_channel.assert_awaited_once_with(999)

    @pytest.mark.asyncio
    async def test_log_message_requires_text_channel(self, make_message):
        message = make_message("x")
        message.guild.get_channel_or_thread = MagicMock(return_value=MagicMock(spec=discord.VoiceChannel))

        result = await ActionExecutor().execute(message, action("SEND_LOG_MESSAGE", {"channelId": "1"}), rule_with())

        assert not result.success
        assert result.error == "Log channel is not a text channel"

    @pytest.mark.asyncio
    async def test_log_message_without_channel(self, make_message):
        message = make_message("x")

        missing = await ActionExecutor().execute(message, action("SEND_LOG_MESSAGE"), rule_with())
        unknown = await ActionExecutor().execute(message, action("SEND_LOG_MESSAGE", {"channelId": "5"}), rule_with())

        assert missing.error == "Log channel not configured"
        assert unknown.error == "Log channel not found"

    @pytest.mark.asyncio
    async def test_warning_mentions_author(self, make_message):
        message = make_message("x")

        await ActionExecutor().execute(message, action("SEND_WARNING_MESSAGE", {"message": "please stop"}), rule_with())

        message.channel.send.assert_awaited_once_with("<@100>, please stop")

    @pytest.mark.asyncio
    async def test_roles(self, make_message):
        message = make_message("x")
        executor = ActionExecutor()

        added = await executor.execute(message, action("ADD_ROLE", {"roleId": "77"}), rule_with())
        removed = await executor.execute(message, action("REMOVE_ROLE", {"roleId": "77"}), rule_with())
        missing = await executor.execute(message, action("ADD_ROLE"), rule_with())

        assert added.success and removed.success
        assert message.author.add_roles.await_args.args[0].id == 77
        assert message.author.remove_roles.await_args.args[0].id == 77
        assert missing.error == "Member or roleId not found"

    @pytest.mark.asyncio
    async def test_log_only_and_unknown(self, make_message):
        message = make_message("x")
        executor = ActionExecutor()

        log_only = await executor.execute(message, action("LOG_ONLY"), rule_with())
        unknown = await executor.execute(message, action("SHAME"), rule_with())

        assert log_only.success
        assert not unknown.success
        assert unknown.error == "Unknown action type"
