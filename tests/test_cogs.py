"""Tests for the runtime container and the Discord cogs."""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from houston.bot.cogs import events_listener, message_listener
from houston.bot.runtime import HoustonRuntime
from houston.configuration.app_configuration import AppConfig


@pytest.fixture()
def runtime(tmp_path: Path, monkeypatch) -> HoustonRuntime:
    monkeypatch.setenv("INTERNAL_API_KEY", "secret")
    monkeypatch.setenv("BACKEND_API_URL", "http://backend:3001")
    config_path = tmp_path / "app_config.yml"
    config_path.write_text("rules_fetch:\n  max_retries: 2\n  delay_seconds: 0\n", encoding="utf-8")
    return HoustonRuntime(AppConfig(config_path))


def test_runtime_wires_components(runtime):
    assert runtime.api_key == "secret"
    assert runtime.backend.base_url == "http://backend:3001"
    assert runtime.moderation.rule_cache is runtime.rule_cache
    assert runtime.evaluator.spam_tracker is runtime.spam_tracker
    assert runtime.reporter.max_errors == 20

    bot = MagicMock()
    runtime.attach_bot(bot)

    assert runtime.bot is bot
    assert runtime.executor.bot is bot


@pytest.mark.asyncio
async def test_initial_rule_fetch_runs_once(runtime):
    runtime.rule_cache.fetch_and_load = AsyncMock(return_value=True)

    assert await runtime.initial_rule_fetch() is True
    assert await runtime.initial_rule_fetch() is False
    runtime.rule_cache.fetch_and_load.assert_awaited_once_with(max_retries=2, delay_seconds=0.0, timeout_seconds=5.0)


@pytest.mark.asyncio
async def test_runtime_close(runtime):
    runtime.backend.close = AsyncMock()
    runtime.spam_tracker.record("u", "m", "x", 5)

    await runtime.close()

    runtime.backend.close.assert_awaited_once()
    assert runtime.spam_tracker.tracked_users == 0


class TestMessageListener:
    def make_cog(self):
        runtime = SimpleNamespace(moderation=SimpleNamespace(evaluate_message=AsyncMock()))
        return message_listener.MessageListenerCog(MagicMock(), runtime), runtime

    @pytest.mark.asyncio
    async def test_guild_message_is_moderated(self, make_message):
        cog, runtime = self.make_cog()
        message = make_message("hello")

        await cog.on_message(message)

        runtime.moderation.evaluate_message.assert_awaited_once_with(message)

    @pytest.mark.asyncio
    async def test_dm_bot_and_webhook_messages_are_ignored(self, make_message, make_member):
        cog, runtime = self.make_cog()
        dm = make_message("hello")
        dm.guild = None
        bot_author = make_member()
        bot_author.bot = True
        webhook = make_message("hello")
        webhook.webhook_id = 5

        for message in (dm, make_message("hello", author=bot_author), webhook):
            await cog.on_message(message)

        runtime.moderation.evaluate_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_errors_are_contained(self, make_message):
        cog, runtime = self.make_cog()
        runtime.moderation.evaluate_message.side_effect = RuntimeError("boom")

        await cog.on_message(make_message("hello"))

    def test_setup_registers_cog(self):
        bot = MagicMock()
        message_listener.setup(bot, SimpleNamespace())
        assert isinstance(bot.add_cog.call_args.args[0], message_listener.MessageListenerCog)


class TestEventsListener:
    def make_cog(self):
        runtime = SimpleNamespace(
            initial_rule_fetch=AsyncMock(return_value=True),
            rule_cache=SimpleNamespace(size=lambda: 3),
            punishments=SimpleNamespace(report_ban=AsyncMock(), report_timeout=AsyncMock()),
        )
        bot = MagicMock()
        bot.user = SimpleNamespace(id=1)
        return events_listener.EventsListenerCog(bot, runtime), runtime

    @pytest.mark.asyncio
    async def test_on_ready_fetches_rules(self):
        cog, runtime = self.make_cog()

        await cog.on_ready()

        runtime.initial_rule_fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_punishment_events_are_forwarded(self):
        cog, runtime = self.make_cog()
        guild, user = object(), object()
        before, after = object(), object()

        await cog.on_member_ban(guild, user)
        await cog.on_member_update(before, after)

        runtime.punishments.report_ban.assert_awaited_once_with(guild, user)
        runtime.punishments.report_timeout.assert_awaited_once_with(before, after)
