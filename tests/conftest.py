"""
Pytest configuration and fixtures for Houston tests.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import discord  # noqa: E402


def _member(user_id: int = 100, role_ids=(), name: str = "offender") -> MagicMock:
    member = MagicMock(spec=discord.Member)
    member.id = user_id
    member.name = name
    member.discriminator = "0"
    member.mention = f"<@{user_id}>"
    member.bot = False
    member.roles = [SimpleNamespace(id=role_id) for role_id in role_ids]
    member.communication_disabled_until = None
    member.send = AsyncMock()
    member.timeout = AsyncMock()
    member.remove_timeout = AsyncMock()
    member.ban = AsyncMock()
    member.kick = AsyncMock()
    member.add_roles = AsyncMock()
    member.remove_roles = AsyncMock()
    return member


def _channel(channel_id: int = 200) -> MagicMock:
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id
    channel.send = AsyncMock()
    return channel


def _message(
    content: str = "",
    *,
    author=None,
    message_id: int = 400,
    channel=None,
    guild_id: int = 300,
    attachments=(),
    mentions=(),
):
    guild = SimpleNamespace(id=guild_id, get_channel_or_thread=MagicMock(return_value=None))
    return SimpleNamespace(
        id=message_id,
        content=content,
        author=author if author is not None else _member(),
        channel=channel if channel is not None else _channel(),
        guild=guild,
        attachments=list(attachments),
        mentions=list(mentions),
        webhook_id=None,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        delete=AsyncMock(),
    )


@pytest.fixture()
def make_member():
    """Factory for guild members backed by ``MagicMock(spec=discord.Member)``."""
    return _member


@pytest.fixture()
def make_channel():
    """Factory for text channels backed by ``MagicMock(spec=discord.TextChannel)``."""
    return _channel


@pytest.fixture()
def make_message():
    """Factory for guild messages; the author defaults to a fresh member."""
    return _message


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


def rule_payload(**overrides):
    """Backend-shaped rule object with sensible defaults."""
    payload = {
        "id": "rule-1",
        "name": "No spam",
        "enabled": True,
        "priority": 0,
        "triggerType": "CUSTOM_KEYWORD",
        "triggerConfig": {"keywords": ["spam"]},
        "exemptRoleIds": [],
        "exemptChannelIds": [],
        "actions": [{"id": "a1", "actionType": "DELETE_MESSAGE", "actionConfig": {}, "order": 0}],
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def make_rule_payload():
    return rule_payload
