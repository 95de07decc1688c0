from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from houston.datatypes.rule_datatypes import ActionResult, ModerationRule, parse_trigger_config
from houston.services.backend_client import BackendClient, BackendError
from houston.services.reporting_service import ReportingClient, build_report


def make_client(api_key: str = "secret", **kwargs) -> ReportingClient:
    backend = BackendClient("http://backend:3001/", api_key)
    backend.post_log = AsyncMock()
    return ReportingClient(backend, **kwargs)


def make_report(rule_id: str = "r1"):
    rule = ModerationRule(
        id=rule_id,
        name="n",
        trigger_type="CUSTOM_KEYWORD",
        trigger=parse_trigger_config("CUSTOM_KEYWORD", {}),
    )
    message = SimpleNamespace(
        id=4,
        content="hello",
        author=SimpleNamespace(id=2, name="someone", discriminator="0"),
        channel=SimpleNamespace(id=3),
        guild=SimpleNamespace(id=1),
        attachments=[SimpleNamespace(url="https://cdn/a.png", filename="a.png", content_type="image/png")],
    )
    return build_report(message, rule, [ActionResult("DELETE_MESSAGE", True)])


def test_build_report_collects_message_details():
    wire = make_report().to_wire_dict()

    assert wire["guildId"] == "1"
    assert wire["targetUserId"] == "2"
    assert wire["targetUserTag"] == "someone"
    assert wire["channelId"] == "3"
    assert wire["messageId"] == "4"
    assert wire["messageAttachments"][0]["name"] == "a.png"
    assert wire["actionResults"] == [{"actionType": "DELETE_MESSAGE", "success": True, "config": {}}]


@pytest.mark.asyncio
async def test_submit_success_counts():
    client = make_client()

    assert await client.submit(make_report()) is True
    assert client.success_count == 1
    assert client.failure_count == 0
    client.backend.post_log.assert_awaited_once()


@pytest.mark.asyncio
async def test_failures_are_capped_newest_first():
    client = make_client()
    failures = [
        BackendError(f"failure {index}", url="http://backend:3001/api/moderation/internal/logs", status=500, body="oops")
        for index in range(25)
    ]
    client.backend.post_log = AsyncMock(side_effect=failures)

    for _ in range(25):
        assert await client.submit(make_report()) is False

    assert client.failure_count == 25
    errors = client.recent_errors
    assert len(errors) == 20
    assert errors[0].error == "failure 24"
    assert errors[-1].error == "failure 5"
    assert errors[0].status == 500
    assert errors[0].body == "oops"


@pytest.mark.asyncio
async def test_unexpected_errors_never_raise():
    client = make_client()
    client.backend.post_log = AsyncMock(side_effect=RuntimeError("weird"))

    assert await client.submit(make_report()) is False
    assert client.recent_errors[0].error == "weird"


@pytest.mark.asyncio
async def test_missing_api_key_is_a_recorded_failure():
    client = make_client(api_key="")

    assert await client.submit(make_report()) is False
    assert client.failure_count == 1
    client.backend.post_log.assert_not_awaited()


@pytest.mark.asyncio
async def test_debug_info_hides_key():
    client = make_client(api_key="supersecret", max_errors=2)
    client.backend.post_log = AsyncMock(side_effect=BackendError("down", url="u"))
    await client.submit(make_report())

    info = client.debug_info()

    assert info["backendUrl"] == "http://backend:3001"
    assert info["apiKeyConfigured"] is True
    assert info["apiKeyLength"] == 11
    assert info["failureCount"] == 1
    assert info["recentErrors"][0]["error"] == "down"
    assert "supersecret" not in str(info)
