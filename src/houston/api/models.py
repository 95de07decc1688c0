"""Request bodies accepted by the REST control plane."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class RuleSyncRequest(BaseModel):
    """Full rule set pushed by the backend. ``rules`` is validated by the handler."""

    rules: Any = None


class RevokeRequest(_CamelModel):
    guild_id: str = Field(alias="guildId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)
    reason: Optional[str] = Field(None, max_length=512)


class DirectMessageRequest(_CamelModel):
    user_id: str = Field(alias="userId", min_length=1)
    content: str = Field(min_length=1, max_length=2000)


class ChannelMessageRequest(_CamelModel):
    channel_id: str = Field(alias="channelId", min_length=1)
    content: str = Field(alias="messageContent", min_length=1, max_length=2000)


class WebhookProfile(BaseModel):
    name: str = Field(min_length=1, max_length=80)
    avatar_url: str = Field(min_length=1)


class WebhookRequest(BaseModel):
    """Webhook creation body; the backend sends this one in snake_case."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    channel_id: str = Field(min_length=1)
    user_profile: WebhookProfile


class ForumThreadRequest(_CamelModel):
    channel_id: str = Field(alias="channelId", min_length=1)
    thread_name: str = Field(alias="threadName", min_length=1, max_length=100)
    content: str = Field(alias="messageContent", min_length=1, max_length=1900)
    mention_user_id: Optional[str] = Field(None, alias="mentionUserId")


class CloseThreadRequest(_CamelModel):
    closing_message: Optional[str] = Field(None, alias="closingMessage", max_length=2000)
