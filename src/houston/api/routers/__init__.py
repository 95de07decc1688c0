"""Routers mounted under ``/api/v1``."""

from houston.api.routers.dm import router as dm_router
from houston.api.routers.forum import router as forum_router
from houston.api.routers.guilds import router as guilds_router
from houston.api.routers.messages import router as messages_router
from houston.api.routers.moderation import router as moderation_router
from houston.api.routers.webhooks import router as webhooks_router

__all__ = ["dm_router", "forum_router", "guilds_router", "messages_router", "moderation_router", "webhooks_router"]
