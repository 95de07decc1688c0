"""Guild and channel listing used by the dashboard's channel pickers."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from houston.api.dependencies import get_runtime, require_api_key
from houston.services.admin_actions import AdminActionError
from houston.services.channel_actions import list_guilds

router = APIRouter(tags=["Guilds"], dependencies=[Depends(require_api_key)])


@router.get("/guilds")
async def get_guilds(runtime: Any = Depends(get_runtime)) -> list:
    """Every guild the bot is in, each with its text channels in UI order."""
    try:
        return list_guilds(runtime.bot)
    except AdminActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from None
