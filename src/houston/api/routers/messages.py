"""Immediate channel message endpoint."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from houston.api.dependencies import get_runtime, require_api_key
from houston.api.models import ChannelMessageRequest
from houston.services.admin_actions import AdminActionError
from houston.services.channel_actions import send_channel_message

router = APIRouter(prefix="/messages", tags=["Messages"], dependencies=[Depends(require_api_key)])


@router.post("/send-now")
async def send_now(body: ChannelMessageRequest, runtime: Any = Depends(get_runtime)) -> dict:
    try:
        return await send_channel_message(runtime.bot, body.channel_id, body.content)
    except AdminActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from None
