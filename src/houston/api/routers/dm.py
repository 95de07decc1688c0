"""Direct message endpoint used by the backend to notify users."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from houston.api.dependencies import get_runtime, require_api_key
from houston.api.models import DirectMessageRequest
from houston.services.admin_actions import AdminActionError, send_direct_message

router = APIRouter(tags=["Direct Messages"], dependencies=[Depends(require_api_key)])


@router.post("/dm")
async def send_dm(body: DirectMessageRequest, runtime: Any = Depends(get_runtime)) -> dict:
    """Send a DM. Closed DMs still answer 200 with ``delivered: false``."""
    try:
        result = await send_direct_message(runtime.bot, body.user_id, body.content)
    except AdminActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from None
    return result.to_dict()
