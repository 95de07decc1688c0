"""Webhook creation endpoint."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_201_CREATED

from houston.api.dependencies import get_runtime, require_api_key
from houston.api.models import WebhookRequest
from houston.services.admin_actions import AdminActionError
from houston.services.channel_actions import create_webhook

router = APIRouter(tags=["Webhooks"], dependencies=[Depends(require_api_key)])


@router.post("/webhooks", status_code=HTTP_201_CREATED)
async def post_webhook(body: WebhookRequest, runtime: Any = Depends(get_runtime)) -> dict:
    try:
        return await create_webhook(
            runtime.bot,
            body.channel_id,
            body.user_profile.name,
            body.user_profile.avatar_url,
        )
    except AdminActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from None
