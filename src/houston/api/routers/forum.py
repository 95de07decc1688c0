"""
Forum Router
============

Job postings live as forum threads: the backend opens one per posting and
closes it when the job is filled.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_201_CREATED

from houston.api.dependencies import get_runtime, require_api_key
from houston.api.models import CloseThreadRequest, ForumThreadRequest
from houston.services.admin_actions import AdminActionError
from houston.services.channel_actions import close_forum_thread, create_forum_thread

router = APIRouter(prefix="/forum-threads", tags=["Forum Threads"], dependencies=[Depends(require_api_key)])


@router.post("", status_code=HTTP_201_CREATED)
async def open_thread(body: ForumThreadRequest, runtime: Any = Depends(get_runtime)) -> dict:
    try:
        return await create_forum_thread(
            runtime.bot,
            body.channel_id,
            body.thread_name,
            body.content,
            body.mention_user_id,
        )
    except AdminActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from None


@router.post("/{thread_id}/close")
async def close_thread(
    thread_id: str,
    body: Optional[CloseThreadRequest] = None,
    runtime: Any = Depends(get_runtime),
) -> dict:
    closing_message = body.closing_message if body is not None else None
    try:
        return await close_forum_thread(runtime.bot, thread_id, closing_message)
    except AdminActionError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from None
