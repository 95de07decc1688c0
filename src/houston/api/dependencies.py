"""
FastAPI dependencies shared by every router.
"""

import secrets
from typing import TYPE_CHECKING, Optional

from fastapi import Header, HTTPException, Request
from starlette.status import (
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from houston.util.logger import get_logger

if TYPE_CHECKING:
    from houston.bot.runtime import HoustonRuntime

logger = get_logger("api")


def get_runtime(request: Request) -> "HoustonRuntime":
    """Return the runtime the application was created with."""
    return request.app.state.runtime


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="x-api-key"),
) -> None:
    """
    Reject requests that do not carry the shared internal API key.

    Raises:
        HTTPException: 500 when the server has no key configured, 401 when the
            header is missing, 403 when it does not match.
    """
    expected = get_runtime(request).api_key
    if not expected:
        logger.error("[API] INTERNAL_API_KEY not configured on the server")
        raise HTTPException(status_code=HTTP_500_INTERNAL_SERVER_ERROR, detail="Server misconfiguration")
    if not x_api_key:
        raise HTTPException(status_code=HTTP_401_UNAUTHORIZED, detail="Missing API key")
    if not secrets.compare_digest(x_api_key.encode(), expected.encode()):
        logger.warning("[API] Rejected request to %s with an invalid API key", request.url.path)
        raise HTTPException(status_code=HTTP_403_FORBIDDEN, detail="Invalid API key")
