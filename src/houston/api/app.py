"""
Houston API application factory.

All endpoints live under ``/api/v1`` and answer errors as
``{"success": false, "error": "..."}``.
"""

from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from houston.api.routers import (
    dm_router,
    forum_router,
    guilds_router,
    messages_router,
    moderation_router,
    webhooks_router,
)
from houston.util.logger import get_logger

if TYPE_CHECKING:
    from houston.bot.runtime import HoustonRuntime

logger = get_logger("api")

API_PREFIX = "/api/v1"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    return f"{location}: {message}" if location else message


def create_app(runtime: "HoustonRuntime") -> FastAPI:
    """
    Create the FastAPI application bound to ``runtime``.

    Args:
        runtime (HoustonRuntime): Shared bot components the endpoints operate on.

    Returns:
        FastAPI: Configured application.
    """
    app = FastAPI(title="Houston API", version="1.0.0", docs_url=None, redoc_url=None)
    app.state.runtime = runtime

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return error_response(HTTP_400_BAD_REQUEST, _describe_validation_error(exc))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("[API] Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        return error_response(HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

    for router in (moderation_router, dm_router, messages_router, guilds_router, webhooks_router, forum_router):
        app.include_router(router, prefix=API_PREFIX)

    @app.get("/health")
    async def health():
        return {"status": "ok", "rulesCount": runtime.rule_cache.size()}

    return app
