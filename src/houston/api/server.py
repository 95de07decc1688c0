"""
In-process uvicorn server for the Houston API.

The API shares the event loop with the Discord client so handlers can call
into the bot directly.
"""

import asyncio
from typing import TYPE_CHECKING, Optional

import uvicorn

from houston.api.app import create_app
from houston.util.logger import get_logger

if TYPE_CHECKING:
    from houston.bot.runtime import HoustonRuntime

logger = get_logger("api")

STOP_TIMEOUT_SECONDS = 5.0


class APIService:
    """
    Manage the API server lifecycle beside the bot.

    Args:
        runtime (HoustonRuntime): Components exposed to the endpoints.
        host (str): Bind address.
        port (int): Bind port.
    """

    def __init__(self, runtime: "HoustonRuntime", host: str, port: int) -> None:
        self.host = host
        self.port = port
        self.app = create_app(runtime)
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start serving in a background task."""
        if self.is_running:
            logger.warning("[API] Server already running")
            return

        config = uvicorn.Config(
            app=self.app,
            host=self.host,
            port=self.port,
            log_level="warning",
            log_config=None,
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._task = asyncio.create_task(self._run_server(), name="houston-api")
        logger.info("[API] Listening on %s:%d", self.host, self.port)

    async def _run_server(self) -> None:
        try:
            await self._server.serve()
        except asyncio.CancelledError:
            logger.debug("[API] Server task cancelled")
            raise
        except Exception as exc:
            logger.error("[API] Server error: %s", exc)

    async def stop(self) -> None:
        """Ask uvicorn to exit and wait for it, cancelling after a grace period."""
        if not self.is_running:
            return

        logger.info("[API] Stopping server...")
        if self._server is not None:
            self._server.should_exit = True

        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=STOP_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        self._server = None
        self._task = None
        logger.info("[API] Server stopped")
