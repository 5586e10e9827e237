"""Async HTTP API for the browser chat client.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop, with CORS
restricted to the configured frontend origin.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

import aiohttp_cors
from aiohttp import web

from src.errors import GatewayError, InvalidRequest
from src.gateway.conversation import ConversationGateway

logger = logging.getLogger(__name__)

GATEWAY_KEY = web.AppKey("gateway", ConversationGateway)


@web.middleware
async def _error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Render gateway errors as ``{error, code}`` JSON bodies."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except GatewayError as exc:
        return web.json_response(exc.to_dict(), status=exc.status)
    except Exception:
        logger.exception("Unhandled error: %s %s", request.method, request.path)
        return web.json_response(GatewayError().to_dict(), status=500)


async def _create_user(request: web.Request) -> web.Response:
    """POST /api/user/new: allocate a session id."""
    user_id = request.app[GATEWAY_KEY].create_session()
    return web.json_response({"userId": user_id, "message": "Session created"})


async def _history(request: web.Request) -> web.Response:
    """GET /api/user/{user_id}/history"""
    history = request.app[GATEWAY_KEY].history(request.match_info["user_id"])
    return web.json_response({"history": history})


async def _chat(request: web.Request) -> web.Response:
    """POST /api/chat: one user message in, one reply out."""
    try:
        payload: Any = await request.json()
    except ValueError:
        logger.warning("Chat bad request: invalid JSON")
        raise InvalidRequest("Request body must be JSON") from None
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must be a JSON object")

    reply = await request.app[GATEWAY_KEY].chat(payload.get("userId"), payload.get("message"))
    return web.json_response(reply.to_dict())


async def _stats(request: web.Request) -> web.Response:
    return web.json_response(request.app[GATEWAY_KEY].usage().to_dict())


async def _health(request: web.Request) -> web.Response:
    """GET /api/health: liveness plus quota usage."""
    return web.json_response(request.app[GATEWAY_KEY].health())


def _create_web_app(gateway: ConversationGateway, allowed_origin: str) -> web.Application:
    """Build the aiohttp Application with routes and CORS."""
    app = web.Application(middlewares=[_error_middleware])
    app[GATEWAY_KEY] = gateway
    app.router.add_post("/api/user/new", _create_user)
    app.router.add_get("/api/user/{user_id}/history", _history)
    app.router.add_post("/api/chat", _chat)
    app.router.add_get("/api/stats", _stats)
    app.router.add_get("/api/health", _health)

    cors = aiohttp_cors.setup(
        app,
        defaults={
            allowed_origin: aiohttp_cors.ResourceOptions(
                allow_credentials=True,
                allow_headers="*",
                allow_methods="*",
            )
        },
    )
    for route in list(app.router.routes()):
        cors.add(route)
    return app


async def sweep_loop(gateway: ConversationGateway, interval: float) -> None:
    """Periodically evict idle sessions. Runs until cancelled."""
    while True:
        await asyncio.sleep(interval)
        gateway.sessions.evict_idle()


class GatewayServer:
    """Manages the aiohttp server and the session sweeper lifecycle."""

    def __init__(
        self,
        gateway: ConversationGateway,
        *,
        allowed_origin: str,
        host: str = "0.0.0.0",
        port: int = 3001,
        sweep_interval: float = 300.0,
    ) -> None:
        self.gateway = gateway
        self.allowed_origin = allowed_origin
        self.host = host
        self.port = port
        self.sweep_interval = sweep_interval
        self._runner: web.AppRunner | None = None
        self._sweeper: asyncio.Task | None = None

    async def start(self) -> None:
        app = _create_web_app(self.gateway, self.allowed_origin)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        if self.gateway.sessions.idle_ttl is not None:
            self._sweeper = asyncio.create_task(
                sweep_loop(self.gateway, self.sweep_interval)
            )
        logger.info(
            "Gateway listening on %s:%d (origin %s)",
            self.host,
            self.port,
            self.allowed_origin,
        )

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Gateway stopped")
