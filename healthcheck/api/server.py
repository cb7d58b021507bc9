"""Read-only HTTP status API served with ``aiohttp``.

Exposes:
- ``GET /health``                    → overall status + every target snapshot
- ``GET /health/status``             → ``{"status": "UP|DEGRADED|DOWN"}``
- ``GET /host``                      → host snapshot
- ``GET /providers``                 → all provider snapshots
- ``GET /providers/{provider_id}``   → one provider snapshot
- ``GET /notifications``             → current notification tree
"""

from __future__ import annotations

import base64
import hmac
from typing import Any

import structlog
from aiohttp import web

from healthcheck.health.notifications import InMemoryNotificationSink
from healthcheck.health.status import StatusBoard
from healthcheck.health.targets import HOST_TARGET_ID

logger = structlog.get_logger(__name__)

BOARD_KEY = web.AppKey("board", StatusBoard)
SINK_KEY = web.AppKey("sink", InMemoryNotificationSink)
AUTH_KEY = web.AppKey("auth", tuple)


def _check_basic_auth(request: web.Request, username: str, password: str) -> bool:
    """Validate HTTP Basic Auth credentials."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Basic "):
        return False
    try:
        decoded = base64.b64decode(auth_header[6:]).decode("utf-8")
        req_user, req_pass = decoded.split(":", 1)
    except (ValueError, UnicodeDecodeError):
        return False
    user_ok = hmac.compare_digest(req_user, username)
    pass_ok = hmac.compare_digest(req_pass, password)
    return user_ok and pass_ok


@web.middleware
async def _auth_middleware(request: web.Request, handler: Any) -> web.StreamResponse:
    """Require HTTP Basic Auth on all routes when credentials are configured."""
    username, password = request.app[AUTH_KEY]
    if username and password:
        if not _check_basic_auth(request, username, password):
            return web.Response(
                status=401,
                text="Unauthorized",
                headers={"WWW-Authenticate": 'Basic realm="Healthcheck"'},
            )
    return await handler(request)


def _not_found(msg: str, status: int = 400) -> web.Response:
    logger.debug("status_query_miss", reason=msg)
    return web.Response(status=status, text=msg)


async def _handle_health(request: web.Request) -> web.Response:
    board = request.app[BOARD_KEY]
    return web.json_response({
        "status": board.overall().value,
        "hosts": [s.model_dump(mode="json") for s in board.hosts()],
        "providers": [s.model_dump(mode="json") for s in board.providers()],
    })


async def _handle_health_status(request: web.Request) -> web.Response:
    board = request.app[BOARD_KEY]
    return web.json_response({"status": board.overall().value})


async def _handle_host(request: web.Request) -> web.Response:
    board = request.app[BOARD_KEY]
    snap = board.status(HOST_TARGET_ID)
    if snap is None:
        return _not_found("Host is not monitored", status=404)
    return web.json_response(snap.model_dump(mode="json"))


async def _handle_providers(request: web.Request) -> web.Response:
    board = request.app[BOARD_KEY]
    return web.json_response([s.model_dump(mode="json") for s in board.providers()])


async def _handle_provider(request: web.Request) -> web.Response:
    board = request.app[BOARD_KEY]
    provider_id = request.match_info["provider_id"]
    snap = board.status(provider_id)
    if snap is None or provider_id == HOST_TARGET_ID:
        return _not_found(f"No provider found for {provider_id}")
    return web.json_response(snap.model_dump(mode="json"))


async def _handle_notifications(request: web.Request) -> web.Response:
    sink = request.app.get(SINK_KEY)
    return web.json_response(sink.snapshot() if sink is not None else {})


def create_web_app(
    board: StatusBoard,
    sink: InMemoryNotificationSink | None = None,
    username: str | None = None,
    password: str | None = None,
) -> web.Application:
    """Create the aiohttp web application."""
    app = web.Application(middlewares=[_auth_middleware])
    app[BOARD_KEY] = board
    if sink is not None:
        app[SINK_KEY] = sink
    app[AUTH_KEY] = (username, password)
    app.router.add_get("/health", _handle_health)
    app.router.add_get("/health/status", _handle_health_status)
    app.router.add_get("/host", _handle_host)
    app.router.add_get("/providers", _handle_providers)
    app.router.add_get("/providers/{provider_id}", _handle_provider)
    app.router.add_get("/notifications", _handle_notifications)
    return app


async def start_status_server(
    board: StatusBoard,
    sink: InMemoryNotificationSink | None = None,
    host: str = "0.0.0.0",
    port: int = 8080,
    username: str | None = None,
    password: str | None = None,
) -> web.AppRunner:
    """Start the status API server. Returns the runner for cleanup."""
    app = create_web_app(board, sink, username=username, password=password)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("status_server_started", host=host, port=port)
    return runner
