from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from contact.handlers import send_email
from contact.mailer import get_mailer
from contact.settings import ContactSettings
from relay.messaging.router import MessageRouter
from relay.rules.chess_engine import ChessRulesEngine
from relay.server.settings import RelayServerSettings
from relay.server.websocket import websocket_endpoint
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.websockets import WebSocket

    from contact.mailer import Mailer
    from relay.rules.engine import RulesEngine


async def health(_request: Request) -> JSONResponse:
    return JSONResponse(
        {"status": "ok", "message": "Server is running", "version": APP_VERSION, "commit": GIT_COMMIT},
    )


async def status(request: Request) -> JSONResponse:
    message_router: MessageRouter = request.app.state.message_router
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "commit": GIT_COMMIT,
            "connections": message_router.connection_count,
            "players_in_queue": message_router.queue_length,
            "active_sessions": message_router.session_count,
        },
    )


def create_app(
    settings: RelayServerSettings | None = None,
    rules_engine: RulesEngine | None = None,
    message_router: MessageRouter | None = None,
    mailer: Mailer | None = None,
    contact_settings: ContactSettings | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = RelayServerSettings()

    if contact_settings is None:  # pragma: no cover
        contact_settings = ContactSettings()

    if mailer is None:  # pragma: no cover
        mailer = get_mailer(contact_settings)

    if message_router is None:
        message_router = MessageRouter(rules_engine or ChessRulesEngine())

    rate = settings.rate_limit_per_second
    burst = settings.rate_limit_burst

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router, rate=rate, burst=burst)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/api/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        Route("/send-email", send_email, methods=["POST"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    app = Starlette(routes=routes)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.message_router = message_router
    app.state.mailer = mailer
    app.state.contact_settings = contact_settings

    logger.info("relay server ready")
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (e.g., uvicorn --factory)."""
    _settings = RelayServerSettings()
    setup_logging(log_dir=_settings.log_dir)
    return create_app(settings=_settings)
