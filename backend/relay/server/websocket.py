from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from relay.messaging.encoder import DecodeError, WireEncoding, decode
from relay.messaging.protocol import ConnectionProtocol
from relay.messaging.types import ErrorCode, ErrorMessage
from relay.server.rate_limit import TokenBucket

logger = structlog.get_logger()

if TYPE_CHECKING:
    from relay.messaging.router import MessageRouter

_DEFAULT_RATE_LIMIT_RATE = 10.0
_DEFAULT_RATE_LIMIT_BURST = 20

# Disconnect after this many consecutive decode errors
_MAX_DECODE_ERRORS = 5

_CLOSE_INVALID_ENCODING = 4000
_CLOSE_TOO_MANY_DECODE_ERRORS = 4004


class WebSocketConnection(ConnectionProtocol):
    def __init__(
        self,
        websocket: WebSocket,
        encoding: WireEncoding = WireEncoding.MSGPACK,
        connection_id: str | None = None,
    ) -> None:
        self._websocket = websocket
        self._encoding = encoding
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def encoding(self) -> WireEncoding:
        return self._encoding

    @property
    def is_open(self) -> bool:
        return (
            self._websocket.application_state == WebSocketState.CONNECTED
            and self._websocket.client_state == WebSocketState.CONNECTED
        )

    async def send_frame(self, data: bytes | str) -> None:
        try:
            if isinstance(data, bytes):
                await self._websocket.send_bytes(data)
            else:
                await self._websocket.send_text(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_frame(self) -> bytes | str:
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
        if message.get("bytes") is not None:
            return message["bytes"]
        return message.get("text") or ""

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


def _requested_encoding(websocket: WebSocket) -> WireEncoding | None:
    raw = websocket.query_params.get("encoding", WireEncoding.MSGPACK.value)
    try:
        return WireEncoding(raw.lower())
    except ValueError:
        return None


async def websocket_endpoint(
    websocket: WebSocket,
    router: MessageRouter,
    *,
    rate: float = _DEFAULT_RATE_LIMIT_RATE,
    burst: int = _DEFAULT_RATE_LIMIT_BURST,
) -> None:
    encoding = _requested_encoding(websocket)
    if encoding is None:
        await websocket.close(code=_CLOSE_INVALID_ENCODING, reason="invalid_encoding")
        return

    await websocket.accept()

    connection = WebSocketConnection(websocket, encoding=encoding)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)
    logger.info("websocket connected", encoding=encoding)
    await router.handle_connect(connection)

    bucket = TokenBucket(rate=rate, burst=burst)
    decode_errors = 0

    try:
        while True:
            frame = await connection.receive_frame()

            # Decode before rate limiting so the strike counter sees every frame.
            try:
                data = decode(frame)
            except DecodeError as e:
                decode_errors += 1
                logger.warning("decode error", error=str(e), strikes=decode_errors)
                await connection.send_message(
                    ErrorMessage(code=ErrorCode.INVALID_MESSAGE, message="Invalid message format.").model_dump(),
                )
                if decode_errors >= _MAX_DECODE_ERRORS:
                    logger.info("too many decode errors, disconnecting")
                    await connection.close(code=_CLOSE_TOO_MANY_DECODE_ERRORS, reason="too_many_decode_errors")
                    return
                continue

            decode_errors = 0

            if not bucket.consume():
                await connection.send_message(
                    ErrorMessage(code=ErrorCode.RATE_LIMITED, message="Too many messages.").model_dump(),
                )
                continue
            await router.handle_message(connection, data)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):  # fmt: skip
        pass
    finally:
        logger.info("websocket disconnected")
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
