from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import anyio
import structlog
from pydantic import ValidationError

from relay.messaging.types import (
    BoardUpdateMessage,
    CancelQueueMessage,
    ErrorCode,
    ErrorMessage,
    GameEndMessage,
    InfoMessage,
    JoinQueueMessage,
    LeaveGameMessage,
    MakeMoveMessage,
    QueueStatusMessage,
    ReconnectMessage,
    UnknownMessageTypeError,
    parse_client_message,
)
from relay.session.broadcast import broadcast_to_connections, send_to
from relay.session.exceptions import SessionNotFoundError, StateConflictError
from relay.session.queue import QUEUE_UPDATED, MatchmakingQueue
from relay.session.registry import ConnectionRegistry
from relay.session.session_store import SessionStore
from relay.session.state_machine import SessionStateMachine

if TYPE_CHECKING:
    import random

    from relay.messaging.protocol import ConnectionProtocol
    from relay.rules.engine import RulesEngine
    from relay.session.models import Session

logger = structlog.get_logger()

WELCOME = "Welcome! Connected to the game server."
QUEUE_JOINED = "You are in the queue. Waiting for an opponent..."
QUEUE_LEFT = "You have left the queue."
SESSION_GONE = "Game not found. Please return to lobby."
RECONNECT_UNSUPPORTED = "Reconnect functionality not fully implemented. Please rejoin the queue."


class MessageRouter:
    """
    Single entry point for connection events.

    Owns the registry, queue, session store and state machine, and serializes
    every event handler behind one lock: no two handlers ever observe or
    mutate shared state at the same time. This class contains pure business
    logic and can be tested without real WebSocket connections.
    """

    def __init__(
        self,
        rules_engine: RulesEngine,
        *,
        registry: ConnectionRegistry | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._registry = registry or ConnectionRegistry()
        self._session_store = SessionStore()
        self._queue = MatchmakingQueue(self._registry, self._session_store, rules_engine, rng=rng)
        self._state_machine = SessionStateMachine(self._session_store, rules_engine)
        self._lock = asyncio.Lock()

    @property
    def connection_count(self) -> int:
        return len(self._registry)

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def session_count(self) -> int:
        return len(self._session_store)

    def get_session(self, session_id: str) -> Session | None:
        return self._session_store.get(session_id)

    def find_session(self, connection: ConnectionProtocol) -> Session | None:
        return self._session_store.find_by_connection(connection)

    def is_queued(self, connection: ConnectionProtocol) -> bool:
        return connection in self._queue

    def token_for(self, connection: ConnectionProtocol) -> str | None:
        return self._registry.token_for(connection)

    async def handle_connect(self, connection: ConnectionProtocol) -> str:
        """Register a new connection, greet it and refresh everyone's queue counter."""
        async with self._lock:
            token = self._registry.register(connection)
            structlog.contextvars.bind_contextvars(token=token)
            await send_to(connection, InfoMessage(message=WELCOME).model_dump())
            await self._broadcast_queue_status()
            return token

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        async with self._lock:
            try:
                message = parse_client_message(raw_message)
            except UnknownMessageTypeError as e:
                logger.warning("unknown message type", message_type=e.message_type)
                await self._send_error(connection, ErrorCode.UNKNOWN_COMMAND, "Unknown command.")
                return
            except (ValidationError, KeyError, TypeError, ValueError) as e:
                logger.warning("invalid message", error=str(e))
                await self._send_error(connection, ErrorCode.INVALID_MESSAGE, "Invalid message format.")
                return

            try:
                await self._dispatch(connection, message)
            except StateConflictError as e:
                await self._report_conflict(connection, e)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """Drop every trace of a closed or failed connection.

        A queued connection leaves the queue; a playing connection ends its
        session, and the opponent wins. Runs shielded so a cancelled endpoint
        task still finishes the cleanup and its notifications.
        """
        with anyio.CancelScope(shield=True):
            async with self._lock:
                was_queued = self._queue.discard(connection)
                self._registry.unregister(connection)
                ended = await self._state_machine.handle_disconnect(connection)
                logger.info("connection cleaned up", was_queued=was_queued, sessions_ended=ended)
                await self._broadcast_queue_status()

    async def _dispatch(
        self,
        connection: ConnectionProtocol,
        message: JoinQueueMessage | CancelQueueMessage | MakeMoveMessage | LeaveGameMessage | ReconnectMessage,
    ) -> None:
        if isinstance(message, JoinQueueMessage):
            await self._handle_join_queue(connection)
        elif isinstance(message, CancelQueueMessage):
            await self._queue.dequeue(connection)
            await send_to(connection, InfoMessage(message=QUEUE_LEFT).model_dump())
        elif isinstance(message, MakeMoveMessage):
            await self._state_machine.attempt_action(message.session_id, message.engine_action(), connection)
        elif isinstance(message, LeaveGameMessage):
            await self._state_machine.leave(message.session_id, connection)
        elif isinstance(message, ReconnectMessage):
            await self._send_error(connection, ErrorCode.NOT_IMPLEMENTED, RECONNECT_UNSUPPORTED)

    async def _handle_join_queue(self, connection: ConnectionProtocol) -> None:
        token = self._registry.token_for(connection)
        if token is None:
            # connection skipped handle_connect
            token = self._registry.register(connection)
        self._queue.enqueue(connection, token)
        await send_to(connection, InfoMessage(message=QUEUE_JOINED).model_dump())
        await self._queue.try_match_all()

    async def _report_conflict(self, connection: ConnectionProtocol, error: StateConflictError) -> None:
        """Report a rejected request to its originator, re-pushing the authoritative position if any."""
        logger.info("request rejected", error_code=error.code, error_message=str(error))
        await self._send_error(connection, error.code, str(error))
        if error.position is not None:
            await send_to(
                connection,
                BoardUpdateMessage(position=error.position.snapshot, message=error.correction).model_dump(),
            )
        elif isinstance(error, SessionNotFoundError):
            await send_to(connection, GameEndMessage(message=SESSION_GONE).model_dump(exclude_none=True))

    async def _send_error(self, connection: ConnectionProtocol, code: ErrorCode, message: str) -> None:
        await send_to(connection, ErrorMessage(code=code, message=message).model_dump())

    async def _broadcast_queue_status(self) -> None:
        await broadcast_to_connections(
            self._registry.connections(),
            QueueStatusMessage(players_in_queue=len(self._queue), message=QUEUE_UPDATED).model_dump(),
        )
