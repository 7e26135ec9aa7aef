"""
Matchmaking queue: first come, first paired.

Sides are assigned by a coin flip per pair, so joining first does not decide
who moves first.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

import structlog

from relay.messaging.types import GameStartMessage, QueueStatusMessage
from relay.rules.types import Side
from relay.session.broadcast import broadcast_to_connections, send_to
from relay.session.exceptions import AlreadyQueuedOrInGameError, NotQueuedError, PairingFailedError
from relay.session.models import Participant, QueueEntry

if TYPE_CHECKING:
    from relay.messaging.protocol import ConnectionProtocol
    from relay.rules.engine import RulesEngine
    from relay.rules.types import Position
    from relay.session.models import Session
    from relay.session.registry import ConnectionRegistry
    from relay.session.session_store import SessionStore

logger = structlog.get_logger()

QUEUE_UPDATED = "Queue updated."
STILL_WAITING = "Still waiting for an opponent..."


class MatchmakingQueue:
    def __init__(
        self,
        registry: ConnectionRegistry,
        session_store: SessionStore,
        rules_engine: RulesEngine,
        *,
        rng: random.Random | None = None,
    ) -> None:
        self._registry = registry
        self._session_store = session_store
        self._rules_engine = rules_engine
        self._rng = rng or random.Random()  # noqa: S311
        self._entries: list[QueueEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, connection: ConnectionProtocol) -> bool:
        return any(e.connection_id == connection.connection_id for e in self._entries)

    @property
    def tokens(self) -> list[str]:
        """Queued tokens in pairing order."""
        return [e.token for e in self._entries]

    def enqueue(self, connection: ConnectionProtocol, token: str) -> QueueEntry:
        """Append a connection to the queue.

        Raises AlreadyQueuedOrInGameError if the connection is already queued
        or plays in an active session.
        """
        if connection in self or self._session_store.find_by_connection(connection) is not None:
            raise AlreadyQueuedOrInGameError
        entry = QueueEntry(connection=connection, token=token)
        self._entries.append(entry)
        logger.info("player joined queue", token=token, queue_length=len(self._entries))
        return entry

    async def dequeue(self, connection: ConnectionProtocol) -> QueueEntry:
        """Remove a connection from the queue and tell the rest the new queue size.

        Raises NotQueuedError if the connection is not queued.
        """
        entry = self._remove(connection)
        if entry is None:
            raise NotQueuedError
        logger.info("player left queue", token=entry.token, queue_length=len(self._entries))
        await self.broadcast_status(QUEUE_UPDATED)
        return entry

    def discard(self, connection: ConnectionProtocol) -> bool:
        """Silently drop a connection from the queue. Returns True if it was queued."""
        return self._remove(connection) is not None

    async def try_match_all(self) -> list[Session]:
        """Pair the two earliest entries until fewer than two remain.

        Each pair gets a new session at the engine's initial position and a
        game_start message per participant. Afterwards the new queue size is
        broadcast: to every open connection if any session was created, else
        to the connections still waiting.

        Raises PairingFailedError if the rules engine cannot set up a session.
        The pair it failed on stays at the head of the queue.
        """
        created: list[Session] = []
        while len(self._entries) >= 2:
            try:
                position, side_names = self._session_setup()
            except Exception as e:
                logger.exception("rules engine failed while setting up a session", queue_length=len(self._entries))
                await self._broadcast_after_matching(created)
                raise PairingFailedError from e

            entry_a = self._entries.pop(0)
            entry_b = self._entries.pop(0)
            session = self._create_session(entry_a, entry_b, position)
            created.append(session)
            await self._announce(session, side_names)

        await self._broadcast_after_matching(created)
        return created

    async def broadcast_status(self, message: str) -> None:
        """Send the current queue size to every queued connection."""
        await broadcast_to_connections(
            [e.connection for e in self._entries],
            QueueStatusMessage(players_in_queue=len(self._entries), message=message).model_dump(),
        )

    async def _broadcast_after_matching(self, created: list[Session]) -> None:
        if created:
            await broadcast_to_connections(
                self._registry.connections(),
                QueueStatusMessage(players_in_queue=len(self._entries), message=QUEUE_UPDATED).model_dump(),
            )
        else:
            await self.broadcast_status(STILL_WAITING)

    def _remove(self, connection: ConnectionProtocol) -> QueueEntry | None:
        for index, entry in enumerate(self._entries):
            if entry.connection_id == connection.connection_id:
                return self._entries.pop(index)
        return None

    def _session_setup(self) -> tuple[Position, dict[Side, str]]:
        position = self._rules_engine.initial_position()
        side_names = {side: self._rules_engine.side_name(side) for side in Side}
        return position, side_names

    def _create_session(self, entry_a: QueueEntry, entry_b: QueueEntry, position: Position) -> Session:
        first, second = (entry_a, entry_b) if self._rng.random() < 0.5 else (entry_b, entry_a)
        session = self._session_store.create(
            Participant(connection=first.connection, token=first.token, side=Side.FIRST),
            Participant(connection=second.connection, token=second.token, side=Side.SECOND),
            position,
        )
        logger.info(
            "session created",
            session_id=session.session_id,
            first=first.token,
            second=second.token,
            queue_length=len(self._entries),
        )
        return session

    async def _announce(self, session: Session, side_names: dict[Side, str]) -> None:
        first_name = side_names[Side.FIRST]
        for participant in session.participants:
            side_name = side_names[participant.side]
            if participant.side is Side.FIRST:
                text = f"Game started! You are {side_name}. It's your turn."
            else:
                text = f"Game started! You are {side_name}. Waiting for {first_name}'s move."
            await send_to(
                participant.connection,
                GameStartMessage(
                    session_id=session.session_id,
                    side=participant.side,
                    side_name=side_name,
                    position=session.position.snapshot,
                    players=session.tokens,
                    message=text,
                ).model_dump(),
            )
