from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

from relay.session.models import Participant, Session

if TYPE_CHECKING:
    from relay.messaging.protocol import ConnectionProtocol
    from relay.rules.types import Position


class SessionStore:
    """In-memory store of active sessions.

    Map session ids to sessions. Session ids are assigned from a monotonic
    counter and never reused. A session is reachable by id and by either
    participant's connection until it is removed.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}  # session_id -> Session
        self._ids = itertools.count(1)

    def create(self, participant_a: Participant, participant_b: Participant, position: Position) -> Session:
        """Create and store a session for two participants starting from position."""
        session = Session(
            session_id=f"game-{next(self._ids)}",
            participants=(participant_a, participant_b),
            position=position,
        )
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Session | None:
        """Remove a session by id. Returns the removed session, or None if it was already gone."""
        return self._sessions.pop(session_id, None)

    def find_by_connection(self, connection: ConnectionProtocol) -> Session | None:
        """Return the session this connection plays in, if any."""
        for session in self._sessions.values():
            if session.has_connection(connection):
                return session
        return None

    def sessions_for(self, connection: ConnectionProtocol) -> list[Session]:
        """Return every session this connection plays in (expected: at most one)."""
        return [s for s in self._sessions.values() if s.has_connection(connection)]

    def __len__(self) -> int:
        return len(self._sessions)
