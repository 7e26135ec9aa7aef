from __future__ import annotations

from typing import TYPE_CHECKING

from relay.rules.types import Side
from relay.session.models import Participant
from relay.tests.mocks import MockConnection

if TYPE_CHECKING:
    from relay.rules.engine import RulesEngine
    from relay.session.models import Session
    from relay.session.session_store import SessionStore


def start_session(
    session_store: SessionStore,
    rules_engine: RulesEngine,
    first_token: str = "player_first",
    second_token: str = "player_second",
) -> tuple[Session, MockConnection, MockConnection]:
    """Store a fresh session between two new connections. Returns (session, first, second)."""
    first = MockConnection()
    second = MockConnection()
    session = session_store.create(
        Participant(connection=first, token=first_token, side=Side.FIRST),
        Participant(connection=second, token=second_token, side=Side.SECOND),
        rules_engine.initial_position(),
    )
    return session, first, second
