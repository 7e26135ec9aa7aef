import pytest

from relay.session.queue import MatchmakingQueue
from relay.session.registry import ConnectionRegistry
from relay.session.session_store import SessionStore
from relay.session.state_machine import SessionStateMachine


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def session_store():
    return SessionStore()


@pytest.fixture
def queue(registry, session_store, rules_engine, coin):
    return MatchmakingQueue(registry, session_store, rules_engine, rng=coin)


@pytest.fixture
def state_machine(session_store, rules_engine):
    return SessionStateMachine(session_store, rules_engine)
