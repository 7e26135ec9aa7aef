import random

import pytest

from contact.mailer import RecordingMailer
from contact.settings import ContactSettings
from relay.messaging.router import MessageRouter
from relay.rules.chess_engine import ChessRulesEngine
from relay.server.app import create_app
from relay.server.settings import RelayServerSettings
from relay.tests.mocks import MockConnection, MockRulesEngine


class FixedCoin(random.Random):
    """Coin that always lands the same way: the earlier queue entry plays first when heads."""

    def __init__(self, *, heads: bool = True) -> None:
        super().__init__(0)
        self.heads = heads

    def random(self) -> float:
        return 0.0 if self.heads else 0.99


@pytest.fixture
def rules_engine():
    return MockRulesEngine()


@pytest.fixture
def coin():
    return FixedCoin()


@pytest.fixture
def message_router(rules_engine, coin):
    return MessageRouter(rules_engine, rng=coin)


@pytest.fixture
def mock_connection():
    return MockConnection()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def contact_settings():
    return ContactSettings(smtp_username="relay@example.com", smtp_password="secret", recipient="")


@pytest.fixture
def server_settings():
    return RelayServerSettings(cors_origins=["http://localhost:3000"], rate_limit_per_second=100.0, rate_limit_burst=100)


@pytest.fixture
def app(server_settings, coin, mailer, contact_settings):
    """App wired to the real chess engine with a deterministic coin."""
    return create_app(
        settings=server_settings,
        message_router=MessageRouter(ChessRulesEngine(), rng=coin),
        mailer=mailer,
        contact_settings=contact_settings,
    )
