from relay.tests.mocks.connection import MockConnection
from relay.tests.mocks.rules_engine import MockRulesEngine

__all__ = ["MockConnection", "MockRulesEngine"]
