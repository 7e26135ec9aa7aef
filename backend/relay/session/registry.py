from __future__ import annotations

import itertools
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from relay.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()


class ConnectionRegistry:
    """Live connections and the display token assigned to each.

    Tokens come from a monotonic counter, so they are unique for the lifetime
    of the process and never reissued. They are for display only and carry
    no authority.
    """

    def __init__(self) -> None:
        self._connections: dict[str, ConnectionProtocol] = {}  # connection_id -> connection
        self._tokens: dict[str, str] = {}  # connection_id -> token
        self._ids = itertools.count(1)

    def register(self, connection: ConnectionProtocol) -> str:
        """Track a connection and return its token. Re-registering returns the existing token."""
        existing = self._tokens.get(connection.connection_id)
        if existing is not None:
            return existing

        token = f"player_{next(self._ids)}"
        self._connections[connection.connection_id] = connection
        self._tokens[connection.connection_id] = token
        logger.info("connection registered", token=token, connections=len(self._connections))
        return token

    def unregister(self, connection: ConnectionProtocol) -> None:
        """Forget a connection. Safe to call for unknown connections."""
        self._connections.pop(connection.connection_id, None)
        self._tokens.pop(connection.connection_id, None)

    def token_for(self, connection: ConnectionProtocol) -> str | None:
        return self._tokens.get(connection.connection_id)

    def connections(self) -> list[ConnectionProtocol]:
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: ConnectionProtocol) -> bool:
        return connection.connection_id in self._connections
