"""Fire-and-forget delivery to one connection or a group of connections."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterable

    from relay.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()


async def send_to(connection: ConnectionProtocol, message: dict[str, Any]) -> bool:
    """Send a message if the connection is open. Returns True if it was sent.

    A connection that closes mid-send is skipped, never raised to the caller.
    """
    if not connection.is_open:
        return False
    try:
        await connection.send_message(message)
    except (RuntimeError, OSError) as e:
        logger.debug("send skipped", target_connection_id=connection.connection_id, error=str(e))
        return False
    return True


async def broadcast_to_connections(
    connections: Iterable[ConnectionProtocol],
    message: dict[str, Any],
) -> None:
    """Broadcast a message to every open connection.

    Snapshot the iterable via list() so callers may pass live views.
    """
    for connection in list(connections):
        await send_to(connection, message)
