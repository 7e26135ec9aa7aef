"""Abstract connection protocol for the relay's WebSocket clients."""

from abc import ABC, abstractmethod
from typing import Any

from relay.messaging.encoder import WireEncoding, encode


class ConnectionProtocol(ABC):
    """
    Abstract interface for a client connection.

    This abstraction allows message handling logic to be tested
    without real WebSocket connections.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether messages can currently be sent to the client."""
        ...

    @property
    def encoding(self) -> WireEncoding:
        """Encoding used for outbound messages."""
        return WireEncoding.MSGPACK

    @abstractmethod
    async def send_frame(self, data: bytes | str) -> None:
        """
        Send one frame to the client. bytes go out as a binary frame, str as text.
        """
        ...

    @abstractmethod
    async def receive_frame(self) -> bytes | str:
        """
        Receive one frame from the client.
        """
        ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None:
        """
        Close the connection.
        """
        ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_frame(encode(data, self.encoding))
