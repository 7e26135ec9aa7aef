from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from relay.rules.types import Side

if TYPE_CHECKING:
    from relay.messaging.protocol import ConnectionProtocol
    from relay.rules.types import Position


@dataclass(frozen=True)
class QueueEntry:
    """A connection waiting for an opponent."""

    connection: ConnectionProtocol
    token: str

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id


@dataclass(frozen=True)
class Participant:
    """One of the two players of a session. The side never changes once assigned."""

    connection: ConnectionProtocol
    token: str
    side: Side

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id


@dataclass
class Session:
    """One two-player game with its authoritative position.

    Lifecycle:
    - Created by the matchmaking queue when two connections are paired
    - position is replaced on every accepted action
    - Removed from the SessionStore on a terminal condition, a leave, or a disconnect
    """

    session_id: str
    participants: tuple[Participant, Participant]
    position: Position

    def __post_init__(self) -> None:
        """Sides must map one-to-one onto {first, second}."""
        sides = {p.side for p in self.participants}
        if sides != set(Side):
            raise ValueError(f"session {self.session_id} needs one first and one second participant")
        if self.participants[0].connection_id == self.participants[1].connection_id:
            raise ValueError(f"session {self.session_id} cannot pair a connection with itself")

    @property
    def first(self) -> Participant:
        return self.participant_on(Side.FIRST)

    @property
    def second(self) -> Participant:
        return self.participant_on(Side.SECOND)

    @property
    def tokens(self) -> list[str]:
        return [self.first.token, self.second.token]

    def participant_on(self, side: Side) -> Participant:
        return next(p for p in self.participants if p.side is side)

    def participant_for(self, connection: ConnectionProtocol) -> Participant | None:
        for participant in self.participants:
            if participant.connection_id == connection.connection_id:
                return participant
        return None

    def has_connection(self, connection: ConnectionProtocol) -> bool:
        return self.participant_for(connection) is not None

    def opponent_of(self, participant: Participant) -> Participant:
        return self.participant_on(participant.side.opponent)
