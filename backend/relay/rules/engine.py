from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from relay.rules.types import MoveResult, Position, Side, TerminalStatus


class RulesEngine(ABC):
    """
    Abstract interface for game rules.

    Implementations are stateless with respect to sessions: every call receives
    the position it operates on. Calls are synchronous and must not perform I/O.
    """

    @abstractmethod
    def initial_position(self) -> Position:
        """Return the starting position for a new session."""
        ...

    @abstractmethod
    def side_to_move(self, position: Position) -> Side:
        """Return the side whose turn it is in the given position."""
        ...

    @abstractmethod
    def apply(self, position: Position, action: str | dict[str, Any]) -> MoveResult:
        """
        Apply an action to a position.

        Returns the resulting position and a human-readable description of the change.
        Raises IllegalActionError if the action is not legal in the position.
        """
        ...

    @abstractmethod
    def terminal_status(self, position: Position) -> TerminalStatus:
        """
        Report whether the position ends the game.

        When several conditions hold, the one earliest in TERMINAL_PRECEDENCE is reported.
        """
        ...

    @abstractmethod
    def side_name(self, side: Side) -> str:
        """Display name for a side (e.g. "White")."""
        ...
