"""State conflicts raised by the session layer.

Each conflict is reported to the originating connection only and never ends
the connection or the session. Conflicts that concern an existing session
carry its authoritative position so the router can push it back and correct
any optimistic client-side state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from relay.messaging.types import ErrorCode

if TYPE_CHECKING:
    from relay.rules.types import Position


class StateConflictError(Exception):
    """Base class for requests that conflict with the current server state."""

    code: ClassVar[ErrorCode]
    correction: ClassVar[str] = ""  # text sent alongside the re-pushed position

    def __init__(self, message: str, *, position: Position | None = None) -> None:
        self.position = position
        super().__init__(message)


class AlreadyQueuedOrInGameError(StateConflictError):
    code = ErrorCode.ALREADY_QUEUED_OR_IN_GAME

    def __init__(self) -> None:
        super().__init__("You are already in the queue or in a game.")


class NotQueuedError(StateConflictError):
    code = ErrorCode.NOT_QUEUED

    def __init__(self) -> None:
        super().__init__("You were not in the queue.")


class SessionNotFoundError(StateConflictError):
    code = ErrorCode.SESSION_NOT_FOUND

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__("Error: Game not found or already ended.")


class NotAParticipantError(StateConflictError):
    code = ErrorCode.NOT_A_PARTICIPANT
    correction = "Illegal move: You are not participating in this game."

    def __init__(self, *, position: Position) -> None:
        super().__init__("You are not participating in this game.", position=position)


class WrongTurnError(StateConflictError):
    code = ErrorCode.WRONG_TURN
    correction = "Illegal move: Not your turn."

    def __init__(self, *, position: Position) -> None:
        super().__init__("It's not your turn.", position=position)


class IllegalActionRejectedError(StateConflictError):
    code = ErrorCode.ILLEGAL_ACTION
    correction = "Illegal move. Please try again."

    def __init__(self, reason: str, *, position: Position) -> None:
        super().__init__(f"Illegal move: {reason}", position=position)


class ActionFailedError(StateConflictError):
    """The rules engine raised unexpectedly; the session survives."""

    code = ErrorCode.ACTION_FAILED
    correction = "Internal error during move."

    def __init__(self, *, position: Position) -> None:
        super().__init__("An error occurred while processing your move.", position=position)


class PairingFailedError(StateConflictError):
    """The rules engine could not set up a new session; both players stay queued."""

    code = ErrorCode.ACTION_FAILED

    def __init__(self) -> None:
        super().__init__("Could not start a game. You are still in the queue.")
