from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter

from relay.rules.types import Side

SessionId = Annotated[
    str,
    Field(min_length=1, max_length=50, validation_alias=AliasChoices("sessionId", "session_id")),
]


class ClientMessageType(StrEnum):
    JOIN_QUEUE = "join_queue"
    CANCEL_QUEUE = "cancel_queue"
    MAKE_MOVE = "make_move"
    LEAVE_GAME = "leave_game"
    RECONNECT = "reconnect"


class ServerMessageType(StrEnum):
    INFO = "info"
    ERROR = "error"
    QUEUE_STATUS = "queue_status"
    GAME_START = "game_start"
    BOARD_UPDATE = "board_update"
    GAME_END = "game_end"


class ErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    UNKNOWN_COMMAND = "unknown_command"
    NOT_IMPLEMENTED = "not_implemented"
    RATE_LIMITED = "rate_limited"
    ALREADY_QUEUED_OR_IN_GAME = "already_queued_or_in_game"
    NOT_QUEUED = "not_queued"
    SESSION_NOT_FOUND = "session_not_found"
    NOT_A_PARTICIPANT = "not_a_participant"
    WRONG_TURN = "wrong_turn"
    ILLEGAL_ACTION = "illegal_action"
    ACTION_FAILED = "action_failed"


class UnknownMessageTypeError(ValueError):
    """The message decoded fine but its type is not one the server handles."""

    def __init__(self, message_type: object) -> None:
        self.message_type = message_type
        super().__init__(f"unknown message type: {message_type!r}")


# --- inbound ---


class JoinQueueMessage(BaseModel):
    type: Literal[ClientMessageType.JOIN_QUEUE] = ClientMessageType.JOIN_QUEUE


class CancelQueueMessage(BaseModel):
    type: Literal[ClientMessageType.CANCEL_QUEUE] = ClientMessageType.CANCEL_QUEUE


class MoveAction(BaseModel):
    """Structured move: {"from": "e7", "to": "e8", "promotion": "q"}."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    from_square: str = Field(alias="from", min_length=1, max_length=8)
    to_square: str = Field(alias="to", min_length=1, max_length=8)
    promotion: str | None = Field(default=None, min_length=1, max_length=1)

    def to_engine_action(self) -> dict[str, str]:
        return self.model_dump(by_alias=True, exclude_none=True)


class MakeMoveMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal[ClientMessageType.MAKE_MOVE] = ClientMessageType.MAKE_MOVE
    session_id: SessionId
    action: Annotated[str, Field(min_length=1, max_length=16)] | MoveAction = Field(
        validation_alias=AliasChoices("action", "move"),
    )

    def engine_action(self) -> str | dict[str, str]:
        if isinstance(self.action, MoveAction):
            return self.action.to_engine_action()
        return self.action


class LeaveGameMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal[ClientMessageType.LEAVE_GAME] = ClientMessageType.LEAVE_GAME
    session_id: SessionId


class ReconnectMessage(BaseModel):
    type: Literal[ClientMessageType.RECONNECT] = ClientMessageType.RECONNECT


ClientMessage = Annotated[
    JoinQueueMessage | CancelQueueMessage | MakeMoveMessage | LeaveGameMessage | ReconnectMessage,
    Field(discriminator="type"),
]

_client_adapter = TypeAdapter(ClientMessage)
_CLIENT_MESSAGE_TYPES = frozenset(ClientMessageType)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Parse a raw dict into a typed ClientMessage.

    Raises UnknownMessageTypeError for a missing or unrecognized type, and
    pydantic.ValidationError when a known type carries invalid fields.
    """
    message_type = data.get("type")
    if not isinstance(message_type, str) or message_type not in _CLIENT_MESSAGE_TYPES:
        raise UnknownMessageTypeError(message_type)
    return _client_adapter.validate_python(data)


# --- outbound ---


class InfoMessage(BaseModel):
    type: Literal[ServerMessageType.INFO] = ServerMessageType.INFO
    message: str


class ErrorMessage(BaseModel):
    type: Literal[ServerMessageType.ERROR] = ServerMessageType.ERROR
    code: ErrorCode
    message: str


class QueueStatusMessage(BaseModel):
    type: Literal[ServerMessageType.QUEUE_STATUS] = ServerMessageType.QUEUE_STATUS
    players_in_queue: int
    message: str


class GameStartMessage(BaseModel):
    type: Literal[ServerMessageType.GAME_START] = ServerMessageType.GAME_START
    session_id: str
    side: Side
    side_name: str
    position: str
    players: list[str]  # tokens, first side then second side
    message: str


class BoardUpdateMessage(BaseModel):
    type: Literal[ServerMessageType.BOARD_UPDATE] = ServerMessageType.BOARD_UPDATE
    position: str
    message: str


class GameEndMessage(BaseModel):
    type: Literal[ServerMessageType.GAME_END] = ServerMessageType.GAME_END
    message: str
    position: str | None = None
