"""
Value types exchanged between the session layer and a rules engine.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class Side(StrEnum):
    """Fixed role of a participant within a session. FIRST moves first."""

    FIRST = "first"
    SECOND = "second"

    @property
    def opponent(self) -> Side:
        return Side.SECOND if self is Side.FIRST else Side.FIRST


class TerminalKind(StrEnum):
    NONE = "none"
    DECISIVE_WIN = "decisive_win"
    FORCED_DRAW = "forced_draw"
    STALEMATE_DRAW = "stalemate_draw"
    REPETITION_DRAW = "repetition_draw"
    INSUFFICIENT_RESOURCES_DRAW = "insufficient_resources_draw"


# Order in which terminal conditions are checked; the first match wins.
TERMINAL_PRECEDENCE: tuple[TerminalKind, ...] = (
    TerminalKind.DECISIVE_WIN,
    TerminalKind.FORCED_DRAW,
    TerminalKind.STALEMATE_DRAW,
    TerminalKind.REPETITION_DRAW,
    TerminalKind.INSUFFICIENT_RESOURCES_DRAW,
)


class Position(BaseModel):
    """Authoritative game state at a point in time.

    snapshot is what clients see (FEN for chess). history holds the accepted
    actions in canonical form, replayed from origin when an engine needs more
    than the snapshot (e.g. repetition detection).
    """

    model_config = ConfigDict(frozen=True)

    snapshot: str
    origin: str
    history: tuple[str, ...] = ()


class MoveResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: Position
    description: str


class TerminalStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: TerminalKind = TerminalKind.NONE
    winner: Side | None = None
    description: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.kind is not TerminalKind.NONE


NOT_TERMINAL = TerminalStatus()
