"""
Standard chess rules backed by python-chess.

FIRST plays White, SECOND plays Black. Positions carry the UCI move history
so repetition draws can be detected from an otherwise stateless engine.

Draws are reported by kind instead of as one generic draw: the fifty-move
rule is FORCED_DRAW ("It's a Draw!"), and stalemate, threefold repetition and
insufficient material each keep their own kind and message.
"""

import contextlib
from collections.abc import Callable
from typing import Any

import chess

from relay.rules.engine import RulesEngine
from relay.rules.exceptions import IllegalActionError
from relay.rules.types import (
    NOT_TERMINAL,
    TERMINAL_PRECEDENCE,
    MoveResult,
    Position,
    Side,
    TerminalKind,
    TerminalStatus,
)

_SIDE_BY_COLOR = {chess.WHITE: Side.FIRST, chess.BLACK: Side.SECOND}
_SIDE_NAMES = {Side.FIRST: "White", Side.SECOND: "Black"}

# Threefold repetition is claimable, not automatic; the relay ends the game on it.
_REPETITION_COUNT = 3

_DRAWS: dict[TerminalKind, tuple[Callable[[chess.Board], bool], str]] = {
    TerminalKind.FORCED_DRAW: (chess.Board.is_fifty_moves, "It's a Draw!"),
    TerminalKind.STALEMATE_DRAW: (chess.Board.is_stalemate, "Stalemate! It's a Draw!"),
    TerminalKind.REPETITION_DRAW: (
        lambda board: board.is_repetition(_REPETITION_COUNT),
        "Draw by Threefold Repetition!",
    ),
    TerminalKind.INSUFFICIENT_RESOURCES_DRAW: (chess.Board.is_insufficient_material, "Draw by Insufficient Material!"),
}


class ChessRulesEngine(RulesEngine):
    def initial_position(self) -> Position:
        return Position(snapshot=chess.STARTING_FEN, origin=chess.STARTING_FEN)

    def side_to_move(self, position: Position) -> Side:
        board = chess.Board(position.snapshot)
        return _SIDE_BY_COLOR[board.turn]

    def side_name(self, side: Side) -> str:
        return _SIDE_NAMES[side]

    def apply(self, position: Position, action: str | dict[str, Any]) -> MoveResult:
        board = self._board(position)
        move = self._parse_move(board, action)
        if not board.is_legal(move):
            raise IllegalActionError(action, "not a legal move in this position")

        mover = _SIDE_BY_COLOR[board.turn]
        board.push(move)
        description = (
            f"{_SIDE_NAMES[mover]} moved "
            f"{chess.square_name(move.from_square)}{chess.square_name(move.to_square)}"
        )
        new_position = Position(
            snapshot=board.fen(),
            origin=position.origin,
            history=(*position.history, move.uci()),
        )
        return MoveResult(position=new_position, description=description)

    def terminal_status(self, position: Position) -> TerminalStatus:
        board = self._board(position)

        for kind in TERMINAL_PRECEDENCE:
            if kind is TerminalKind.DECISIVE_WIN:
                if board.is_checkmate():
                    winner = _SIDE_BY_COLOR[not board.turn]
                    return TerminalStatus(
                        kind=kind,
                        winner=winner,
                        description=f"Checkmate! {_SIDE_NAMES[winner]} wins!",
                    )
                continue
            check, description = _DRAWS[kind]
            if check(board):
                return TerminalStatus(kind=kind, description=description)
        return NOT_TERMINAL

    @staticmethod
    def _board(position: Position) -> chess.Board:
        """Rebuild the board by replaying the history from the origin."""
        board = chess.Board(position.origin)
        for uci in position.history:
            board.push(chess.Move.from_uci(uci))
        return board

    @staticmethod
    def _parse_move(board: chess.Board, action: str | dict[str, Any]) -> chess.Move:
        """Accept UCI ("e2e4"), SAN ("Nf3") or {"from", "to", "promotion"} objects."""
        if isinstance(action, dict):
            source = action.get("from")
            target = action.get("to")
            promotion = action.get("promotion") or ""
            if not isinstance(source, str) or not isinstance(target, str) or not isinstance(promotion, str):
                raise IllegalActionError(action, "expected string 'from', 'to' and optional 'promotion'")
            try:
                return chess.Move.from_uci(f"{source}{target}{promotion}".lower())
            except ValueError as e:
                raise IllegalActionError(action, str(e)) from e

        if not isinstance(action, str) or not action:
            raise IllegalActionError(action, "expected a move string or object")

        with contextlib.suppress(ValueError):
            return board.parse_uci(action)
        try:
            return board.parse_san(action)
        except ValueError as e:
            raise IllegalActionError(action, str(e)) from e
