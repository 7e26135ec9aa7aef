from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from relay.messaging.types import BoardUpdateMessage, GameEndMessage, InfoMessage
from relay.rules.exceptions import IllegalActionError
from relay.session.broadcast import broadcast_to_connections, send_to
from relay.session.exceptions import (
    ActionFailedError,
    IllegalActionRejectedError,
    NotAParticipantError,
    SessionNotFoundError,
    WrongTurnError,
)

if TYPE_CHECKING:
    from relay.messaging.protocol import ConnectionProtocol
    from relay.rules.engine import RulesEngine
    from relay.rules.types import TerminalStatus
    from relay.session.models import Participant, Session
    from relay.session.session_store import SessionStore

logger = structlog.get_logger()

LEFT_GAME = "You have left the game."


class SessionStateMachine:
    """
    Drives sessions from Active to Terminated.

    A session is Active while it is in the SessionStore; termination removes it.
    Every action is checked here (session, participant, turn) before the rules
    engine sees it, and the engine's verdict is applied and broadcast here.
    Rejections are raised as StateConflictError subclasses for the router to report.
    """

    def __init__(self, session_store: SessionStore, rules_engine: RulesEngine) -> None:
        self._session_store = session_store
        self._rules_engine = rules_engine

    async def attempt_action(
        self,
        session_id: str,
        action: str | dict[str, Any],
        connection: ConnectionProtocol,
    ) -> Session:
        """Validate and apply an action. Returns the session it was applied to.

        Raises SessionNotFoundError, NotAParticipantError, WrongTurnError,
        IllegalActionRejectedError or ActionFailedError; the session position is
        unchanged whenever one of them is raised.
        """
        session = self._session_store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        participant = self._authorize(session, connection)
        with structlog.contextvars.bound_contextvars(session_id=session_id, side=participant.side):
            await self._apply(session, action)
        return session

    async def _apply(self, session: Session, action: str | dict[str, Any]) -> None:
        try:
            result = self._rules_engine.apply(session.position, action)
        except IllegalActionError as e:
            logger.info("illegal action rejected", action=action, reason=e.reason)
            raise IllegalActionRejectedError(e.reason or "invalid move", position=session.position) from e
        except Exception as e:
            logger.exception("rules engine failed while applying action", action=action)
            raise ActionFailedError(position=session.position) from e

        session.position = result.position
        await broadcast_to_connections(
            (p.connection for p in session.participants),
            BoardUpdateMessage(position=session.position.snapshot, message=result.description).model_dump(),
        )
        await self._check_terminal(session)

    def _authorize(self, session: Session, connection: ConnectionProtocol) -> Participant:
        participant = session.participant_for(connection)
        if participant is None:
            raise NotAParticipantError(position=session.position)
        try:
            to_move = self._rules_engine.side_to_move(session.position)
        except Exception as e:
            logger.exception("rules engine failed while reading side to move", session_id=session.session_id)
            raise ActionFailedError(position=session.position) from e
        if to_move is not participant.side:
            raise WrongTurnError(position=session.position)
        return participant

    async def _check_terminal(self, session: Session) -> None:
        try:
            status = self._rules_engine.terminal_status(session.position)
        except Exception:
            logger.exception("rules engine failed while checking terminal status", session_id=session.session_id)
            return
        if status.is_terminal:
            await self._finish(session, status)

    async def _finish(self, session: Session, status: TerminalStatus) -> None:
        logger.info(
            "session ended",
            session_id=session.session_id,
            outcome=status.kind,
            winner=status.winner,
        )
        self._session_store.remove(session.session_id)
        await broadcast_to_connections(
            (p.connection for p in session.participants),
            GameEndMessage(message=status.description, position=session.position.snapshot).model_dump(),
        )

    async def leave(self, session_id: str, connection: ConnectionProtocol) -> None:
        """Leave a session, awarding the win to the opponent by forfeit.

        The leaver is always acknowledged, whether or not the session exists.
        """
        session = self._session_store.get(session_id)
        participant = session.participant_for(connection) if session is not None else None
        if session is not None and participant is not None:
            opponent = session.opponent_of(participant)
            self._session_store.remove(session_id)
            logger.info("player left session", session_id=session_id, token=participant.token)
            await send_to(
                opponent.connection,
                GameEndMessage(
                    message=f"Your opponent ({participant.token}) left the game. You win by abandonment!",
                    position=session.position.snapshot,
                ).model_dump(),
            )
        await send_to(connection, InfoMessage(message=LEFT_GAME).model_dump())

    async def handle_disconnect(self, connection: ConnectionProtocol) -> int:
        """Terminate every session the connection plays in. Returns how many were terminated.

        Sessions are removed before any opponent is notified.
        """
        abandoned: list[tuple[Session, Participant]] = []
        for session in self._session_store.sessions_for(connection):
            participant = session.participant_for(connection)
            if participant is None:
                continue
            self._session_store.remove(session.session_id)
            abandoned.append((session, participant))

        for session, participant in abandoned:
            logger.info("session abandoned by disconnect", session_id=session.session_id, token=participant.token)
            await send_to(
                session.opponent_of(participant).connection,
                GameEndMessage(
                    message=f"Your opponent ({participant.token}) disconnected. You win!",
                    position=session.position.snapshot,
                ).model_dump(),
            )
        return len(abandoned)
