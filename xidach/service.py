from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from xidach import domain
from xidach.domain import (
    InvariantViolation,
    RawMatch,
    ScoredMatch,
    Session,
    SessionEvent,
    SessionStatus,
    SessionSummary,
    Settings,
    Settlement,
    XiDachError,
)
from xidach.storage.repository import SessionRepository

logger = logging.getLogger(__name__)


class SessionNotFoundError(XiDachError, LookupError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id


class XiDachService:
    """Loads a session, applies one engine operation and stores the result.

    Operations either store a complete new session value or raise, so a
    failed call never leaves a half-applied change behind.
    """

    def __init__(self, repo: SessionRepository) -> None:
        self.repo = repo

    def create_session(self, name: str, settings: dict[str, Any] | None = None) -> Session:
        session = domain.create_session(name, Settings(**(settings or {})))
        self.repo.save(session)
        logger.info("created session %s (%s)", session.id, session.name)
        return session

    def get_session(self, session_id: str) -> Session:
        session = self.repo.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def list_sessions(self) -> list[Session]:
        return self.repo.list_sessions()

    def delete_session(self, session_id: str) -> None:
        if not self.repo.delete(session_id):
            raise SessionNotFoundError(session_id)
        logger.info("deleted session %s", session_id)

    def add_player(self, session_id: str, name: str, base_score: int = 0) -> Session:
        return self._apply(session_id, lambda s: domain.add_player(s, name, base_score))

    def remove_player(self, session_id: str, player_id: str) -> Session:
        return self._apply(session_id, lambda s: domain.remove_player(s, player_id))

    def update_player(
        self,
        session_id: str,
        player_id: str,
        name: str | None = None,
        base_score: int | None = None,
    ) -> Session:
        return self._apply(session_id, lambda s: domain.update_player(s, player_id, name=name, base_score=base_score))

    def update_settings(self, session_id: str, changes: dict[str, Any]) -> Session:
        return self._apply(session_id, lambda s: domain.update_settings(s, **changes))

    def choose_dealer(self, session_id: str, player_id: str) -> Session:
        return self._apply(session_id, lambda s: domain.choose_dealer(s, player_id))

    def set_dealer(self, session_id: str, player_id: str) -> Session:
        """Opening dealer during setup, manual override once play has started."""
        if self.get_session(session_id).status is SessionStatus.SETUP:
            return self.choose_dealer(session_id, player_id)
        return self.override_dealer(session_id, player_id)

    def override_dealer(self, session_id: str, player_id: str) -> Session:
        session = self._apply(session_id, lambda s: domain.override_dealer(s, player_id))
        logger.info("session %s: dealer set to %s", session_id, player_id)
        return session

    def player_leave(self, session_id: str, player_id: str) -> Session:
        session = self._apply(session_id, lambda s: domain.player_leave(s, player_id))
        logger.info("session %s: player %s left, dealer is %s", session_id, player_id, session.current_dealer_id)
        return session

    def transition(self, session_id: str, event: SessionEvent | str) -> Session:
        try:
            session = self._apply(session_id, lambda s: domain.transition(s, event))
        except InvariantViolation:
            logger.error("session %s: refusing to settle, ledger is inconsistent", session_id, exc_info=True)
            raise
        logger.info("session %s is now %s", session_id, session.status.value)
        return session

    def preview_match(self, session_id: str, raw_match: RawMatch) -> ScoredMatch:
        session = self.get_session(session_id)
        dealer_id = raw_match.dealer_id or session.current_dealer_id
        if dealer_id is None:
            raise domain.DomainValidationError("no dealer selected")
        return domain.score_match(dealer_id, raw_match.results, session.settings, roster=session.active_ids)

    def insert_match(self, session_id: str, raw_match: RawMatch) -> Session:
        session = self._apply(session_id, lambda s: domain.insert_match(s, raw_match))
        match = session.matches[-1]
        logger.info(
            "session %s: match %d recorded, dealer %s delta %d, next dealer %s",
            session_id,
            match.match_number,
            match.dealer_id,
            match.dealer_delta,
            session.current_dealer_id,
        )
        return session

    def edit_match(self, session_id: str, match_id: str, raw_match: RawMatch) -> Session:
        session = self._apply(session_id, lambda s: domain.edit_match(s, match_id, raw_match))
        logger.info("session %s: match %s corrected", session_id, match_id)
        return session

    def undo_last_match(self, session_id: str) -> Session:
        session = self._apply(session_id, domain.undo_last_match)
        logger.info("session %s: last match removed, %d left", session_id, len(session.matches))
        return session

    def next_dealer(self, session_id: str) -> str:
        return domain.next_dealer(self.get_session(session_id))

    def get_settlement(self, session_id: str) -> list[Settlement]:
        return domain.settlement_for(self.get_session(session_id))

    def get_summary(self, session_id: str) -> SessionSummary:
        return domain.session_summary(self.get_session(session_id))

    def export_envelope(self) -> dict[str, Any]:
        return self.repo.export_envelope()

    def import_envelope(self, data: dict[str, Any]) -> int:
        return self.repo.import_envelope(data)

    def _apply(self, session_id: str, operation: Callable[[Session], Session]) -> Session:
        updated = operation(self.get_session(session_id))
        self.repo.save(updated)
        return updated
