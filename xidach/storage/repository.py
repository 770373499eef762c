from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session as DbSession, sessionmaker

from xidach.domain import Session
from xidach.storage.envelope import (
    STORAGE_VERSION,
    SessionRecord,
    dump_envelope,
    load_envelope,
    record_to_session,
    session_to_record,
)
from xidach.storage.models import SessionRow

logger = logging.getLogger(__name__)


class SessionRepository:
    def __init__(self, session_factory: sessionmaker[DbSession]) -> None:
        self._session_factory = session_factory

    def save(self, session: Session) -> None:
        payload = session_to_record(session).model_dump(mode="json", by_alias=True)
        with self._session_factory() as db:
            row = db.get(SessionRow, session.id)
            if row is None:
                row = SessionRow(id=session.id, created_at=session.created_at)
                db.add(row)
            row.name = session.name
            row.status = session.status.value
            row.version = STORAGE_VERSION
            row.payload = payload
            row.updated_at = session.updated_at
            db.commit()

    def get(self, session_id: str) -> Session | None:
        with self._session_factory() as db:
            row = db.get(SessionRow, session_id)
            if row is None:
                return None
            return record_to_session(SessionRecord.model_validate(row.payload))

    def list_sessions(self) -> list[Session]:
        with self._session_factory() as db:
            rows = db.scalars(select(SessionRow).order_by(SessionRow.created_at, SessionRow.id)).all()
            return [record_to_session(SessionRecord.model_validate(row.payload)) for row in rows]

    def delete(self, session_id: str) -> bool:
        with self._session_factory() as db:
            result = db.execute(delete(SessionRow).where(SessionRow.id == session_id))
            db.commit()
            return bool(result.rowcount)

    def export_envelope(self) -> dict[str, Any]:
        return dump_envelope(self.list_sessions())

    def import_envelope(self, data: dict[str, Any] | str | bytes) -> int:
        sessions = load_envelope(data)
        for session in sessions:
            self.save(session)
        logger.info("imported %d sessions", len(sessions))
        return len(sessions)
