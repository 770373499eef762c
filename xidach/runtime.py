from __future__ import annotations

from xidach.service import XiDachService
from xidach.storage.database import Base, SessionLocal, engine
from xidach.storage.repository import SessionRepository

Base.metadata.create_all(bind=engine)

repo = SessionRepository(SessionLocal)
service = XiDachService(repo)


def get_service() -> XiDachService:
    return service
