import os
from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

os.environ.setdefault("XIDACH_DATABASE_URL", "sqlite://")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from xidach.domain import Session, SessionEvent, Settings, add_player, create_session, transition
from xidach.service import XiDachService
from xidach.storage.database import Base
from xidach.storage.repository import SessionRepository

NOW = datetime(2025, 1, 28, 20, 0, tzinfo=timezone.utc)


@dataclass
class Table:
    session: Session
    ids: dict[str, str]

    def score(self, name: str) -> int:
        return self.session.player(self.ids[name]).current_score


@pytest.fixture
def make_table():
    """Session with the given players; started unless ``start=False`` (first player deals)."""

    def _make(names=("A", "B", "C"), settings: Settings | None = None, start: bool = True, base_scores=None) -> Table:
        session = create_session("Bàn test", settings, now=NOW)
        for name in names:
            session = add_player(session, name, (base_scores or {}).get(name, 0), now=NOW)
        if start:
            session = transition(session, SessionEvent.START, now=NOW)
        return Table(session=session, ids={player.name: player.id for player in session.players})

    return _make


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def service(session_factory) -> XiDachService:
    return XiDachService(SessionRepository(session_factory))
