"""Versioned ``{version, sessions}`` envelope used to persist sessions.

Field names are camelCase on the wire to stay compatible with records written
by the browser score tracker.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from xidach.domain import (
    InvariantViolation,
    Match,
    Outcome,
    Player,
    PlayerResult,
    Session,
    SessionStatus,
    Settings,
    Settlement,
    recompute_ledger,
    with_balances,
)

logger = logging.getLogger(__name__)

STORAGE_VERSION = 1


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SettingsRecord(_Record):
    points_per_tu: int = 10
    penalty28_enabled: bool = False
    penalty28_amount: int = 50
    auto_rotate_dealer: bool = False
    auto_rotate_after: int = 1


class PlayerRecord(_Record):
    id: str
    name: str
    base_score: int = 0
    current_score: int = 0
    is_active: bool = True
    created_at: datetime


class PlayerResultRecord(_Record):
    player_id: str
    tu_count: int
    outcome: Outcome
    xi_ban_count: int = 0
    ngu_linh_count: int = 0
    penalty28: bool = False
    penalty28_recipients: list[str] = Field(default_factory=list)
    score_change: int


class MatchRecord(_Record):
    id: str
    match_number: int
    dealer_id: str
    results: list[PlayerResultRecord] = Field(default_factory=list)
    timestamp: datetime
    edited_at: datetime | None = None


class SettlementRecord(_Record):
    from_player_id: str
    to_player_id: str
    amount: int


class SessionRecord(_Record):
    id: str
    name: str
    players: list[PlayerRecord] = Field(default_factory=list)
    matches: list[MatchRecord] = Field(default_factory=list)
    current_dealer_id: str | None = None
    settings: SettingsRecord = Field(default_factory=SettingsRecord)
    status: SessionStatus = SessionStatus.SETUP
    created_at: datetime
    updated_at: datetime
    rotation_order: list[str] = Field(default_factory=list)
    settlements: list[SettlementRecord] = Field(default_factory=list)


class Envelope(_Record):
    version: int = STORAGE_VERSION
    sessions: list[SessionRecord] = Field(default_factory=list)


def session_to_record(session: Session) -> SessionRecord:
    return SessionRecord(
        id=session.id,
        name=session.name,
        players=[
            PlayerRecord(
                id=player.id,
                name=player.name,
                base_score=player.base_score,
                current_score=player.current_score,
                is_active=player.is_active,
                created_at=player.created_at,
            )
            for player in session.players
        ],
        matches=[_match_to_record(match) for match in session.matches],
        current_dealer_id=session.current_dealer_id,
        settings=SettingsRecord(
            points_per_tu=session.settings.points_per_tu,
            penalty28_enabled=session.settings.penalty28_enabled,
            penalty28_amount=session.settings.penalty28_amount,
            auto_rotate_dealer=session.settings.auto_rotate_dealer,
            auto_rotate_after=session.settings.auto_rotate_after,
        ),
        status=session.status,
        created_at=session.created_at,
        updated_at=session.updated_at,
        rotation_order=list(session.rotation_order),
        settlements=[
            SettlementRecord(
                from_player_id=settlement.from_player_id,
                to_player_id=settlement.to_player_id,
                amount=settlement.amount,
            )
            for settlement in session.settlements
        ],
    )


def record_to_session(record: SessionRecord) -> Session:
    """Rebuild a session; current scores are always replayed, never trusted."""
    session = Session(
        id=record.id,
        name=record.name,
        players=tuple(
            Player(
                id=player.id,
                name=player.name,
                base_score=player.base_score,
                current_score=player.current_score,
                is_active=player.is_active,
                created_at=player.created_at,
            )
            for player in record.players
        ),
        matches=tuple(_record_to_match(match) for match in sorted(record.matches, key=lambda m: m.match_number)),
        current_dealer_id=record.current_dealer_id,
        settings=Settings(**record.settings.model_dump()),
        status=record.status,
        created_at=record.created_at,
        updated_at=record.updated_at,
        rotation_order=tuple(record.rotation_order),
        settlements=tuple(
            Settlement(
                from_player_id=item.from_player_id,
                to_player_id=item.to_player_id,
                amount=item.amount,
            )
            for item in record.settlements
        ),
    )
    return with_balances(session, recompute_ledger(session))


def dump_envelope(sessions: list[Session]) -> dict[str, Any]:
    envelope = Envelope(sessions=[session_to_record(session) for session in sessions])
    return envelope.model_dump(mode="json", by_alias=True)


def load_envelope(data: dict[str, Any] | str | bytes) -> list[Session]:
    if isinstance(data, (str, bytes)):
        envelope = Envelope.model_validate_json(data)
    else:
        envelope = Envelope.model_validate(data)

    if envelope.version != STORAGE_VERSION:
        logger.warning("storage envelope version %s differs from %s, loading as-is", envelope.version, STORAGE_VERSION)
    return [record_to_session(record) for record in envelope.sessions]


def _match_to_record(match: Match) -> MatchRecord:
    return MatchRecord(
        id=match.id,
        match_number=match.match_number,
        dealer_id=match.dealer_id,
        results=[
            PlayerResultRecord(
                player_id=result.player_id,
                tu_count=result.tu_count,
                outcome=result.outcome,
                xi_ban_count=result.xi_ban_count,
                ngu_linh_count=result.ngu_linh_count,
                penalty28=result.penalty28,
                penalty28_recipients=sorted(result.penalty28_recipients),
                score_change=result.score_change,
            )
            for result in match.results
        ],
        timestamp=match.timestamp,
        edited_at=match.edited_at,
    )


def _record_to_match(record: MatchRecord) -> Match:
    # older tracker records store the dealer as a result row of its own
    dealer_rows = [result for result in record.results if result.player_id == record.dealer_id]
    player_rows = [result for result in record.results if result.player_id != record.dealer_id]
    if len(dealer_rows) > 1:
        raise InvariantViolation(f"match {record.match_number} has several dealer rows")

    results = tuple(
        PlayerResult(
            player_id=row.player_id,
            tu_count=row.tu_count,
            outcome=row.outcome,
            xi_ban_count=row.xi_ban_count,
            ngu_linh_count=row.ngu_linh_count,
            penalty28=row.penalty28,
            penalty28_recipients=frozenset(row.penalty28_recipients),
            score_change=row.score_change,
        )
        for row in player_rows
    )
    match = Match(
        id=record.id,
        match_number=record.match_number,
        dealer_id=record.dealer_id,
        results=results,
        timestamp=record.timestamp,
        edited_at=record.edited_at,
    )
    if dealer_rows and dealer_rows[0].score_change != match.dealer_delta:
        raise InvariantViolation(
            f"match {record.match_number}: stored dealer score {dealer_rows[0].score_change} "
            f"does not balance player results ({match.dealer_delta})"
        )
    return match
