"""Session lifecycle: setup, play, pause and end, plus roster management."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any

from .dealer import successor
from .errors import DomainValidationError
from .ledger import recompute_ledger, with_balances
from .lifecycle import Action, ensure_allowed
from .models import (
    DEFAULT_SESSION_NAME,
    Player,
    Session,
    SessionStatus,
    Settings,
    Settlement,
    new_id,
    normalize_name,
    utcnow,
)
from .settlement import check_plan, plan_settlement

MIN_ACTIVE_PLAYERS = 2


class SessionEvent(str, Enum):
    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    END = "end"


def create_session(
    name: str,
    settings: Settings | None = None,
    now: datetime | None = None,
) -> Session:
    now = now or utcnow()
    return Session(
        id=new_id(),
        name=name.strip() or DEFAULT_SESSION_NAME,
        settings=settings or Settings(),
        created_at=now,
        updated_at=now,
    )


def transition(session: Session, event: SessionEvent | str, now: datetime | None = None) -> Session:
    event = SessionEvent(event)
    now = now or utcnow()

    if event is SessionEvent.START:
        ensure_allowed(session, Action.START)
        active = session.active_ids
        if len(active) < MIN_ACTIVE_PLAYERS:
            raise DomainValidationError(f"at least {MIN_ACTIVE_PLAYERS} active players required")
        dealer_id = session.current_dealer_id if session.current_dealer_id in active else active[0]
        return replace(
            session,
            status=SessionStatus.PLAYING,
            rotation_order=tuple(player.id for player in session.players),
            current_dealer_id=dealer_id,
            updated_at=now,
        )

    if event is SessionEvent.PAUSE:
        ensure_allowed(session, Action.PAUSE)
        return replace(session, status=SessionStatus.PAUSED, updated_at=now)

    if event is SessionEvent.RESUME:
        ensure_allowed(session, Action.RESUME)
        return replace(session, status=SessionStatus.PLAYING, updated_at=now)

    ensure_allowed(session, Action.END)
    final = with_balances(session, recompute_ledger(session))
    balances = final.balances()
    settlements = plan_settlement(balances)
    check_plan(balances, settlements)
    return replace(
        final,
        status=SessionStatus.ENDED,
        settlements=tuple(settlements),
        updated_at=now,
    )


def settlement_for(session: Session) -> list[Settlement]:
    """Settlement export: the frozen plan once ended, otherwise a preview."""
    ensure_allowed(session, Action.EXPORT_SETTLEMENT)
    if session.status is SessionStatus.ENDED:
        return list(session.settlements)
    return plan_settlement(with_balances(session, recompute_ledger(session)).balances())


def add_player(session: Session, name: str, base_score: int = 0, now: datetime | None = None) -> Session:
    ensure_allowed(session, Action.ADD_PLAYER)
    now = now or utcnow()
    name = normalize_name(name)
    _ensure_unique_name(session, name)
    if not isinstance(base_score, int) or isinstance(base_score, bool):
        raise DomainValidationError("base_score must be an integer")

    player = Player(id=new_id(), name=name, base_score=base_score, current_score=base_score, created_at=now)
    return replace(session, players=session.players + (player,), updated_at=now)


def remove_player(session: Session, player_id: str, now: datetime | None = None) -> Session:
    ensure_allowed(session, Action.REMOVE_PLAYER)
    session.player(player_id)
    dealer_id = None if session.current_dealer_id == player_id else session.current_dealer_id
    return replace(
        session,
        players=tuple(player for player in session.players if player.id != player_id),
        current_dealer_id=dealer_id,
        updated_at=now or utcnow(),
    )


def update_player(
    session: Session,
    player_id: str,
    *,
    name: str | None = None,
    base_score: int | None = None,
    now: datetime | None = None,
) -> Session:
    player = session.player(player_id)
    changes: dict[str, Any] = {}
    if name is not None:
        ensure_allowed(session, Action.RENAME_PLAYER)
        name = normalize_name(name)
        if name != player.name:
            _ensure_unique_name(session, name)
        changes["name"] = name
    if base_score is not None:
        ensure_allowed(session, Action.SET_BASE_SCORE)
        if not isinstance(base_score, int) or isinstance(base_score, bool):
            raise DomainValidationError("base_score must be an integer")
        changes["base_score"] = base_score
    if not changes:
        return session

    players = tuple(replace(item, **changes) if item.id == player_id else item for item in session.players)
    updated = replace(session, players=players, updated_at=now or utcnow())
    if "base_score" in changes:
        updated = with_balances(updated, recompute_ledger(updated))
    return updated


def update_settings(session: Session, now: datetime | None = None, **changes: Any) -> Session:
    ensure_allowed(session, Action.UPDATE_SETTINGS)
    try:
        settings = replace(session.settings, **changes)
    except TypeError as exc:
        raise DomainValidationError(str(exc)) from exc
    return replace(session, settings=settings, updated_at=now or utcnow())


def choose_dealer(session: Session, player_id: str, now: datetime | None = None) -> Session:
    """Pick the opening dealer before the session starts."""
    ensure_allowed(session, Action.CHOOSE_DEALER)
    _ensure_active(session, player_id)
    return replace(session, current_dealer_id=player_id, updated_at=now or utcnow())


def override_dealer(session: Session, player_id: str, now: datetime | None = None) -> Session:
    """Hand the dealer role to ``player_id``; later rotation continues from them."""
    ensure_allowed(session, Action.OVERRIDE_DEALER)
    _ensure_active(session, player_id)
    return replace(session, current_dealer_id=player_id, updated_at=now or utcnow())


def player_leave(session: Session, player_id: str, now: datetime | None = None) -> Session:
    """Mark a player as gone mid-session; their past results stay in the ledger."""
    ensure_allowed(session, Action.PLAYER_LEAVE)
    _ensure_active(session, player_id)
    if len(session.active_ids) <= MIN_ACTIVE_PLAYERS:
        raise DomainValidationError(f"at least {MIN_ACTIVE_PLAYERS} active players must remain")

    players = tuple(replace(item, is_active=False) if item.id == player_id else item for item in session.players)
    updated = replace(session, players=players, updated_at=now or utcnow())
    if session.current_dealer_id == player_id:
        updated = replace(updated, current_dealer_id=successor(updated, player_id))
    return updated


@dataclass(frozen=True)
class Ranking:
    rank: int
    player_id: str
    name: str
    net_score: int
    current_score: int


@dataclass(frozen=True)
class SessionSummary:
    session_id: str
    name: str
    status: SessionStatus
    match_count: int
    duration_seconds: int
    rankings: tuple[Ranking, ...]
    settlements: tuple[Settlement, ...]


def session_summary(session: Session) -> SessionSummary:
    ensure_allowed(session, Action.READ)
    ranked = sorted(session.active_players, key=lambda player: player.net_score, reverse=True)
    return SessionSummary(
        session_id=session.id,
        name=session.name,
        status=session.status,
        match_count=len(session.matches),
        duration_seconds=max(int((session.updated_at - session.created_at).total_seconds()), 0),
        rankings=tuple(
            Ranking(
                rank=idx,
                player_id=player.id,
                name=player.name,
                net_score=player.net_score,
                current_score=player.current_score,
            )
            for idx, player in enumerate(ranked, start=1)
        ),
        settlements=tuple(settlement_for(session)),
    )


def _ensure_active(session: Session, player_id: str) -> None:
    if not session.player(player_id).is_active:
        raise DomainValidationError(f"player has left the session: {player_id}")


def _ensure_unique_name(session: Session, name: str) -> None:
    if any(player.name == name for player in session.players):
        raise DomainValidationError(f"player name already taken: {name}")
