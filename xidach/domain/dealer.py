from __future__ import annotations

from .errors import DomainValidationError
from .models import Session


def rotation_cycle(session: Session) -> tuple[str, ...]:
    """Fixed seating order used for rotation; falls back to roster order before start."""
    if session.rotation_order:
        return session.rotation_order
    return tuple(player.id for player in session.players)


def successor(session: Session, player_id: str | None) -> str:
    """Next active player after ``player_id`` in the fixed cyclic order.

    Departed players are skipped but keep their seat, so everyone else's
    relative order never changes.
    """
    cycle = rotation_cycle(session)
    active = set(session.active_ids)
    seated = [candidate for candidate in cycle if candidate in active]
    if not seated:
        raise DomainValidationError("no active players to deal")

    if player_id not in cycle:
        return seated[0]

    start = cycle.index(player_id)
    for step in range(1, len(cycle) + 1):
        candidate = cycle[(start + step) % len(cycle)]
        if candidate in active:
            return candidate
    return player_id


def should_rotate(session: Session) -> bool:
    settings = session.settings
    if not settings.auto_rotate_dealer:
        return False
    last = session.last_match_number
    return last > 0 and last % settings.auto_rotate_after == 0


def next_dealer(session: Session) -> str:
    """Dealer of the upcoming match.

    Rotation has already been applied by the time a match is stored, so this
    only has to step past a dealer who is unset or has left the table.
    """
    current = session.current_dealer_id
    if current is None or current not in session.active_ids:
        return successor(session, current)
    return current


def rotate_after_match(session: Session) -> str:
    """Dealer once the session's latest match has been recorded."""
    if should_rotate(session):
        return successor(session, session.current_dealer_id)
    return next_dealer(session)
