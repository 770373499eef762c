"""Running player balances derived from the match history."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime

from .dealer import rotate_after_match, successor
from .errors import DomainValidationError, InvariantViolation
from .lifecycle import Action, ensure_allowed
from .models import Match, RawMatch, Session, new_id, utcnow
from .scoring import score_match


def recompute_ledger(session: Session) -> dict[str, int]:
    """Replay every match from the base scores.

    Only the current content of each match counts, so the result is the same
    however many times a match was edited before.
    """
    scores = {player.id: player.base_score for player in session.players}
    previous = 0
    for match in sorted(session.matches, key=lambda item: item.match_number):
        if match.match_number <= previous:
            raise InvariantViolation(f"duplicate match number {match.match_number}")
        previous = match.match_number
        _fold(scores, match)
    return scores


def with_balances(session: Session, balances: Mapping[str, int]) -> Session:
    players = tuple(replace(player, current_score=balances[player.id]) for player in session.players)
    return replace(session, players=players)


def insert_match(session: Session, raw_match: RawMatch, now: datetime | None = None) -> Session:
    """Score and append a match, then rotate the dealer if the settings ask for it."""
    ensure_allowed(session, Action.INSERT_MATCH)
    now = now or utcnow()

    dealer_id = raw_match.dealer_id or session.current_dealer_id
    if dealer_id is None:
        raise DomainValidationError("no dealer selected")
    if dealer_id != session.current_dealer_id:
        raise DomainValidationError(f"{dealer_id} is not the current dealer")

    scored = score_match(dealer_id, raw_match.results, session.settings, roster=session.active_ids)
    match = Match(
        id=new_id(),
        match_number=session.last_match_number + 1,
        dealer_id=dealer_id,
        results=scored.results,
        timestamp=now,
    )

    # a new match only adds to the running totals
    scores = {player.id: player.current_score for player in session.players}
    _fold(scores, match)
    updated = with_balances(replace(session, matches=session.matches + (match,), updated_at=now), scores)
    return replace(updated, current_dealer_id=rotate_after_match(updated))


def edit_match(session: Session, match_id: str, raw_match: RawMatch, now: datetime | None = None) -> Session:
    """Replace a recorded match with corrected results and replay the whole ledger.

    The correction is scored against the players who took part in the original
    match, even if some of them have since left the table.
    """
    ensure_allowed(session, Action.EDIT_MATCH)
    now = now or utcnow()

    original = session.match(match_id)
    dealer_id = raw_match.dealer_id or original.dealer_id
    scored = score_match(dealer_id, raw_match.results, session.settings, roster=original.participants)
    corrected = replace(original, dealer_id=dealer_id, results=scored.results, edited_at=now)

    matches = tuple(corrected if match.id == match_id else match for match in session.matches)
    updated = replace(session, matches=matches, updated_at=now)
    return with_balances(updated, recompute_ledger(updated))


def undo_last_match(session: Session, now: datetime | None = None) -> Session:
    """Drop the latest match and hand the deal back to whoever dealt it."""
    ensure_allowed(session, Action.UNDO_LAST_MATCH)
    if not session.matches:
        raise DomainValidationError("there is no match to undo")

    removed = session.matches[-1]
    dealer_id = removed.dealer_id
    if dealer_id not in session.active_ids:
        dealer_id = successor(session, dealer_id)

    updated = replace(session, matches=session.matches[:-1], current_dealer_id=dealer_id, updated_at=now or utcnow())
    return with_balances(updated, recompute_ledger(updated))


def _fold(scores: dict[str, int], match: Match) -> None:
    deltas = match.deltas()
    if sum(deltas.values()) != 0:
        raise InvariantViolation(f"match {match.match_number} is not zero-sum")
    unknown = [player_id for player_id in deltas if player_id not in scores]
    if unknown:
        raise InvariantViolation(f"match {match.match_number} references unknown players: {', '.join(unknown)}")
    for player_id, delta in deltas.items():
        scores[player_id] += delta
