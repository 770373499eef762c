"""Turns raw hand results into signed score changes for a single match."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from .errors import DomainValidationError
from .models import Outcome, PlayerResult, RawPlayerResult, Settings, _is_count


@dataclass(frozen=True)
class ScoredMatch:
    results: tuple[PlayerResult, ...]
    dealer_delta: int


class SpecialHand(str, Enum):
    XI_BAN = "xi_ban"
    NGU_LINH = "ngu_linh"


def stake(result: RawPlayerResult | PlayerResult, settings: Settings) -> int:
    """Points at stake before the win/lose sign: tụ value doubled per special hand."""
    base = result.tu_count * settings.points_per_tu
    return base * 2**result.xi_ban_count * 2**result.ngu_linh_count


def penalty_shares(amount: int, recipients: Iterable[str]) -> dict[str, int]:
    ordered = sorted(recipients)
    share, remainder = divmod(amount, len(ordered))
    return {
        recipient: share + (remainder if idx == 0 else 0)
        for idx, recipient in enumerate(ordered)
    }


def score_match(
    dealer_id: str,
    results: Sequence[RawPlayerResult],
    settings: Settings,
    roster: Iterable[str],
) -> ScoredMatch:
    """Score one match against the dealer.

    ``roster`` holds the players taking part (dealer included). Every roster
    player other than the dealer must have exactly one result.
    """
    eligible = list(dict.fromkeys(roster))
    if dealer_id not in eligible:
        raise DomainValidationError(f"dealer is not an active player: {dealer_id}")

    seen: set[str] = set()
    for raw in results:
        _validate_result(raw, dealer_id, eligible)
        if raw.player_id in seen:
            raise DomainValidationError(f"duplicate result for player: {raw.player_id}")
        seen.add(raw.player_id)

    missing = [player_id for player_id in eligible if player_id != dealer_id and player_id not in seen]
    if missing:
        raise DomainValidationError(f"missing results for players: {', '.join(missing)}")

    changes = {raw.player_id: 0 for raw in results}
    for raw in results:
        outcome = Outcome(raw.outcome)
        sign = 1 if outcome is Outcome.WIN else -1
        changes[raw.player_id] += sign * stake(raw, settings)

        if raw.penalty28:
            base = raw.tu_count * settings.points_per_tu
            amount = settings.penalty28_amount if settings.penalty28_enabled else base
            changes[raw.player_id] -= amount
            for recipient, share in penalty_shares(amount, raw.penalty28_recipients).items():
                # the dealer's share is carried by the derived dealer delta
                if recipient in changes:
                    changes[recipient] += share

    scored = tuple(
        PlayerResult(
            player_id=raw.player_id,
            tu_count=raw.tu_count,
            outcome=Outcome(raw.outcome),
            xi_ban_count=raw.xi_ban_count,
            ngu_linh_count=raw.ngu_linh_count,
            penalty28=raw.penalty28,
            penalty28_recipients=frozenset(raw.penalty28_recipients) if raw.penalty28 else frozenset(),
            score_change=changes[raw.player_id],
        )
        for raw in results
    )
    return ScoredMatch(results=scored, dealer_delta=-sum(result.score_change for result in scored))


def _validate_result(raw: RawPlayerResult, dealer_id: str, eligible: list[str]) -> None:
    if raw.player_id == dealer_id:
        raise DomainValidationError("dealer cannot have a player result")
    if raw.player_id not in eligible:
        raise DomainValidationError(f"unknown or inactive player: {raw.player_id}")
    if not _is_count(raw.tu_count):
        raise DomainValidationError(f"tu_count must be a non-negative integer for {raw.player_id}")
    if not _is_count(raw.xi_ban_count) or not _is_count(raw.ngu_linh_count):
        raise DomainValidationError(f"special hand counts must be non-negative integers for {raw.player_id}")
    try:
        Outcome(raw.outcome)
    except ValueError:
        raise DomainValidationError(f"unknown outcome {raw.outcome!r} for {raw.player_id}") from None

    recipients = list(raw.penalty28_recipients)
    if len(set(recipients)) != len(recipients):
        raise DomainValidationError(f"penalty recipients must be unique for {raw.player_id}")
    for recipient in recipients:
        if recipient == raw.player_id:
            raise DomainValidationError(f"{raw.player_id} cannot receive their own penalty")
        if recipient not in eligible:
            raise DomainValidationError(f"penalty recipient is not an active player: {recipient}")
    if raw.penalty28 and not recipients:
        raise DomainValidationError(f"penalty28 needs at least one recipient for {raw.player_id}")


def sweep_results(
    dealer_tu_count: int,
    hand: SpecialHand | str,
    losers: Iterable[str],
) -> list[RawPlayerResult]:
    """Raw results for players who automatically lose to a dealer's special hand.

    The dealer's hand doubles the stake once, so each loser pays
    ``dealer_tu_count * points_per_tu * 2``.
    """
    if not _is_count(dealer_tu_count) or dealer_tu_count == 0:
        raise DomainValidationError("dealer tu_count must be at least 1")
    try:
        hand = SpecialHand(hand)
    except ValueError:
        raise DomainValidationError(f"unknown dealer hand: {hand!r}") from None

    targets = list(dict.fromkeys(losers))
    if not targets:
        raise DomainValidationError("dealer sweep needs at least one target")

    return [
        RawPlayerResult(
            player_id=player_id,
            tu_count=dealer_tu_count,
            outcome=Outcome.LOSE,
            xi_ban_count=1 if hand is SpecialHand.XI_BAN else 0,
            ngu_linh_count=1 if hand is SpecialHand.NGU_LINH else 0,
        )
        for player_id in targets
    ]
