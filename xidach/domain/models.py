"""Value types shared by the score engine.

Everything here is immutable: operations build new values with
``dataclasses.replace`` instead of mutating a session in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, Tuple
from uuid import uuid4

from .errors import DomainValidationError

DEFAULT_SESSION_NAME = "Bàn mới"


class Outcome(str, Enum):
    WIN = "win"
    LOSE = "lose"


class SessionStatus(str, Enum):
    SETUP = "setup"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


def new_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_name(name: str) -> str:
    value = name.strip()
    if not value:
        raise DomainValidationError("player name must be non-empty")
    return value


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


@dataclass(frozen=True)
class Settings:
    points_per_tu: int = 10
    penalty28_enabled: bool = False
    penalty28_amount: int = 50
    auto_rotate_dealer: bool = False
    auto_rotate_after: int = 1

    def __post_init__(self) -> None:
        if not _is_count(self.points_per_tu) or self.points_per_tu == 0:
            raise DomainValidationError("points_per_tu must be a positive integer")
        if not _is_count(self.penalty28_amount):
            raise DomainValidationError("penalty28_amount must be a non-negative integer")
        if not _is_count(self.auto_rotate_after) or self.auto_rotate_after == 0:
            raise DomainValidationError("auto_rotate_after must be a positive integer")


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    base_score: int = 0
    current_score: int = 0
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    @property
    def net_score(self) -> int:
        return self.current_score - self.base_score


@dataclass(frozen=True)
class RawPlayerResult:
    """A player's hand result as entered, before scoring."""

    player_id: str
    tu_count: int
    outcome: Outcome | str
    xi_ban_count: int = 0
    ngu_linh_count: int = 0
    penalty28: bool = False
    penalty28_recipients: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PlayerResult:
    player_id: str
    tu_count: int
    outcome: Outcome
    xi_ban_count: int
    ngu_linh_count: int
    penalty28: bool
    penalty28_recipients: FrozenSet[str]
    score_change: int


@dataclass(frozen=True)
class RawMatch:
    """Results entered for one match; ``dealer_id`` defaults to the current dealer."""

    results: Tuple[RawPlayerResult, ...]
    dealer_id: str | None = None


@dataclass(frozen=True)
class Match:
    id: str
    match_number: int
    dealer_id: str
    results: Tuple[PlayerResult, ...]
    timestamp: datetime
    edited_at: datetime | None = None

    @property
    def dealer_delta(self) -> int:
        return -sum(result.score_change for result in self.results)

    @property
    def participants(self) -> Tuple[str, ...]:
        return (self.dealer_id, *(result.player_id for result in self.results))

    def deltas(self) -> dict[str, int]:
        """Per-player score change for this match, dealer included."""
        changes = {result.player_id: result.score_change for result in self.results}
        changes[self.dealer_id] = changes.get(self.dealer_id, 0) + self.dealer_delta
        return changes


@dataclass(frozen=True)
class Settlement:
    from_player_id: str
    to_player_id: str
    amount: int


@dataclass(frozen=True)
class Session:
    id: str
    name: str
    players: Tuple[Player, ...] = ()
    matches: Tuple[Match, ...] = ()
    current_dealer_id: str | None = None
    settings: Settings = field(default_factory=Settings)
    status: SessionStatus = SessionStatus.SETUP
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    rotation_order: Tuple[str, ...] = ()
    settlements: Tuple[Settlement, ...] = ()

    def player(self, player_id: str) -> Player:
        for player in self.players:
            if player.id == player_id:
                return player
        raise DomainValidationError(f"unknown player: {player_id}")

    def has_player(self, player_id: str) -> bool:
        return any(player.id == player_id for player in self.players)

    @property
    def active_players(self) -> Tuple[Player, ...]:
        return tuple(player for player in self.players if player.is_active)

    @property
    def active_ids(self) -> Tuple[str, ...]:
        return tuple(player.id for player in self.players if player.is_active)

    @property
    def last_match_number(self) -> int:
        return self.matches[-1].match_number if self.matches else 0

    def match(self, match_id: str) -> Match:
        for match in self.matches:
            if match.id == match_id:
                return match
        raise DomainValidationError(f"unknown match: {match_id}")

    def balances(self) -> dict[str, int]:
        """Net result per player (current minus base), departed players included."""
        return {player.id: player.net_score for player in self.players}
