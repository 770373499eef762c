from .dealer import next_dealer, rotate_after_match, should_rotate, successor
from .errors import DomainValidationError, InvariantViolation, StateError, XiDachError
from .ledger import edit_match, insert_match, recompute_ledger, undo_last_match, with_balances
from .lifecycle import Action, ensure_allowed, is_allowed
from .models import (
    Match,
    Outcome,
    Player,
    PlayerResult,
    RawMatch,
    RawPlayerResult,
    Session,
    SessionStatus,
    Settings,
    Settlement,
)
from .scoring import ScoredMatch, SpecialHand, score_match, sweep_results
from .session import (
    SessionEvent,
    SessionSummary,
    add_player,
    choose_dealer,
    create_session,
    override_dealer,
    player_leave,
    remove_player,
    session_summary,
    settlement_for,
    transition,
    update_player,
    update_settings,
)
from .settlement import check_plan, plan_settlement

__all__ = [
    "Action",
    "DomainValidationError",
    "InvariantViolation",
    "Match",
    "Outcome",
    "Player",
    "PlayerResult",
    "RawMatch",
    "RawPlayerResult",
    "ScoredMatch",
    "Session",
    "SessionEvent",
    "SessionStatus",
    "SessionSummary",
    "Settings",
    "Settlement",
    "SpecialHand",
    "StateError",
    "XiDachError",
    "add_player",
    "check_plan",
    "choose_dealer",
    "create_session",
    "edit_match",
    "ensure_allowed",
    "insert_match",
    "is_allowed",
    "next_dealer",
    "override_dealer",
    "plan_settlement",
    "player_leave",
    "recompute_ledger",
    "remove_player",
    "rotate_after_match",
    "score_match",
    "session_summary",
    "settlement_for",
    "should_rotate",
    "successor",
    "sweep_results",
    "transition",
    "undo_last_match",
    "update_player",
    "update_settings",
    "with_balances",
]
