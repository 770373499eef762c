"""Which operations each session status permits."""

from __future__ import annotations

from enum import Enum

from .errors import StateError
from .models import Session, SessionStatus


class Action(str, Enum):
    ADD_PLAYER = "add_player"
    REMOVE_PLAYER = "remove_player"
    UPDATE_SETTINGS = "update_settings"
    SET_BASE_SCORE = "set_base_score"
    CHOOSE_DEALER = "choose_dealer"
    RENAME_PLAYER = "rename_player"
    START = "start"
    INSERT_MATCH = "insert_match"
    EDIT_MATCH = "edit_match"
    UNDO_LAST_MATCH = "undo_last_match"
    OVERRIDE_DEALER = "override_dealer"
    PLAYER_LEAVE = "player_leave"
    PAUSE = "pause"
    RESUME = "resume"
    END = "end"
    READ = "read"
    EXPORT_SETTLEMENT = "export_settlement"


_SETUP = frozenset({SessionStatus.SETUP})
_PLAYING = frozenset({SessionStatus.PLAYING})
_IN_PROGRESS = frozenset({SessionStatus.PLAYING, SessionStatus.PAUSED})
_ANY = frozenset(SessionStatus)

ALLOWED: dict[Action, frozenset[SessionStatus]] = {
    Action.ADD_PLAYER: _SETUP,
    Action.REMOVE_PLAYER: _SETUP,
    Action.UPDATE_SETTINGS: _SETUP,
    Action.SET_BASE_SCORE: _SETUP,
    Action.CHOOSE_DEALER: _SETUP,
    Action.RENAME_PLAYER: _SETUP | _IN_PROGRESS,
    Action.START: _SETUP,
    Action.INSERT_MATCH: _PLAYING,
    Action.OVERRIDE_DEALER: _PLAYING,
    Action.PAUSE: _PLAYING,
    Action.EDIT_MATCH: _IN_PROGRESS,
    Action.UNDO_LAST_MATCH: _IN_PROGRESS,
    Action.PLAYER_LEAVE: _IN_PROGRESS,
    Action.RESUME: frozenset({SessionStatus.PAUSED}),
    Action.END: _IN_PROGRESS,
    Action.READ: _ANY,
    Action.EXPORT_SETTLEMENT: _ANY,
}


def is_allowed(session: Session, action: Action) -> bool:
    return session.status in ALLOWED[action]


def ensure_allowed(session: Session, action: Action) -> None:
    if not is_allowed(session, action):
        raise StateError(action.value, session.status.value)
