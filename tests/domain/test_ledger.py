from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from xidach.domain import (
    DomainValidationError,
    InvariantViolation,
    Match,
    PlayerResult,
    RawMatch,
    RawPlayerResult,
    SessionEvent,
    Settings,
    StateError,
    edit_match,
    insert_match,
    player_leave,
    recompute_ledger,
    transition,
    undo_last_match,
)
from xidach.domain.models import Outcome

NOW = datetime(2025, 1, 28, 20, 0, tzinfo=timezone.utc)


def _match(table, **outcomes) -> RawMatch:
    """``B=(2, "win")`` style shorthand keyed by player name."""
    return RawMatch(
        results=tuple(
            RawPlayerResult(table.ids[name], tu_count, outcome) for name, (tu_count, outcome) in outcomes.items()
        )
    )


def _replay(session) -> dict[str, int]:
    scores = {player.id: player.base_score for player in session.players}
    for match in session.matches:
        for player_id, delta in match.deltas().items():
            scores[player_id] += delta
    return scores


def test_insert_adds_match_deltas_to_balances(make_table) -> None:
    table = make_table()

    session = insert_match(table.session, _match(table, B=(2, "win"), C=(1, "lose")), now=NOW)
    table.session = session

    match = session.matches[0]
    assert match.match_number == 1
    assert match.dealer_id == table.ids["A"]
    assert match.timestamp == NOW
    assert match.edited_at is None
    assert table.score("B") == 20
    assert table.score("C") == -10
    assert table.score("A") == -10
    assert sum(player.current_score for player in session.players) == 0


def test_balances_start_from_base_scores(make_table) -> None:
    table = make_table(base_scores={"A": 100, "B": 50})

    table.session = insert_match(table.session, _match(table, B=(1, "lose"), C=(3, "win")))

    assert table.score("A") == 100 - 20
    assert table.score("B") == 50 - 10
    assert table.score("C") == 30
    assert recompute_ledger(table.session) == {player.id: player.current_score for player in table.session.players}


def test_match_numbers_keep_increasing(make_table) -> None:
    table = make_table()
    session = table.session
    for _ in range(3):
        session = insert_match(session, _match(table, B=(1, "win"), C=(1, "win")))

    assert [match.match_number for match in session.matches] == [1, 2, 3]


def test_edit_replaces_only_the_corrected_match(make_table) -> None:
    table = make_table()
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win")), now=NOW)
    session = insert_match(session, _match(table, B=(2, "lose"), C=(1, "win")), now=NOW)
    session = insert_match(session, _match(table, B=(1, "lose"), C=(4, "lose")), now=NOW)
    first, second, third = session.matches
    later = NOW + timedelta(minutes=5)

    edited = edit_match(session, second.id, _match(table, B=(2, "win"), C=(3, "lose")), now=later)

    assert edited.matches[0] == first
    assert edited.matches[2] == third
    corrected = edited.matches[1]
    assert (corrected.id, corrected.match_number, corrected.timestamp) == (second.id, 2, second.timestamp)
    assert corrected.edited_at == later
    assert {player.id: player.current_score for player in edited.players} == _replay(edited)
    assert recompute_ledger(edited) == _replay(edited)


def test_edit_order_does_not_change_balances(make_table) -> None:
    table = make_table()
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win")))
    session = insert_match(session, _match(table, B=(1, "win"), C=(1, "win")))
    m1, m2 = session.matches
    fix1 = _match(table, B=(3, "lose"), C=(0, "win"))
    fix2 = _match(table, B=(1, "win"), C=(2, "lose"))

    one_way = edit_match(edit_match(session, m1.id, fix1), m2.id, fix2)
    other_way = edit_match(edit_match(session, m2.id, fix2), m1.id, fix1)
    twice = edit_match(edit_match(one_way, m1.id, _match(table, B=(9, "win"), C=(9, "win"))), m1.id, fix1)

    balances = {player.id: player.current_score for player in one_way.players}
    assert balances == {player.id: player.current_score for player in other_way.players}
    assert balances == {player.id: player.current_score for player in twice.players}


def test_edit_may_hand_the_match_to_another_participant(make_table) -> None:
    table = make_table()
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win")))
    match_id = session.matches[0].id

    raw = RawMatch(
        dealer_id=table.ids["B"],
        results=(
            RawPlayerResult(table.ids["A"], 1, "lose"),
            RawPlayerResult(table.ids["C"], 1, "lose"),
        ),
    )
    edited = edit_match(session, match_id, raw)

    assert edited.matches[0].dealer_id == table.ids["B"]
    assert edited.player(table.ids["B"]).current_score == 20


def test_failed_insert_leaves_session_untouched(make_table) -> None:
    table = make_table()
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win")))

    with pytest.raises(DomainValidationError):
        insert_match(session, _match(table, B=(-1, "win"), C=(1, "win")))

    assert len(session.matches) == 1
    assert session.player(table.ids["B"]).current_score == 10


def test_failed_edit_leaves_session_untouched(make_table) -> None:
    table = make_table()
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win")))
    before = session.matches[0]

    with pytest.raises(DomainValidationError):
        edit_match(session, before.id, _match(table, B=(1, "tie"), C=(1, "win")))

    assert session.matches[0] == before


def test_insert_requires_the_current_dealer(make_table) -> None:
    table = make_table()
    raw = RawMatch(
        dealer_id=table.ids["B"],
        results=(RawPlayerResult(table.ids["A"], 1, "win"), RawPlayerResult(table.ids["C"], 1, "win")),
    )

    with pytest.raises(DomainValidationError, match="not the current dealer"):
        insert_match(table.session, raw)


def test_insert_only_while_playing(make_table) -> None:
    table = make_table()
    paused = transition(table.session, SessionEvent.PAUSE)

    with pytest.raises(StateError, match="cannot insert_match while session is paused"):
        insert_match(paused, _match(table, B=(1, "win"), C=(1, "win")))


def test_edit_allowed_while_paused_but_not_after_end(make_table) -> None:
    table = make_table()
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win")))
    match_id = session.matches[0].id
    paused = transition(session, SessionEvent.PAUSE)

    edited = edit_match(paused, match_id, _match(table, B=(2, "win"), C=(1, "win")))
    assert edited.player(table.ids["B"]).current_score == 20

    ended = transition(edited, SessionEvent.END)
    with pytest.raises(StateError):
        edit_match(ended, match_id, _match(table, B=(1, "win"), C=(1, "win")))


def test_edit_unknown_match(make_table) -> None:
    table = make_table()

    with pytest.raises(DomainValidationError, match="unknown match"):
        edit_match(table.session, "nope", _match(table, B=(1, "win"), C=(1, "win")))


def test_undo_last_match_rolls_back_balances(make_table) -> None:
    table = make_table()
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win")))
    after_first = {player.id: player.current_score for player in session.players}
    session = insert_match(session, _match(table, B=(3, "lose"), C=(2, "win")))

    undone = undo_last_match(session)

    assert len(undone.matches) == 1
    assert {player.id: player.current_score for player in undone.players} == after_first
    with pytest.raises(DomainValidationError):
        undo_last_match(undo_last_match(undone))


def test_recompute_refuses_matches_for_unknown_players(make_table) -> None:
    table = make_table()
    ghost = Match(
        id="m1",
        match_number=1,
        dealer_id=table.ids["A"],
        results=(PlayerResult("ghost", 1, Outcome.WIN, 0, 0, False, frozenset(), 10),),
        timestamp=NOW,
    )

    with pytest.raises(InvariantViolation, match="unknown players"):
        recompute_ledger(replace(table.session, matches=(ghost,)))


def test_recompute_refuses_duplicate_match_numbers(make_table) -> None:
    table = make_table()
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win")))
    duplicate = replace(session.matches[0], id="copy")

    with pytest.raises(InvariantViolation, match="duplicate match number"):
        recompute_ledger(replace(session, matches=session.matches + (duplicate,)))


def test_undo_gives_the_deal_back_to_the_dealer_of_the_removed_match(make_table) -> None:
    table = make_table(settings=Settings(auto_rotate_dealer=True, auto_rotate_after=1))
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win")))
    assert session.current_dealer_id == table.ids["B"]

    undone = undo_last_match(session)
    assert undone.current_dealer_id == table.ids["A"]

    replayed = insert_match(undone, _match(table, B=(2, "win"), C=(1, "lose")))
    assert replayed.matches[0].dealer_id == table.ids["A"]
    assert replayed.current_dealer_id == table.ids["B"]


def test_undo_skips_a_dealer_who_has_left(make_table) -> None:
    table = make_table(names=("A", "B", "C", "D"), settings=Settings(auto_rotate_dealer=True, auto_rotate_after=1))
    session = insert_match(table.session, _match(table, B=(1, "win"), C=(1, "win"), D=(1, "lose")))
    session = player_leave(session, table.ids["A"])

    undone = undo_last_match(session)

    assert undone.current_dealer_id == table.ids["B"]
    assert undone.matches == ()
