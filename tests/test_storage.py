import json
import logging

import pytest

from xidach.domain import (
    InvariantViolation,
    RawMatch,
    RawPlayerResult,
    SessionEvent,
    Settings,
    edit_match,
    insert_match,
    transition,
)
from xidach.storage.envelope import STORAGE_VERSION, dump_envelope, load_envelope
from xidach.storage.repository import SessionRepository


@pytest.fixture
def played(make_table):
    table = make_table(settings=Settings(points_per_tu=5, penalty28_enabled=True, penalty28_amount=30))
    ids = table.ids
    session = insert_match(
        table.session,
        RawMatch(
            results=(
                RawPlayerResult(ids["B"], 2, "win", xi_ban_count=1),
                RawPlayerResult(ids["C"], 1, "lose", penalty28=True, penalty28_recipients=(ids["A"], ids["B"])),
            )
        ),
    )
    session = edit_match(
        session,
        session.matches[0].id,
        RawMatch(
            results=(
                RawPlayerResult(ids["B"], 3, "win"),
                RawPlayerResult(ids["C"], 1, "lose", penalty28=True, penalty28_recipients=(ids["A"], ids["B"])),
            )
        ),
    )
    return table, session


def test_envelope_keeps_every_field(played) -> None:
    _, session = played

    data = dump_envelope([session])
    restored = load_envelope(json.dumps(data))

    assert data["version"] == STORAGE_VERSION
    assert restored == [session]


def test_envelope_uses_camel_case_names(played) -> None:
    _, session = played

    record = dump_envelope([session])["sessions"][0]

    assert {"currentDealerId", "createdAt", "updatedAt", "rotationOrder"} <= set(record)
    assert set(record["settings"]) == {
        "pointsPerTu",
        "penalty28Enabled",
        "penalty28Amount",
        "autoRotateDealer",
        "autoRotateAfter",
    }
    result = record["matches"][0]["results"][1]
    assert {"playerId", "tuCount", "xiBanCount", "nguLinhCount", "penalty28Recipients", "scoreChange"} <= set(result)
    assert record["matches"][0]["editedAt"] is not None


def test_current_scores_are_replayed_on_load(played) -> None:
    table, session = played
    data = dump_envelope([session])
    for player in data["sessions"][0]["players"]:
        player["currentScore"] = 999

    restored = load_envelope(data)[0]

    assert restored.player(table.ids["B"]).current_score == session.player(table.ids["B"]).current_score


def _legacy_row(data, dealer_score):
    match = data["sessions"][0]["matches"][0]
    match["results"].insert(
        0,
        {
            "playerId": match["dealerId"],
            "tuCount": 0,
            "outcome": "win",
            "xiBanCount": 0,
            "nguLinhCount": 0,
            "penalty28": False,
            "penalty28Recipients": [],
            "scoreChange": dealer_score,
        },
    )


def test_legacy_dealer_row_is_accepted_when_balanced(played) -> None:
    _, session = played
    data = dump_envelope([session])
    _legacy_row(data, session.matches[0].dealer_delta)

    assert load_envelope(data) == [session]


def test_legacy_dealer_row_that_does_not_balance_is_refused(played) -> None:
    _, session = played
    data = dump_envelope([session])
    _legacy_row(data, session.matches[0].dealer_delta + 5)

    with pytest.raises(InvariantViolation, match="does not balance"):
        load_envelope(data)


def test_version_mismatch_is_logged(played, caplog) -> None:
    _, session = played
    data = dump_envelope([session])
    data["version"] = STORAGE_VERSION + 1

    with caplog.at_level(logging.WARNING, logger="xidach.storage.envelope"):
        restored = load_envelope(data)

    assert restored == [session]
    assert "version" in caplog.text


def test_repository_save_get_list_delete(session_factory, played) -> None:
    repo = SessionRepository(session_factory)
    _, session = played

    repo.save(session)
    ended = transition(session, SessionEvent.END)
    repo.save(ended)

    assert repo.get(session.id) == ended
    assert repo.list_sessions() == [ended]
    assert repo.get("missing") is None
    assert repo.delete(session.id) is True
    assert repo.delete(session.id) is False
    assert repo.list_sessions() == []


def test_repository_export_import(session_factory, played, make_table) -> None:
    source = SessionRepository(session_factory)
    _, session = played
    other = make_table(start=False).session
    source.save(session)
    source.save(other)

    exported = source.export_envelope()
    for existing in source.list_sessions():
        source.delete(existing.id)

    assert source.import_envelope(exported) == 2
    assert {item.id for item in source.list_sessions()} == {session.id, other.id}
