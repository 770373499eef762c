from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from xidach.api.schemas import (
    AddPlayerRequest,
    ERROR_RESPONSES,
    CreateSessionRequest,
    DealerRequest,
    DealerResponse,
    MatchRequest,
    RankingResponse,
    ScoredMatchResponse,
    SettingsUpdateRequest,
    SummaryResponse,
    TransitionRequest,
    UpdatePlayerRequest,
)
from xidach.domain import Match, RawMatch, RawPlayerResult, Session, sweep_results
from xidach.runtime import get_service
from xidach.service import XiDachService
from xidach.storage.envelope import PlayerResultRecord, SessionRecord, SettlementRecord, session_to_record

router = APIRouter(prefix="/sessions", tags=["sessions"], responses=ERROR_RESPONSES)


def _raw_match(payload: MatchRequest, session: Session, editing: Match | None = None) -> RawMatch:
    """Build engine input; a sweep targets every other participant without a result.

    When ``editing`` is given the sweep resolves against that match's dealer and
    table instead of the current one.
    """
    results = [
        RawPlayerResult(
            player_id=item.player_id,
            tu_count=item.tu_count,
            outcome=item.outcome,
            xi_ban_count=item.xi_ban_count,
            ngu_linh_count=item.ngu_linh_count,
            penalty28=item.penalty28,
            penalty28_recipients=tuple(item.penalty28_recipients),
        )
        for item in payload.results
    ]
    if payload.sweep is not None:
        if editing is not None:
            dealer_id = payload.dealer_id or editing.dealer_id
            seated = editing.participants
        else:
            dealer_id = payload.dealer_id or session.current_dealer_id
            seated = session.active_ids
        entered = {item.player_id for item in results}
        targets = payload.sweep.targets or [
            player_id for player_id in seated if player_id != dealer_id and player_id not in entered
        ]
        results.extend(sweep_results(payload.sweep.tu_count, payload.sweep.hand, targets))
    return RawMatch(results=tuple(results), dealer_id=payload.dealer_id)


@router.post(
    "",
    response_model=SessionRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Tạo bàn mới",
)
def create_session(payload: CreateSessionRequest, service: XiDachService = Depends(get_service)) -> SessionRecord:
    settings = payload.settings.model_dump() if payload.settings else None
    return session_to_record(service.create_session(payload.name, settings))


@router.get("", response_model=list[SessionRecord])
def list_sessions(service: XiDachService = Depends(get_service)) -> list[SessionRecord]:
    return [session_to_record(session) for session in service.list_sessions()]


@router.get("/{session_id}", response_model=SessionRecord)
def get_session(session_id: str, service: XiDachService = Depends(get_service)) -> SessionRecord:
    return session_to_record(service.get_session(session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_session(session_id: str, service: XiDachService = Depends(get_service)) -> Response:
    service.delete_session(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{session_id}/settings", response_model=SessionRecord)
def update_settings(
    session_id: str,
    payload: SettingsUpdateRequest,
    service: XiDachService = Depends(get_service),
) -> SessionRecord:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    return session_to_record(service.update_settings(session_id, changes))


@router.post("/{session_id}/players", response_model=SessionRecord, status_code=status.HTTP_201_CREATED)
def add_player(
    session_id: str,
    payload: AddPlayerRequest,
    service: XiDachService = Depends(get_service),
) -> SessionRecord:
    return session_to_record(service.add_player(session_id, payload.name, payload.base_score))


@router.patch("/{session_id}/players/{player_id}", response_model=SessionRecord)
def update_player(
    session_id: str,
    player_id: str,
    payload: UpdatePlayerRequest,
    service: XiDachService = Depends(get_service),
) -> SessionRecord:
    session = service.update_player(session_id, player_id, name=payload.name, base_score=payload.base_score)
    return session_to_record(session)


@router.delete("/{session_id}/players/{player_id}", response_model=SessionRecord)
def remove_player(session_id: str, player_id: str, service: XiDachService = Depends(get_service)) -> SessionRecord:
    return session_to_record(service.remove_player(session_id, player_id))


@router.post("/{session_id}/players/{player_id}/leave", response_model=SessionRecord)
def player_leave(session_id: str, player_id: str, service: XiDachService = Depends(get_service)) -> SessionRecord:
    return session_to_record(service.player_leave(session_id, player_id))


@router.put("/{session_id}/dealer", response_model=SessionRecord, summary="Chọn hoặc đổi nhà cái")
def set_dealer(
    session_id: str,
    payload: DealerRequest,
    service: XiDachService = Depends(get_service),
) -> SessionRecord:
    return session_to_record(service.set_dealer(session_id, payload.player_id))


@router.get("/{session_id}/dealer/next", response_model=DealerResponse)
def next_dealer(session_id: str, service: XiDachService = Depends(get_service)) -> DealerResponse:
    return DealerResponse(dealer_id=service.next_dealer(session_id))


@router.post("/{session_id}/transitions", response_model=SessionRecord)
def transition(
    session_id: str,
    payload: TransitionRequest,
    service: XiDachService = Depends(get_service),
) -> SessionRecord:
    return session_to_record(service.transition(session_id, payload.event))


@router.post("/{session_id}/matches/preview", response_model=ScoredMatchResponse, summary="Tính thử điểm ván")
def preview_match(
    session_id: str,
    payload: MatchRequest,
    service: XiDachService = Depends(get_service),
) -> ScoredMatchResponse:
    session = service.get_session(session_id)
    raw = _raw_match(payload, session)
    scored = service.preview_match(session_id, raw)
    return ScoredMatchResponse(
        dealer_id=raw.dealer_id or session.current_dealer_id,
        dealer_delta=scored.dealer_delta,
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
            for result in scored.results
        ],
    )


@router.post("/{session_id}/matches", response_model=SessionRecord, status_code=status.HTTP_201_CREATED)
def insert_match(
    session_id: str,
    payload: MatchRequest,
    service: XiDachService = Depends(get_service),
) -> SessionRecord:
    raw = _raw_match(payload, service.get_session(session_id))
    return session_to_record(service.insert_match(session_id, raw))


@router.delete("/{session_id}/matches/last", response_model=SessionRecord)
def undo_last_match(session_id: str, service: XiDachService = Depends(get_service)) -> SessionRecord:
    return session_to_record(service.undo_last_match(session_id))


@router.put("/{session_id}/matches/{match_id}", response_model=SessionRecord, summary="Sửa ván đã ghi")
def edit_match(
    session_id: str,
    match_id: str,
    payload: MatchRequest,
    service: XiDachService = Depends(get_service),
) -> SessionRecord:
    session = service.get_session(session_id)
    raw = _raw_match(payload, session, editing=session.match(match_id))
    return session_to_record(service.edit_match(session_id, match_id, raw))


@router.get("/{session_id}/settlement", response_model=list[SettlementRecord])
def get_settlement(session_id: str, service: XiDachService = Depends(get_service)) -> list[SettlementRecord]:
    return [
        SettlementRecord(
            from_player_id=item.from_player_id,
            to_player_id=item.to_player_id,
            amount=item.amount,
        )
        for item in service.get_settlement(session_id)
    ]


@router.get("/{session_id}/summary", response_model=SummaryResponse)
def get_summary(session_id: str, service: XiDachService = Depends(get_service)) -> SummaryResponse:
    summary = service.get_summary(session_id)
    return SummaryResponse(
        session_id=summary.session_id,
        name=summary.name,
        status=summary.status.value,
        match_count=summary.match_count,
        duration_seconds=summary.duration_seconds,
        rankings=[
            RankingResponse(
                rank=item.rank,
                player_id=item.player_id,
                name=item.name,
                net_score=item.net_score,
                current_score=item.current_score,
            )
            for item in summary.rankings
        ],
        settlements=[
            SettlementRecord(
                from_player_id=item.from_player_id,
                to_player_id=item.to_player_id,
                amount=item.amount,
            )
            for item in summary.settlements
        ],
    )
