from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from xidach.domain import SessionEvent, SpecialHand
from xidach.storage.envelope import PlayerResultRecord, SettlementRecord


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Any | None = None


class ErrorResponse(BaseModel):
    detail: ErrorDetail


ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Dữ liệu ván hoặc người chơi không hợp lệ"},
    404: {"model": ErrorResponse, "description": "Không tìm thấy bàn"},
    409: {"model": ErrorResponse, "description": "Thao tác không được phép ở trạng thái hiện tại"},
    500: {"model": ErrorResponse, "description": "Sổ điểm không cân"},
}


class SettingsPayload(_Payload):
    points_per_tu: int = Field(10, gt=0, description="Điểm cho mỗi tụ")
    penalty28_enabled: bool = Field(False, description="Phạt 28 theo số cố định thay vì theo tiền cược")
    penalty28_amount: int = Field(50, ge=0)
    auto_rotate_dealer: bool = False
    auto_rotate_after: int = Field(1, ge=1)


class SettingsUpdateRequest(_Payload):
    points_per_tu: int | None = Field(None, gt=0)
    penalty28_enabled: bool | None = None
    penalty28_amount: int | None = Field(None, ge=0)
    auto_rotate_dealer: bool | None = None
    auto_rotate_after: int | None = Field(None, ge=1)


class CreateSessionRequest(_Payload):
    name: str = Field("", examples=["Bàn Tết"])
    settings: SettingsPayload | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "name": "Bàn Tết",
                    "settings": {"points_per_tu": 10, "auto_rotate_dealer": True, "auto_rotate_after": 2},
                }
            ]
        },
    )


class AddPlayerRequest(_Payload):
    name: str = Field(..., min_length=1, examples=["Minh"])
    base_score: int = 0


class UpdatePlayerRequest(_Payload):
    name: str | None = Field(None, min_length=1)
    base_score: int | None = None


class DealerRequest(_Payload):
    player_id: str


class DealerResponse(_Payload):
    dealer_id: str


class TransitionRequest(_Payload):
    event: SessionEvent


class PlayerResultPayload(_Payload):
    player_id: str
    tu_count: int = Field(..., ge=0)
    outcome: Literal["win", "lose"]
    xi_ban_count: int = Field(0, ge=0)
    ngu_linh_count: int = Field(0, ge=0)
    penalty28: bool = False
    penalty28_recipients: list[str] = Field(default_factory=list)


class DealerSweepPayload(_Payload):
    """Dealer holds xì bàn or ngũ linh and wins outright from ``targets``.

    When ``targets`` is empty every player without an explicit result loses.
    """

    hand: SpecialHand
    tu_count: int = Field(1, ge=1)
    targets: list[str] = Field(default_factory=list)


class MatchRequest(_Payload):
    dealer_id: str | None = None
    results: list[PlayerResultPayload] = Field(default_factory=list)
    sweep: DealerSweepPayload | None = None


class ScoredMatchResponse(_Payload):
    dealer_id: str
    dealer_delta: int
    results: list[PlayerResultRecord]


class RankingResponse(_Payload):
    rank: int
    player_id: str
    name: str
    net_score: int
    current_score: int


class SummaryResponse(_Payload):
    session_id: str
    name: str
    status: str
    match_count: int
    duration_seconds: int
    rankings: list[RankingResponse]
    settlements: list[SettlementRecord]


class ImportResponse(_Payload):
    imported: int
