from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, status
from pydantic import ValidationError

from xidach.api.errors import api_error
from xidach.api.schemas import ErrorResponse, ImportResponse
from xidach.runtime import get_service
from xidach.service import XiDachService

router = APIRouter(prefix="/storage", tags=["storage"])


@router.get("/export", summary="Xuất toàn bộ bàn chơi theo định dạng lưu trữ")
def export_sessions(service: XiDachService = Depends(get_service)) -> dict[str, Any]:
    return service.export_envelope()


@router.post(
    "/import",
    response_model=ImportResponse,
    responses={422: {"model": ErrorResponse, "description": "Bản xuất không đúng định dạng"}},
    summary="Nhập bàn chơi từ bản xuất",
)
def import_sessions(
    envelope: dict[str, Any] = Body(...),
    service: XiDachService = Depends(get_service),
) -> ImportResponse:
    try:
        imported = service.import_envelope(envelope)
    except ValidationError as exc:
        raise api_error(
            code="invalid_envelope",
            message="Dữ liệu nhập không đúng định dạng",
            details=exc.errors(include_url=False, include_context=False),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ) from exc
    return ImportResponse(imported=imported)
