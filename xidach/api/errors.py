from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse

from xidach.domain import DomainValidationError, InvariantViolation, StateError
from xidach.service import SessionNotFoundError


def api_error(
    *,
    code: str,
    message: str,
    details: Any | None = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail={
            "code": code,
            "message": message,
            "details": details,
        },
    )


async def _validation_error(request: Request, exc: DomainValidationError) -> JSONResponse:
    return await http_exception_handler(request, api_error(code="validation_error", message=str(exc)))


async def _state_error(request: Request, exc: StateError) -> JSONResponse:
    return await http_exception_handler(
        request,
        api_error(
            code="invalid_state",
            message=str(exc),
            details={"action": exc.action, "status": exc.status},
            status_code=status.HTTP_409_CONFLICT,
        ),
    )


async def _invariant_violation(request: Request, exc: InvariantViolation) -> JSONResponse:
    return await http_exception_handler(
        request,
        api_error(
            code="invariant_violation",
            message=str(exc),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        ),
    )


async def _session_not_found(request: Request, exc: SessionNotFoundError) -> JSONResponse:
    return await http_exception_handler(
        request,
        api_error(
            code="session_not_found",
            message=str(exc),
            details={"id": exc.session_id},
            status_code=status.HTTP_404_NOT_FOUND,
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainValidationError, _validation_error)
    app.add_exception_handler(StateError, _state_error)
    app.add_exception_handler(InvariantViolation, _invariant_violation)
    app.add_exception_handler(SessionNotFoundError, _session_not_found)
