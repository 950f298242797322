"""JSON error bodies shared by the app-wide handler and individual routes."""

from __future__ import annotations

from typing import Optional

from fastapi.responses import JSONResponse

from .services import EngineError


def engine_error_response(exc: EngineError, status_code: Optional[int] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code or exc.status_code,
        content={
            "detail": str(exc),
            "error": type(exc).__name__,
            "retryable": exc.retryable,
        },
    )
