"""
Error Handling for the Arcana API

Translates domain exceptions into structured JSON error responses:
{success: false, error, code, detail, timestamp}
"""

import traceback
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from arcana.exceptions import ArcanaException


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    detail: Optional[str] = None,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content=error_payload(error, code, detail),
    )


def error_payload(error: str, code: str, detail: Optional[str] = None) -> dict:
    """Error body shared by JSON responses and streamed error events."""
    return {
        "success": False,
        "error": error,
        "code": code,
        "detail": detail,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(ArcanaException)
    async def arcana_exception_handler(request: Request, exc: ArcanaException):
        if exc.status_code >= 500:
            logger.error(f"Arcana error on {request.url.path}: {exc.code} - {exc.message} ({exc.detail})")
        else:
            logger.warning(f"Arcana error on {request.url.path}: {exc.code} - {exc.message}")
        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail,
        )

    @app.exception_handler(PydanticValidationError)
    async def validation_exception_handler(request: Request, exc: PydanticValidationError):
        logger.warning(f"Validation error: {str(exc)}")
        return create_error_response(
            error="Validation Error",
            code="VALIDATION_ERROR",
            status_code=400,
            detail=str(exc),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: "
            f"{type(exc).__name__}: {str(exc)}\n{traceback.format_exc()}"
        )
        return create_error_response(
            error="Internal Server Error",
            code="INTERNAL_ERROR",
            status_code=500,
            detail="An unexpected error occurred",
        )
