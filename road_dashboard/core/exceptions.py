"""
@file exceptions.py
@brief Centralized exception handlers
@details
Consistent JSON error bodies (always carrying an "error" key) for HTTP
exceptions, validation errors, failed imports and unexpected server
errors.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from fastapi import Request

from road_dashboard.etl.ingest_csv import IngestError

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: HTTPException):
    """
    @brief Custom HTTP exception handler
    @details A dict detail is returned as the body unchanged.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content=exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": str(exc.detail),
            "status_code": exc.status_code,
            "message": f"Request failed with HTTP {exc.status_code}"
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "error": "Validation error",
            "details": exc.errors(),
            "message": "Request validation failed. Check parameters and try again."
        }
    )


async def ingest_exception_handler(request: Request, exc: IngestError):
    """
    @brief Unreadable or missing import file
    """
    logger.error(f"Import failed for {request.url.path}: {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def general_exception_handler(request: Request, exc: Exception):
    """
    @brief Catch-all exception handler
    @details
    Logs the full error and returns a safe message to the client.
    """
    logger.exception(f"Unexpected error handling {request.url}: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
            "status": "error"
        }
    )
