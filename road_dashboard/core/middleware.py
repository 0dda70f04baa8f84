"""
@file middleware.py
@brief Database error middleware

@details
Turns connection-level database failures escaping a route into a 503
maintenance response, and anything else into a generic 500. Query errors
that routes catch themselves never reach this layer.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import DatabaseError, OperationalError

logger = logging.getLogger(__name__)

MAINTENANCE_RESPONSE = {
    "error": "Service unavailable",
    "message": "Database connection failed. System is in maintenance mode.",
    "status": "unavailable"
}


class DatabaseErrorMiddleware(BaseHTTPMiddleware):
    """
    @brief Catch unhandled database errors and return a maintenance status
    """

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except (OperationalError, DatabaseError) as e:
            logger.error(f"Database error handling {request.method} {request.url.path}: {e}")
            return JSONResponse(status_code=503, content=MAINTENANCE_RESPONSE)
        except Exception as e:
            logger.exception(f"Unexpected error handling {request.method} {request.url.path}: {e}")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "message": "An unexpected error occurred. Please try again later.",
                    "status": "error"
                }
            )
