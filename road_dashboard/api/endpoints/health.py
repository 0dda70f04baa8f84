"""
@file health.py
@brief Health check API endpoints
@details
Status, readiness and liveness probes for the dashboard API. /health and
/health/ready answer 503 while the database is down or the cache is
degraded; /health/live only reports that the process is running.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from road_dashboard.core.health import get_system_health, HealthStatus

router = APIRouter(tags=["Health"])

NOTES = {
    HealthStatus.UNHEALTHY: "System is in maintenance mode. Critical services are unavailable.",
    HealthStatus.DEGRADED: "System is running with reduced functionality.",
}


async def _health(request: Request):
    return await get_system_health(request.app.state.road_service, request.app.state.cache)


@router.get("/health")
async def health_check(request: Request):
    """
    @brief Get system health status
    @details Returns 503 if the system is in maintenance mode or degraded.
    """
    health = await _health(request)

    body = {
        "status": health["status"],
        "message": health["message"],
        "components": health["components"]
    }
    if health["status"] in NOTES:
        body["note"] = NOTES[health["status"]]
        return JSONResponse(status_code=503, content=body)
    return body


@router.get("/health/ready")
async def readiness_check(request: Request):
    """
    @brief Readiness probe
    @details Returns 200 only if the system is fully operational.
    """
    health = await _health(request)

    if health["status"] == HealthStatus.HEALTHY:
        return {"ready": True, "status": "System is ready"}
    return JSONResponse(
        status_code=503,
        content={
            "ready": False,
            "status": "System is not ready",
            "reason": health["message"]
        }
    )


@router.get("/health/live")
async def liveness_check():
    """
    @brief Liveness probe
    @details Returns 200 as long as the application is running.
    """
    return {"alive": True, "status": "Application is running"}
