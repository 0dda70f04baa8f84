"""
@file health.py
@brief System health checks and status monitoring

@details
Checks the two backing services of the dashboard:
- PostgreSQL/PostGIS through the RoadDataService connection pool
- Redis response cache

The database is critical; the cache is optional (degraded when down).

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
from typing import Dict, Any
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)


class HealthStatus:
    """Health status indicator for system components"""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


async def check_database(service) -> Dict[str, Any]:
    """
    @brief Check PostgreSQL database connectivity

    @param service RoadDataService owning the pool
    @return Dict with status, message, whether the CSV watcher is running
    and, once a load has completed, the last load summary (source, loaded, rejected)
    """
    try:
        db = service.session()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
        status = {
            "status": HealthStatus.HEALTHY,
            "message": "PostgreSQL database is healthy",
            "component": "database",
            "watching_csv": service.watching,
        }
        if service.last_report is not None:
            status["last_load"] = {
                "source": service.last_report.source,
                "loaded": service.last_report.loaded,
                "rejected": service.last_report.rejected,
            }
        return status
    except OperationalError as e:
        logger.error(f"Database health check failed: {e}")
        return {
            "status": HealthStatus.UNHEALTHY,
            "message": "PostgreSQL database is unavailable",
            "component": "database",
            "error": str(e)
        }
    except Exception as e:
        logger.error(f"Unexpected database health check error: {e}")
        return {
            "status": HealthStatus.DEGRADED,
            "message": "Database health check encountered an error",
            "component": "database",
            "error": str(e)
        }


async def check_cache(cache) -> Dict[str, Any]:
    """
    @brief Check Redis cache connectivity
    @details Redis is optional; an unreachable server means degraded mode.
    """
    try:
        if cache is None or not cache.client:
            return {
                "status": HealthStatus.UNHEALTHY,
                "message": "Redis cache is not initialized",
                "component": "cache"
            }

        await cache.client.ping()
        return {
            "status": HealthStatus.HEALTHY,
            "message": "Redis cache is healthy",
            "component": "cache"
        }
    except Exception as e:
        logger.warning(f"Cache health check failed: {e}")
        return {
            "status": HealthStatus.DEGRADED,
            "message": "Redis cache is unavailable (running in degraded mode)",
            "component": "cache",
            "error": str(e)
        }


async def get_system_health(service, cache) -> Dict[str, Any]:
    """
    @brief Get comprehensive system health status

    @details
    - HEALTHY: All components operational
    - DEGRADED: Database OK, cache issues
    - UNHEALTHY: Database unavailable (critical failure)
    """
    db_status = await check_database(service)
    cache_status = await check_cache(cache)

    if db_status["status"] == HealthStatus.UNHEALTHY:
        overall_status = HealthStatus.UNHEALTHY
    elif db_status["status"] == HealthStatus.DEGRADED or \
         cache_status["status"] != HealthStatus.HEALTHY:
        overall_status = HealthStatus.DEGRADED
    else:
        overall_status = HealthStatus.HEALTHY

    return {
        "status": overall_status,
        "components": {
            "database": db_status,
            "cache": cache_status
        },
        "message": get_status_message(overall_status)
    }


def get_status_message(status: str) -> str:
    """Get human-readable status message"""
    messages = {
        HealthStatus.HEALTHY: "System is operational",
        HealthStatus.DEGRADED: "System is running with reduced functionality (non-critical services unavailable)",
        HealthStatus.UNHEALTHY: "System is in maintenance mode (critical services unavailable)"
    }
    return messages.get(status, "Unknown status")
