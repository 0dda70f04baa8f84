"""
@file main.py
@brief FastAPI application factory and root endpoint.
@details
create_app() wires one application around one RoadDataService:
- Logging configuration
- Database initialization and initial CSV load
- CSV watcher start/stop (service lifecycle)
- Redis cache connection
- Middleware (CORS, database errors), routers, exception handlers

`app` is the module-level instance for ASGI servers; `run()` serves it
with uvicorn on $PORT.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from fastapi.responses import HTMLResponse

# Internal modules
from road_dashboard.core.config import Settings
from road_dashboard.core.logging import setup_logging
from road_dashboard.core import exceptions
from road_dashboard.core import docs
from road_dashboard.core.cache import RedisCache
from road_dashboard.core.middleware import DatabaseErrorMiddleware
from road_dashboard.api import routes
from road_dashboard.api.endpoints import health
from road_dashboard.db.seed import initialize_database
from road_dashboard.etl.ingest_csv import IngestError
from road_dashboard.services.road_store import RoadDataService

# Configure logging
logger = setup_logging()


def create_app(settings: Optional[Settings] = None,
               service: Optional[RoadDataService] = None,
               cache: Optional[RedisCache] = None,
               initialize: bool = True) -> FastAPI:
    """
    @brief Build the FastAPI application

    @param settings Runtime settings [default: Settings.from_env()]
    @param service Dataset service [default: built from settings]
    @param cache Response cache [default: RedisCache(settings.redis_url)]
    @param initialize Run database initialization at startup
    """
    settings = settings or (service.settings if service is not None else Settings.from_env())
    service = service or RoadDataService(settings)
    cache = cache or RedisCache(settings.redis_url, default_ttl=settings.cache_ttl)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        @brief Application lifecycle manager
        """
        logger.info("=" * 60)
        logger.info("Starting Road Dashboard API...")
        logger.info("=" * 60)

        if initialize:
            if await run_in_threadpool(initialize_database, service):
                logger.info("✓ Database initialization completed")
            else:
                logger.warning("⚠ Database initialization encountered issues")

        service.start()
        await cache.connect()

        yield

        await cache.close()
        service.stop()
        logger.info("Road Dashboard API shutdown completed")

    app = FastAPI(
        title="Road Classification Dashboard API",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url=None
    )
    app.state.settings = settings
    app.state.road_service = service
    app.state.cache = cache

    # ----------------------------------------------------------------------
    # Middleware
    # ----------------------------------------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(DatabaseErrorMiddleware)

    # ----------------------------------------------------------------------
    # Routers
    # ----------------------------------------------------------------------

    app.include_router(health.router)
    app.include_router(routes.router)

    # ----------------------------------------------------------------------
    # Exception Handlers
    # ----------------------------------------------------------------------

    app.add_exception_handler(HTTPException, exceptions.http_exception_handler)
    app.add_exception_handler(RequestValidationError, exceptions.validation_exception_handler)
    app.add_exception_handler(IngestError, exceptions.ingest_exception_handler)
    app.add_exception_handler(Exception, exceptions.general_exception_handler)

    @app.get("/", response_class=HTMLResponse)
    def read_root():
        """
        @brief Serve root documentation page
        """
        return docs.get_root_documentation()

    return app


## @brief FastAPI application instance
app = create_app()


def run() -> None:
    """Serve the module-level app on settings.port."""
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)


if __name__ == "__main__":
    run()
