"""
@file database.py
@brief SQLAlchemy engine factory and request-scoped session dependency

@details
There is no module-level engine. The engine (and its connection pool) is
owned by services.road_store.RoadDataService, which the application
factory stores on app.state. Route handlers receive a session through
the get_db dependency.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see services.road_store for pool ownership
@see api.routes for usage
"""

from fastapi import HTTPException, Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker


def create_db_engine(database_url: str, **kwargs) -> Engine:
    """
    @brief Build a pooled PostgreSQL engine

    @param database_url SQLAlchemy URL (postgresql://...)
    @return Engine with pre-ping enabled so stale pooled connections are replaced
    """
    kwargs.setdefault("pool_pre_ping", True)
    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory with explicit transaction control."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    """
    @brief FastAPI dependency for database session injection

    @details
    Opens a session from the service's pool for one request and closes it
    afterwards. Returns 503 when the database cannot be reached.

    @code{.python}
    @router.get("/api/roads")
    def get_roads(db: Session = Depends(get_db)):
        ...
    @endcode
    """
    service = request.app.state.road_service
    db = service.session()
    try:
        db.execute(text("SELECT 1"))
    except OperationalError:
        db.close()
        raise HTTPException(
            status_code=503,
            detail="Database connection unavailable. System is in maintenance mode."
        )
    except SQLAlchemyError:
        db.close()
        raise HTTPException(
            status_code=503,
            detail="Database error. Please try again later."
        )

    try:
        yield db
    finally:
        db.close()
