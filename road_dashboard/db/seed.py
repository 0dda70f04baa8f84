"""
@file seed.py
@brief Database initialization and seeding on application startup

@details
Manages the database lifecycle at startup:
- Connection probing with a fixed-delay retry loop
- Extensions, tables and materialized views (db.schema)
- Initial CSV load when road_segments is empty and the configured CSV exists

Idempotent: safe to call on every start; an already populated table is
never reloaded here (the CSV watcher and the upload endpoint handle
later changes).

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see services.road_store for the load itself
@see db.schema for DDL
"""

import os
import time
import logging
from sqlalchemy import text, inspect
from sqlalchemy.exc import OperationalError

from road_dashboard.db.schema import ensure_schema

## @brief Module logger for startup diagnostics
logger = logging.getLogger(__name__)


def wait_for_database(engine, max_retries: int = 30, retry_delay: float = 2) -> bool:
    """
    @brief Wait for database to become available

    @details
    1. Attempt `SELECT 1`
    2. On OperationalError: wait retry_delay seconds and retry
    3. Give up after max_retries attempts

    @param engine SQLAlchemy Engine
    @param max_retries (int) Maximum connection attempts [default: 30]
    @param retry_delay (float) Delay between retries in seconds [default: 2]

    @return True if database available, False if max retries exceeded
    """
    retries = 0
    while retries < max_retries:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("✓ Database connection established successfully")
            return True
        except OperationalError as e:
            retries += 1
            logger.warning(
                f"Database not ready (attempt {retries}/{max_retries}): {str(e)[:100]}"
            )
            if retries < max_retries:
                logger.info(f"Retrying in {retry_delay} seconds...")
                time.sleep(retry_delay)

    logger.error(f"Failed to connect to database after {max_retries} attempts")
    return False


def check_database_seeded(engine) -> bool:
    """
    @brief Verify road_segments exists and holds data

    @param engine SQLAlchemy Engine instance
    @return True if seeded, False if it needs an initial load (or on error)
    """
    try:
        inspector = inspect(engine)
        if "road_segments" not in inspector.get_table_names():
            logger.info("road_segments table not found - database needs seeding")
            return False

        with engine.connect() as conn:
            count = conn.execute(text("SELECT COUNT(*) FROM road_segments")).scalar()

        if not count:
            logger.info("road_segments table is empty - database needs seeding")
            return False

        logger.info(f"✓ Database already seeded with {count} road segments")
        return True
    except Exception as e:
        logger.warning(f"Error checking database seed status: {e}")
        return False


def initialize_database(service, max_retries: int = 30, retry_delay: float = 2) -> bool:
    """
    @brief Main database initialization entry point (called at app startup)

    @details
    1. Wait for the database
    2. Ensure extensions, tables and views
    3. If road_segments is empty and CSV_PATH exists, load it

    @param service RoadDataService
    @return True if the database is usable, False otherwise
    @throws None (errors logged and returned as bool)
    """
    logger.info("Initializing database...")

    if not wait_for_database(service.engine, max_retries, retry_delay):
        logger.error("✗ Database initialization failed: could not connect")
        return False

    try:
        ensure_schema(service.engine)
    except Exception as e:
        logger.error(f"✗ Schema creation failed: {e}", exc_info=True)
        return False

    if check_database_seeded(service.engine):
        return True

    csv_path = service.settings.csv_path
    if not csv_path or not os.path.exists(csv_path):
        logger.warning(f"⚠ No CSV file at {csv_path}; starting with an empty dataset")
        return True

    try:
        report = service.reload_from_csv(csv_path)
        logger.info(f"✓ Initial load: {report.loaded} segments ({report.rejected} rejected)")
        return True
    except Exception as e:
        logger.error(f"✗ Initial CSV load failed: {e}", exc_info=True)
        return False
