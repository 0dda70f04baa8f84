"""
@file schema.py
@brief PostGIS schema bootstrap: extensions, tables, materialized views

@details
The ORM covers the tables. This module adds what the ORM cannot express:

- postgis and hstore extensions (must exist before create_all)
- road_statistics: per facility type aggregates over road_segments
- road_statistics_mv: per highway aggregates over osm_roads

Materialized views are point-in-time snapshots. They are stale between
refreshes; every bulk load refreshes the view of the dataset it replaced.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see services.road_store for the CSV refresh
@see etl.ingest_osm for the OSM refresh
"""

import logging
from sqlalchemy import text
from road_dashboard.db.base import Base

# Register every model on Base.metadata
import road_dashboard.models.road_network  # noqa: F401
import road_dashboard.models.osm  # noqa: F401

logger = logging.getLogger(__name__)

EXTENSIONS = ("postgis", "hstore")

## @brief Materialized view name per dataset
STATISTICS_VIEWS = {
    "csv": "road_statistics",
    "osm": "road_statistics_mv",
}

VIEW_DDL = [
    """
    CREATE MATERIALIZED VIEW IF NOT EXISTS road_statistics AS
    SELECT
        fac_type,
        COUNT(*) AS segment_count,
        SUM(segment_miles) AS total_miles,
        AVG(rough_indx) AS avg_condition,
        AVG(cur_aadt) AS avg_traffic,
        MIN(rough_indx) AS min_condition,
        MAX(rough_indx) AS max_condition
    FROM road_segments
    WHERE fac_type IS NOT NULL
    GROUP BY fac_type
    """,
    "CREATE INDEX IF NOT EXISTS idx_road_statistics_fac_type ON road_statistics (fac_type)",
    """
    CREATE MATERIALIZED VIEW IF NOT EXISTS road_statistics_mv AS
    SELECT
        highway,
        COUNT(*) AS road_count,
        SUM(length_meters) AS total_length_meters,
        AVG(length_meters) AS avg_length_meters,
        AVG(lanes) AS avg_lanes,
        COUNT(CASE WHEN bridge THEN 1 END) AS bridge_count,
        COUNT(CASE WHEN tunnel THEN 1 END) AS tunnel_count
    FROM osm_roads
    WHERE highway IS NOT NULL
    GROUP BY highway
    """,
    "CREATE INDEX IF NOT EXISTS idx_road_statistics_mv_highway ON road_statistics_mv (highway)",
    # Tag lookups on the raw tables
    "CREATE INDEX IF NOT EXISTS idx_osm_nodes_tags ON osm_nodes USING GIN (tags)",
    "CREATE INDEX IF NOT EXISTS idx_osm_ways_tags ON osm_ways USING GIN (tags)",
]


def ensure_schema(engine) -> None:
    """
    @brief Create extensions, tables and views if missing

    @details
    Idempotent; safe to call on every startup and before every import.

    @param engine SQLAlchemy Engine
    """
    with engine.begin() as conn:
        for extension in EXTENSIONS:
            conn.execute(text(f"CREATE EXTENSION IF NOT EXISTS {extension}"))

    Base.metadata.create_all(bind=engine)

    with engine.begin() as conn:
        for ddl in VIEW_DDL:
            conn.execute(text(ddl))

    logger.info("✓ Schema verified (%d tables, %d views)",
                len(Base.metadata.tables), len(STATISTICS_VIEWS))


def refresh_statistics_view(conn, dataset: str) -> None:
    """
    @brief Refresh the materialized statistics view of one dataset

    @param conn Open SQLAlchemy Connection (runs inside the caller's transaction)
    @param dataset "csv" or "osm"
    @throws KeyError for an unknown dataset
    """
    view = STATISTICS_VIEWS[dataset]
    conn.execute(text(f"REFRESH MATERIALIZED VIEW {view}"))
    logger.info("Refreshed materialized view %s", view)
