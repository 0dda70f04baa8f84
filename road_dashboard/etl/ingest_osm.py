"""
OpenStreetMap PBF Ingestion Module

Decodes a .osm.pbf extract and rebuilds the OSM tables.

1. EXTRACT: Stream the PBF with pyosmium (node locations resolved so way
   geometries can be built), keeping only road-related tag keys
2. LOAD RAW: Replace osm_nodes, osm_ways, osm_relations
3. DERIVE: Rebuild osm_roads, osm_intersections, osm_admin_boundaries
   from the raw tables and refresh road_statistics_mv

Derived tables are always rebuilt in full (delete then repopulate) inside
one transaction, so readers see either the old or the new OSM dataset.

Usage:
    python -m road_dashboard.etl.ingest_osm PATH [--state PA]

Author: Road Dashboard Project
License: AGPL-3.0
"""

import argparse
import logging
import os
import re
import sys
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import osmium
from geoalchemy2 import WKTElement
from shapely.geometry import LineString, Polygon
from sqlalchemy import bindparam, func, select, text

from road_dashboard.db.schema import ensure_schema, refresh_statistics_view
from road_dashboard.etl.ingest_csv import IngestError
from road_dashboard.models.osm import OsmNode, OsmRelation, OsmRoad, OsmWay

logger = logging.getLogger(__name__)

## Tag keys kept per primitive type; primitives with none of them are dropped
NODE_KEYS = frozenset({
    "highway", "junction", "traffic_signals", "stop", "give_way",
    "mini_roundabout", "turning_circle", "crossing", "name", "ref",
})
WAY_KEYS = frozenset({
    "highway", "surface", "maxspeed", "lanes", "width", "oneway", "bridge",
    "tunnel", "access", "ref", "operator", "network", "name", "boundary",
    "admin_level", "place", "population",
})
RELATION_KEYS = frozenset({
    "boundary", "admin_level", "place", "population", "name", "type",
})

## Closed ways carrying one of these keys are stored as polygons
AREA_KEYS = frozenset({"boundary", "place"})

EXCLUDED_HIGHWAYS = ("no", "proposed", "construction")
INTERSECTION_HIGHWAYS = (
    "traffic_signals", "stop", "give_way", "mini_roundabout", "turning_circle",
)

PROGRESS_EVERY = 100000
BATCH_SIZE = 1000

_LANES = re.compile(r"^[0-9]+$")
_WIDTH = re.compile(r"^[0-9]+\.?[0-9]*$")

Coordinate = Tuple[float, float]


# ============================================================================
# Tag and geometry helpers
# ============================================================================

def filter_tags(tags: Mapping[str, str], keys: Iterable[str]) -> Dict[str, str]:
    """Keep only the tag keys listed in `keys`."""
    keys = set(keys)
    return {k: v for k, v in tags.items() if k in keys}


def way_geometry_wkt(coords: Sequence[Coordinate], closed: bool = False) -> Optional[str]:
    """
    WKT for a way's (lon, lat) coordinates.

    Args:
        coords: Node locations in way order
        closed: Build a polygon (needs a ring of at least 4 points)

    Returns:
        str: POLYGON or LINESTRING WKT, or None for fewer than 2 points
    """
    if len(coords) < 2:
        return None
    if closed and len(coords) >= 4 and coords[0] == coords[-1]:
        return Polygon(coords).wkt
    return LineString(coords).wkt


def encode_member(member_type: str, ref: int, role: str) -> str:
    """Relation member as '<type><ref>:<role>' (e.g. 'w123:outer')."""
    return f"{member_type}{ref}:{role}"


def parse_lanes(value: Optional[str]) -> Optional[int]:
    """Lane count, only for plain integers ("2;3" and "two" -> None)."""
    if value is None or not _LANES.match(value):
        return None
    return int(value)


def parse_width(value: Optional[str]) -> Optional[float]:
    """Width, only for plain decimals ("3.5" -> 3.5, "3 m" -> None)."""
    if value is None or not _WIDTH.match(value):
        return None
    return float(value)


def parse_oneway(value: Optional[str]) -> Optional[bool]:
    if value == "yes":
        return True
    if value == "no":
        return False
    return None


def road_from_way(way_id: int, tags: Mapping[str, str], geom_wkt: Optional[str],
                  state: str) -> Optional[dict]:
    """
    Build an osm_roads row from a raw way.

    Returns None for non-road ways, excluded highway values and
    non-LineString geometries.
    """
    highway = tags.get("highway")
    if not highway or highway in EXCLUDED_HIGHWAYS:
        return None
    if not geom_wkt or not geom_wkt.upper().startswith("LINESTRING"):
        return None

    return {
        "id": way_id,
        "osm_id": way_id,
        "name": tags.get("name"),
        "highway": highway,
        "surface": tags.get("surface"),
        "maxspeed": tags.get("maxspeed"),
        "lanes": parse_lanes(tags.get("lanes")),
        "width": parse_width(tags.get("width")),
        "oneway": parse_oneway(tags.get("oneway")),
        "bridge": "bridge" in tags,
        "tunnel": "tunnel" in tags,
        "access": tags.get("access"),
        "ref": tags.get("ref"),
        "operator": tags.get("operator"),
        "network": tags.get("network"),
        "state": state,
        "county": tags.get("county"),
        "city": tags.get("city"),
        "tags": dict(tags),
        "geom": WKTElement(geom_wkt, srid=4326),
    }


# ============================================================================
# PBF decoding
# ============================================================================

def _tag_dict(obj) -> Dict[str, str]:
    return {tag.k: tag.v for tag in obj.tags}


def _timestamp(obj):
    ts = obj.timestamp
    return ts.replace(tzinfo=None) if ts is not None else None


class RawOsmHandler(osmium.SimpleHandler):
    """
    Collect filtered nodes, ways and relations from a PBF stream.

    Apply with locations=True so way node references carry coordinates.
    """

    def __init__(self, progress_every: int = PROGRESS_EVERY):
        super().__init__()
        self.progress_every = progress_every
        self.nodes: List[dict] = []
        self.ways: List[dict] = []
        self.relations: List[dict] = []
        self.seen = 0

    def _tick(self):
        self.seen += 1
        if self.progress_every and self.seen % self.progress_every == 0:
            logger.info(f"  → Scanned {self.seen:,} elements "
                        f"({len(self.nodes):,} nodes, {len(self.ways):,} ways, "
                        f"{len(self.relations):,} relations kept)")

    def node(self, n):
        self._tick()
        tags = filter_tags(_tag_dict(n), NODE_KEYS)
        if not tags or not n.location.valid():
            return
        self.nodes.append({
            "id": n.id,
            "version": n.version,
            "user_id": n.uid,
            "tstamp": _timestamp(n),
            "changeset_id": n.changeset,
            "tags": tags,
            "geom": WKTElement(f"POINT({n.location.lon} {n.location.lat})", srid=4326),
        })

    def way(self, w):
        self._tick()
        tags = filter_tags(_tag_dict(w), WAY_KEYS)
        if not tags:
            return

        refs = []
        coords = []
        for nd in w.nodes:
            refs.append(nd.ref)
            if nd.location.valid():
                coords.append((nd.lon, nd.lat))

        closed = len(refs) > 3 and refs[0] == refs[-1] and bool(AREA_KEYS & tags.keys())
        wkt = way_geometry_wkt(coords, closed=closed)
        self.ways.append({
            "id": w.id,
            "version": w.version,
            "user_id": w.uid,
            "tstamp": _timestamp(w),
            "changeset_id": w.changeset,
            "tags": tags,
            "nodes": refs,
            "geom": WKTElement(wkt, srid=4326) if wkt else None,
        })

    def relation(self, r):
        self._tick()
        tags = filter_tags(_tag_dict(r), RELATION_KEYS)
        if not tags:
            return
        self.relations.append({
            "id": r.id,
            "version": r.version,
            "user_id": r.uid,
            "tstamp": _timestamp(r),
            "changeset_id": r.changeset,
            "tags": tags,
            "members": [encode_member(m.type, m.ref, m.role) for m in r.members],
        })


def decode_pbf(pbf_path: str, progress_every: int = PROGRESS_EVERY) -> RawOsmHandler:
    logger.info(f"Decoding {pbf_path}")
    handler = RawOsmHandler(progress_every=progress_every)
    handler.apply_file(pbf_path, locations=True)
    logger.info(f"  → {len(handler.nodes):,} nodes, {len(handler.ways):,} ways, "
                f"{len(handler.relations):,} relations")
    return handler


# ============================================================================
# Loading
# ============================================================================

def _insert_batches(conn, table, rows: List[dict], batch_size: int = BATCH_SIZE) -> None:
    for start in range(0, len(rows), batch_size):
        conn.execute(table.insert(), rows[start:start + batch_size])


def load_raw_tables(engine, handler: RawOsmHandler, batch_size: int = BATCH_SIZE) -> Dict[str, int]:
    """
    Replace the raw OSM tables with the decoded primitives in one transaction.

    Returns:
        dict: inserted row count per table
    """
    logger.info("Loading raw OSM tables...")
    tables = [
        (OsmNode.__table__, handler.nodes),
        (OsmWay.__table__, handler.ways),
        (OsmRelation.__table__, handler.relations),
    ]
    with engine.begin() as conn:
        for table, _ in tables:
            conn.execute(table.delete())
        for table, rows in tables:
            _insert_batches(conn, table, rows, batch_size)
            logger.info(f"  → {table.name}: {len(rows):,} rows")

    return {table.name: len(rows) for table, rows in tables}


INTERSECTIONS_SQL = """
    INSERT INTO osm_intersections (osm_id, name, highway, junction, traffic_signals, state, tags, geom)
    SELECT n.id, n.tags->'name', n.tags->'highway', n.tags->'junction',
           n.tags ? 'traffic_signals', :state, n.tags, n.geom
    FROM osm_nodes n
    WHERE (n.tags->'highway' IN :highways) OR n.tags ? 'junction'
"""

ADMIN_BOUNDARIES_SQL = """
    INSERT INTO osm_admin_boundaries (osm_id, name, admin_level, boundary, place, population, tags, geom)
    SELECT w.id, w.tags->'name',
           CASE WHEN w.tags->'admin_level' ~ '^[0-9]+$' THEN (w.tags->'admin_level')::INTEGER END,
           w.tags->'boundary', w.tags->'place',
           CASE WHEN w.tags->'population' ~ '^[0-9]+$' THEN (w.tags->'population')::INTEGER END,
           w.tags, ST_Multi(w.geom)
    FROM osm_ways w
    WHERE w.tags->'boundary' = 'administrative'
      AND ST_GeometryType(w.geom) = 'ST_Polygon'
"""


def extract_derived_tables(engine, state: str, batch_size: int = BATCH_SIZE) -> Dict[str, int]:
    """
    Rebuild osm_roads, osm_intersections and osm_admin_boundaries.

    Road attributes are normalized by road_from_way; road length is the
    length of the Web Mercator projected line.

    Returns:
        dict: row count per derived table
    """
    logger.info("Extracting derived OSM tables...")
    counts = {}
    with engine.begin() as conn:
        for table in ("osm_roads", "osm_intersections", "osm_admin_boundaries"):
            conn.execute(text(f"DELETE FROM {table}"))

        ways = conn.execute(
            select(OsmWay.id, OsmWay.tags, func.ST_AsText(OsmWay.geom).label("wkt"))
            .where(OsmWay.tags.has_key("highway"))
            .order_by(OsmWay.id)
        )
        roads = []
        for way in ways:
            row = road_from_way(way.id, way.tags or {}, way.wkt, state)
            if row is not None:
                roads.append(row)
        _insert_batches(conn, OsmRoad.__table__, roads, batch_size)
        conn.execute(text(
            "UPDATE osm_roads SET length_meters = ST_Length(ST_Transform(geom, 3857)) "
            "WHERE geom IS NOT NULL"
        ))
        counts["osm_roads"] = len(roads)

        intersections = text(INTERSECTIONS_SQL).bindparams(
            bindparam("highways", expanding=True)
        )
        result = conn.execute(intersections, {"state": state, "highways": list(INTERSECTION_HIGHWAYS)})
        counts["osm_intersections"] = result.rowcount

        result = conn.execute(text(ADMIN_BOUNDARIES_SQL))
        counts["osm_admin_boundaries"] = result.rowcount

        refresh_statistics_view(conn, "osm")

    for table, count in counts.items():
        logger.info(f"  → {table}: {count:,} rows")
    return counts


def log_road_statistics(engine) -> None:
    with engine.connect() as conn:
        rows = conn.execute(text(
            "SELECT highway, road_count, total_length_meters FROM road_statistics_mv "
            "ORDER BY road_count DESC"
        ))
        logger.info("Road statistics by highway type:")
        for row in rows:
            km = float(row.total_length_meters or 0) / 1000
            logger.info(f"  {row.highway:<20} {row.road_count:>8,} roads {km:>12,.1f} km")


def run_import(pbf_path: str, settings, engine=None) -> Dict[str, int]:
    """
    Execute the full PBF import.

    Args:
        pbf_path (str): .osm.pbf extract
        settings (Settings): database URL and region code
        engine: optional pre-built engine

    Returns:
        dict: row counts per raw and derived table

    Raises:
        IngestError: if the file does not exist
    """
    from road_dashboard.db.database import create_db_engine

    if not os.path.exists(pbf_path):
        raise IngestError(f"PBF file not found: {pbf_path}")

    size_mb = os.path.getsize(pbf_path) / (1024 * 1024)
    logger.info("=" * 70)
    logger.info(f"STARTING OSM PBF IMPORT: {pbf_path} ({size_mb:.1f} MB)")
    logger.info("=" * 70)

    owns_engine = engine is None
    engine = engine if engine is not None else create_db_engine(settings.database_url)
    try:
        ensure_schema(engine)

        logger.info("\n[STEP 1] EXTRACT - Decoding PBF...")
        handler = decode_pbf(pbf_path)

        logger.info("\n[STEP 2] LOAD - Raw tables...")
        counts = load_raw_tables(engine, handler)

        logger.info("\n[STEP 3] TRANSFORM - Derived tables...")
        counts.update(extract_derived_tables(engine, settings.default_state))

        log_road_statistics(engine)
    finally:
        if owns_engine:
            engine.dispose()

    logger.info("=" * 70)
    logger.info("✓ OSM IMPORT COMPLETED")
    logger.info("=" * 70)
    return counts


def main(argv=None) -> int:
    from road_dashboard.core.cache import invalidate_sync
    from road_dashboard.core.config import Settings
    from road_dashboard.core.logging import setup_logging

    parser = argparse.ArgumentParser(description="Load an OpenStreetMap PBF extract into PostGIS")
    parser.add_argument("path", help=".osm.pbf file")
    parser.add_argument("--state", help="Region code stamped on derived rows (default: $DEFAULT_STATE)")
    args = parser.parse_args(argv)

    setup_logging()
    settings = Settings.from_env()
    if args.state:
        settings.default_state = args.state

    try:
        run_import(args.path, settings)
        invalidate_sync(settings.redis_url)
        return 0
    except Exception as e:
        logger.critical(f"OSM import failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
