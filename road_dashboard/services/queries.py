"""
@file queries.py
@brief Read-side SQL for the road segment and OSM road datasets

@details
Every query is parameterized SQL (sqlalchemy.text) assembled by appending
clauses for the filters that are present. Unrecognized filter values are
bound as parameters and simply match no rows.

**Ordering:** list queries end in ORDER BY id so that LIMIT/OFFSET pages
are stable across requests.

**Statistics:** each sub-query of the statistics battery runs inside a
SAVEPOINT; a failure is logged, its key becomes [] and the remaining
sub-queries still run on the same session.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see api.routes for the HTTP surface
"""

import datetime
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from road_dashboard.core.config import DEFAULT_STATE

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10000
SEARCH_LIMIT = 50

## @brief Reference point (lng, lat) used to rank name search results
SEARCH_REFERENCE_POINT = (-77.0, 39.5)

HEATMAP_METRICS = ("condition", "traffic", "age")
HEATMAP_SOURCES = ("csv", "osm")

## @brief Columns returned for a CSV road segment
SEGMENT_COLUMNS = """
    id, objectid, st_rt_no, cty_code, district_no, seg_no, seg_lngth_feet,
    fac_type, surf_type, lane_cnt, total_width, rough_indx, frictn_coeff,
    pvmnt_cond_rate, cur_aadt, street_name, traf_rt_no,
    ST_X(start_point) AS x_value_bgn, ST_Y(start_point) AS y_value_bgn,
    ST_X(end_point) AS x_value_end, ST_Y(end_point) AS y_value_end,
    segment_miles, lane_miles, iri_rating_text, opi_rating_text,
    surface_year, urban_rural, nhs_ind
"""

## @brief Columns returned for an OSM road (geometry as GeoJSON text)
OSM_ROAD_COLUMNS = """
    id, osm_id, name, highway, surface, maxspeed, lanes, width, oneway,
    bridge, tunnel, access, ref, operator, network, state, county, city,
    length_meters,
    ST_X(ST_StartPoint(geom)) AS x_value_bgn, ST_Y(ST_StartPoint(geom)) AS y_value_bgn,
    ST_X(ST_EndPoint(geom)) AS x_value_end, ST_Y(ST_EndPoint(geom)) AS y_value_end,
    ST_AsGeoJSON(geom) AS geometry
"""


@dataclass
class RoadFilters:
    """Filters for GET /api/roads. All present filters must match."""

    fac_type: Optional[str] = None
    surf_type: Optional[str] = None
    district_no: Optional[str] = None
    urban_rural: Optional[str] = None
    min_condition: Optional[float] = None
    max_condition: Optional[float] = None
    limit: int = DEFAULT_LIMIT
    offset: int = 0


@dataclass
class OsmRoadFilters:
    highway: Optional[str] = None
    state: str = DEFAULT_STATE
    limit: int = DEFAULT_LIMIT
    offset: int = 0


def _row_dict(row) -> Dict[str, Any]:
    return dict(row._mapping)


def _jsonable(value):
    """Decimal -> float so rows serialize as JSON numbers."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        return str(value)


def _rows(result) -> List[Dict[str, Any]]:
    return [{k: _jsonable(v) for k, v in _row_dict(row).items()} for row in result]


def build_roads_query(filters: RoadFilters) -> Tuple[str, Dict[str, Any]]:
    """
    @brief Assemble the segment list query

    @return (sql, params)
    """
    clauses = []
    params: Dict[str, Any] = {}

    for column in ("fac_type", "surf_type", "district_no", "urban_rural"):
        value = getattr(filters, column)
        if value is not None and value != "":
            clauses.append(f"{column} = :{column}")
            params[column] = value

    if filters.min_condition is not None:
        clauses.append("rough_indx >= :min_condition")
        params["min_condition"] = filters.min_condition
    if filters.max_condition is not None:
        clauses.append("rough_indx <= :max_condition")
        params["max_condition"] = filters.max_condition

    sql = f"SELECT {SEGMENT_COLUMNS} FROM road_segments"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY id LIMIT :limit OFFSET :offset"
    params["limit"] = max(int(filters.limit), 0)
    params["offset"] = max(int(filters.offset), 0)
    return sql, params


def build_osm_roads_query(filters: OsmRoadFilters) -> Tuple[str, Dict[str, Any]]:
    """@return (sql, params) for the OSM road list"""
    params: Dict[str, Any] = {
        "state": filters.state or DEFAULT_STATE,
        "limit": max(int(filters.limit), 0),
        "offset": max(int(filters.offset), 0),
    }
    sql = f"SELECT {OSM_ROAD_COLUMNS} FROM osm_roads WHERE state = :state"
    if filters.highway:
        sql += " AND highway = :highway"
        params["highway"] = filters.highway
    sql += " ORDER BY id LIMIT :limit OFFSET :offset"
    return sql, params


def fetch_roads(db: Session, filters: RoadFilters) -> List[Dict[str, Any]]:
    sql, params = build_roads_query(filters)
    return _rows(db.execute(text(sql), params))


def fetch_osm_roads(db: Session, filters: OsmRoadFilters) -> List[Dict[str, Any]]:
    sql, params = build_osm_roads_query(filters)
    rows = _rows(db.execute(text(sql), params))
    for row in rows:
        if isinstance(row.get("geometry"), str):
            row["geometry"] = json.loads(row["geometry"])
    return rows


## @brief Statistics battery: name -> sql; every value is a list of rows
STATISTICS_QUERIES = {
    "total_segments": "SELECT COUNT(*) AS count FROM road_segments",
    "total_miles": "SELECT COALESCE(SUM(segment_miles), 0) AS total FROM road_segments",
    "by_fac_type": """
        SELECT fac_type, COUNT(*) AS count, SUM(segment_miles) AS miles
        FROM road_segments GROUP BY fac_type ORDER BY fac_type
        """,
    "by_surf_type": """
        SELECT surf_type, COUNT(*) AS count, SUM(segment_miles) AS miles
        FROM road_segments GROUP BY surf_type ORDER BY surf_type
        """,
    "by_condition": """
        SELECT iri_rating_text, COUNT(*) AS count, SUM(segment_miles) AS miles
        FROM road_segments
        WHERE iri_rating_text IS NOT NULL AND iri_rating_text != ''
        GROUP BY iri_rating_text ORDER BY iri_rating_text
        """,
    "by_district": """
        SELECT district_no, COUNT(*) AS count, SUM(segment_miles) AS miles
        FROM road_segments GROUP BY district_no ORDER BY district_no
        """,
}


def fetch_statistics(db: Session) -> Dict[str, Any]:
    """
    @brief Run the statistics battery

    @return Dict of statistic name -> list of rows; a failed sub-query yields [].
    """
    stats: Dict[str, Any] = {}
    for name, sql in STATISTICS_QUERIES.items():
        try:
            with db.begin_nested():
                stats[name] = _rows(db.execute(text(sql)))
        except SQLAlchemyError as e:
            logger.error(f"Statistics query {name} failed: {e}")
            stats[name] = []
    return stats


def fetch_facility_statistics(db: Session) -> List[Dict[str, Any]]:
    return _rows(db.execute(text("SELECT * FROM road_statistics ORDER BY fac_type")))


def fetch_osm_statistics(db: Session) -> List[Dict[str, Any]]:
    return _rows(db.execute(text("SELECT * FROM road_statistics_mv ORDER BY highway")))


def normalize_heatmap_args(metric: Optional[str], source: Optional[str]) -> Tuple[str, str]:
    """Unknown metric -> condition, unknown source -> csv."""
    metric = metric if metric in HEATMAP_METRICS else "condition"
    source = source if source in HEATMAP_SOURCES else "csv"
    return metric, source


def build_heatmap_query(metric: Optional[str], source: Optional[str],
                        state: str = DEFAULT_STATE) -> Tuple[str, Dict[str, Any]]:
    """
    @brief Heat-map point query for one metric and dataset

    @details
    CSV points sit on the segment start point, OSM points on the first
    vertex of the road line.
    """
    metric, source = normalize_heatmap_args(metric, source)

    if source == "osm":
        value = {
            "condition": "length_meters",
            "traffic": "COALESCE(lanes, 1)",
            "age": "length_meters",
        }[metric]
        where = "state = :state AND geom IS NOT NULL"
        if metric == "condition":
            where += " AND length_meters > 0"
        sql = (
            f"SELECT ST_X(ST_StartPoint(geom)) AS x, ST_Y(ST_StartPoint(geom)) AS y, "
            f"{value} AS value FROM osm_roads WHERE {where}"
        )
        return sql, {"state": state or DEFAULT_STATE}

    value, where = {
        "condition": ("rough_indx", "rough_indx > 0"),
        "traffic": ("cur_aadt", "cur_aadt > 0"),
        "age": (":current_year - surface_year", "surface_year > 0"),
    }[metric]
    sql = (
        f"SELECT ST_X(start_point) AS x, ST_Y(start_point) AS y, {value} AS value "
        f"FROM road_segments WHERE start_point IS NOT NULL AND {where}"
    )
    params: Dict[str, Any] = {}
    if metric == "age":
        params["current_year"] = datetime.date.today().year
    return sql, params


def fetch_heatmap(db: Session, metric: Optional[str] = "condition",
                  source: Optional[str] = "csv",
                  state: str = DEFAULT_STATE) -> List[Dict[str, Any]]:
    sql, params = build_heatmap_query(metric, source, state)
    return _rows(db.execute(text(sql), params))


def fetch_roads_in_bounds(db: Session, min_lat: float, min_lng: float,
                          max_lat: float, max_lng: float) -> List[Dict[str, Any]]:
    """Segments whose start or end point falls inside the envelope."""
    sql = f"""
        SELECT {SEGMENT_COLUMNS} FROM road_segments
        WHERE ST_Intersects(start_point, ST_MakeEnvelope(:min_lng, :min_lat, :max_lng, :max_lat, 4326))
           OR ST_Intersects(end_point, ST_MakeEnvelope(:min_lng, :min_lat, :max_lng, :max_lat, 4326))
        ORDER BY id
    """
    params = {"min_lat": min_lat, "min_lng": min_lng, "max_lat": max_lat, "max_lng": max_lng}
    return _rows(db.execute(text(sql), params))


def search_roads_by_name(db: Session, term: str) -> List[Dict[str, Any]]:
    """Street name or route number match, nearest to the reference point first."""
    sql = f"""
        SELECT {SEGMENT_COLUMNS} FROM road_segments
        WHERE street_name ILIKE :pattern OR traf_rt_no ILIKE :pattern
        ORDER BY ST_Distance(start_point, ST_SetSRID(ST_MakePoint(:ref_lng, :ref_lat), 4326)), id
        LIMIT :limit
    """
    params = {
        "pattern": f"%{term}%",
        "ref_lng": SEARCH_REFERENCE_POINT[0],
        "ref_lat": SEARCH_REFERENCE_POINT[1],
        "limit": SEARCH_LIMIT,
    }
    return _rows(db.execute(text(sql), params))


def find_osm_roads_near(db: Session, lat: float, lng: float,
                        distance_m: float = 1000) -> List[Dict[str, Any]]:
    """OSM roads within `distance_m` metres of (lat, lng), closest first."""
    sql = """
        SELECT id, name, highway,
               ST_Distance(ST_Transform(geom, 3857),
                           ST_Transform(ST_SetSRID(ST_MakePoint(:lng, :lat), 4326), 3857)) AS distance_meters
        FROM osm_roads
        WHERE ST_DWithin(ST_Transform(geom, 3857),
                         ST_Transform(ST_SetSRID(ST_MakePoint(:lng, :lat), 4326), 3857),
                         :distance)
        ORDER BY distance_meters
    """
    return _rows(db.execute(text(sql), {"lat": lat, "lng": lng, "distance": distance_m}))
