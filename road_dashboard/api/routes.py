"""
@file routes.py
@brief FastAPI endpoint definitions for the road dashboard

@details
Provides RESTful endpoints for:
- CSV road segments (filtered list, bounding box, name search)
- OpenStreetMap roads (filtered list, proximity search)
- Statistics and heat-map feeds (cached in Redis)
- Styled GeoJSON export and a server-rendered map
- Place-name geocoding
- CSV upload replacing the whole segment dataset

**Error contract:** a failing query is logged and answered with HTTP 500
and the raw error message in `error`. Connection failures propagate to
DatabaseErrorMiddleware, which answers 503.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see services.queries for SQL
@see services.road_store for uploads
"""

import logging
import os
import shutil
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, JSONResponse
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from road_dashboard.core.cache import cache_key
from road_dashboard.db.database import get_db
from road_dashboard.services import queries
from road_dashboard.services.features import CanonicalRoad, feature_collection
from road_dashboard.services.geocoding import geocode
from road_dashboard.services.map_render import render_map

## @brief FastAPI router instance for API endpoints
router = APIRouter()

## @brief Module-level logger for request/response debugging
logger = logging.getLogger(__name__)

MAP_DEFAULT_LIMIT = 2000


def run_query(func, *args, **kwargs):
    """
    @brief Execute a query function with the route error contract

    @throws HTTPException(500) with the raw message for query errors
    @throws OperationalError unchanged (answered 503 by the middleware)
    """
    try:
        return func(*args, **kwargs)
    except OperationalError:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Error in {func.__name__}: {e}")
        raise HTTPException(status_code=500, detail={"error": str(e)})


def _dataset_version(request: Request) -> int:
    return request.app.state.road_service.dataset_version


# ----------------------------------------------------------------------
# CSV road segments
# ----------------------------------------------------------------------

@router.get("/api/roads")
def get_roads(
    fac_type: Optional[str] = None,
    surf_type: Optional[str] = None,
    district_no: Optional[str] = None,
    urban_rural: Optional[str] = None,
    min_condition: Optional[float] = None,
    max_condition: Optional[float] = None,
    limit: int = Query(queries.DEFAULT_LIMIT, ge=0),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """
    @brief Road segments matching every given filter, ordered by id

    @param min_condition / max_condition Bounds on the roughness index
    @param limit Page size [default: 10000]
    @param offset Rows to skip in id order [default: 0]
    """
    filters = queries.RoadFilters(
        fac_type=fac_type,
        surf_type=surf_type,
        district_no=district_no,
        urban_rural=urban_rural,
        min_condition=min_condition,
        max_condition=max_condition,
        limit=limit,
        offset=offset,
    )
    return run_query(queries.fetch_roads, db, filters)


@router.get("/api/roads/bounds")
def get_roads_in_bounds(
    min_lat: float,
    min_lng: float,
    max_lat: float,
    max_lng: float,
    db: Session = Depends(get_db),
):
    return run_query(queries.fetch_roads_in_bounds, db, min_lat, min_lng, max_lat, max_lng)


@router.get("/api/roads/search")
def search_roads(q: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    """@brief Up to 50 segments whose street name or route number contains q"""
    return run_query(queries.search_roads_by_name, db, q)


# ----------------------------------------------------------------------
# OSM roads
# ----------------------------------------------------------------------

@router.get("/api/osm-roads")
def get_osm_roads(
    request: Request,
    highway: Optional[str] = None,
    state: Optional[str] = None,
    limit: int = Query(queries.DEFAULT_LIMIT, ge=0),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    filters = queries.OsmRoadFilters(
        highway=highway,
        state=state or request.app.state.settings.default_state,
        limit=limit,
        offset=offset,
    )
    return run_query(queries.fetch_osm_roads, db, filters)


@router.get("/api/osm-roads/near")
def get_osm_roads_near(
    lat: float,
    lng: float,
    distance: float = Query(1000, gt=0),
    db: Session = Depends(get_db),
):
    return run_query(queries.find_osm_roads_near, db, lat, lng, distance)


# ----------------------------------------------------------------------
# Statistics and heat map (cached)
# ----------------------------------------------------------------------

@router.get("/api/statistics")
async def get_statistics(request: Request, db: Session = Depends(get_db)):
    """
    @brief Totals and breakdowns over the segment dataset
    @details Cached per dataset version; a failed sub-statistic is [].
    """
    cache = request.app.state.cache
    key = cache_key("statistics", f"v{_dataset_version(request)}")
    cached = await cache.get(key)
    if cached is not None:
        return cached

    stats = await run_in_threadpool(run_query, queries.fetch_statistics, db)
    await cache.set(key, stats)
    return stats


@router.get("/api/statistics/facility")
def get_facility_statistics(db: Session = Depends(get_db)):
    return run_query(queries.fetch_facility_statistics, db)


@router.get("/api/osm-statistics")
def get_osm_statistics(db: Session = Depends(get_db)):
    return run_query(queries.fetch_osm_statistics, db)


@router.get("/api/heatmap")
async def get_heatmap(
    request: Request,
    type: Optional[str] = "condition",
    data_source: Optional[str] = "csv",
    db: Session = Depends(get_db),
):
    """
    @brief Heat-map points [{x, y, value}]

    @param type condition | traffic | age (anything else: condition)
    @param data_source csv | osm (anything else: csv)
    """
    metric, source = queries.normalize_heatmap_args(type, data_source)
    state = request.app.state.settings.default_state

    cache = request.app.state.cache
    key = cache_key("heatmap", source, metric, state, f"v{_dataset_version(request)}")
    cached = await cache.get(key)
    if cached is not None:
        return cached

    points = await run_in_threadpool(run_query, queries.fetch_heatmap, db, metric, source, state)
    await cache.set(key, points)
    return points


# ----------------------------------------------------------------------
# Canonical features, map, geocoding
# ----------------------------------------------------------------------

def _canonical_roads(db: Session, source: str, limit: int, offset: int,
                     state: str, highway: Optional[str] = None, **filters):
    if source == "osm":
        rows = run_query(queries.fetch_osm_roads, db, queries.OsmRoadFilters(
            highway=highway, state=state, limit=limit, offset=offset))
        return [CanonicalRoad.from_osm_row(row) for row in rows]

    rows = run_query(queries.fetch_roads, db, queries.RoadFilters(
        limit=limit, offset=offset, **filters))
    return [CanonicalRoad.from_segment_row(row) for row in rows]


@router.get("/api/features")
def get_features(
    request: Request,
    source: str = "csv",
    fac_type: Optional[str] = None,
    surf_type: Optional[str] = None,
    district_no: Optional[str] = None,
    urban_rural: Optional[str] = None,
    highway: Optional[str] = None,
    limit: int = Query(queries.DEFAULT_LIMIT, ge=0),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    """@brief Styled roads of either dataset as a GeoJSON FeatureCollection"""
    roads = _canonical_roads(
        db, source, limit, offset,
        state=request.app.state.settings.default_state,
        highway=highway,
        fac_type=fac_type,
        surf_type=surf_type,
        district_no=district_no,
        urban_rural=urban_rural,
    )
    return feature_collection(roads)


@router.get("/map", response_class=HTMLResponse)
def get_map(
    request: Request,
    source: str = "csv",
    heatmap: Optional[str] = None,
    limit: int = Query(MAP_DEFAULT_LIMIT, ge=0),
    db: Session = Depends(get_db),
):
    """
    @brief Server-rendered Leaflet map
    @param heatmap Heat layer metric; omitted for no heat layer
    """
    state = request.app.state.settings.default_state
    roads = _canonical_roads(db, source, limit, 0, state=state)

    heat_points = None
    if heatmap:
        heat_points = run_query(queries.fetch_heatmap, db, heatmap, source, state)

    return render_map(roads, heat_points).get_root().render()


@router.get("/api/geocode")
async def get_geocode(request: Request, q: str = Query(..., min_length=1)):
    """
    @brief Place-name search
    @return {query, result}; result is null when nothing matched
    """
    result = await run_in_threadpool(geocode, q, request.app.state.settings.geocoder_url)
    return {
        "query": q,
        "result": None if result is None else {
            "lat": result.lat,
            "lon": result.lon,
            "display_name": result.display_name,
            "zoom": result.zoom,
        },
    }


# ----------------------------------------------------------------------
# Upload
# ----------------------------------------------------------------------

@router.post("/api/upload")
async def upload_csv(request: Request, csv: Optional[UploadFile] = File(None)):
    """
    @brief Replace the segment dataset with an uploaded CSV

    @details
    The file is saved under UPLOAD_DIR, loaded through the service (atomic
    replace) and deleted. On failure the previous dataset stays visible.

    @return {message, count, rejected}
    """
    if csv is None or not csv.filename:
        return JSONResponse(status_code=400, content={"error": "No file uploaded"})

    service = request.app.state.road_service
    upload_dir = request.app.state.settings.upload_dir
    os.makedirs(upload_dir, exist_ok=True)
    path = os.path.join(upload_dir, f"{uuid.uuid4().hex}.csv")

    try:
        with open(path, "wb") as out:
            shutil.copyfileobj(csv.file, out)
        report = await run_in_threadpool(service.reload_from_csv, path)
    except Exception as e:
        logger.error(f"Error processing uploaded CSV {csv.filename}: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"error": str(e)})
    finally:
        await csv.close()
        if os.path.exists(path):
            os.remove(path)

    await request.app.state.cache.invalidate()
    return {
        "message": f"Successfully loaded {report.loaded} road segments",
        "count": report.loaded,
        "rejected": report.rejected,
    }
