"""
Canonical Road Records

Both datasets (CSV road segments and OSM roads) are normalized once into
CanonicalRoad so the map, the GeoJSON export and the popups read a single
shape instead of probing source-specific field names.

Fallbacks:
- name: street_name, then name, then "Unnamed Road"
- route: traf_rt_no, then ref
- length: segment_miles, else length_meters converted to miles
- district: district_no, then county

Author: Road Dashboard Project
License: AGPL-3.0
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional

from road_dashboard.services.styling import (
    facility_type_name,
    road_color,
    road_weight,
    surface_type_name,
)

METERS_TO_MILES = 0.000621371
UNNAMED_ROAD = "Unnamed Road"


def _first(*values):
    """First truthy value, or None."""
    for value in values:
        if value:
            return value
    return None


def _float(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass
class CanonicalRoad:
    """
    One drawable road, whichever dataset it came from.

    Attributes:
        source (str): "csv" or "osm"
        classification (str): Facility type label, or the OSM highway tag
        surface (str): Surface type label, or the OSM surface tag
        length_miles (float): None when the source carries no length
        coordinates (list): [[lng, lat], [lng, lat]] endpoints, or None
    """

    id: Any
    source: str
    name: str
    route: Optional[str]
    classification: Optional[str]
    surface: Optional[str]
    condition: Optional[float]
    traffic: Optional[int]
    length_miles: Optional[float]
    lanes: Optional[int]
    district: Optional[str]
    state: Optional[str]
    coordinates: Optional[List[List[float]]]
    color: str
    weight: float

    @classmethod
    def from_segment_row(cls, row: Dict[str, Any]) -> "CanonicalRoad":
        fac_type = row.get("fac_type")
        surf_type = row.get("surf_type")
        return cls(
            id=row.get("id"),
            source="csv",
            name=_first(row.get("street_name"), row.get("name")) or UNNAMED_ROAD,
            route=_first(row.get("traf_rt_no"), row.get("ref")),
            classification=facility_type_name(fac_type),
            surface=surface_type_name(surf_type),
            condition=_float(row.get("rough_indx")),
            traffic=row.get("cur_aadt"),
            length_miles=_float(row.get("segment_miles")),
            lanes=row.get("lane_cnt"),
            district=_first(row.get("district_no"), row.get("county")),
            state=row.get("state"),
            coordinates=_endpoints(row),
            color=road_color(fac_type, surf_type),
            weight=road_weight(fac_type, row.get("lane_cnt")),
        )

    @classmethod
    def from_osm_row(cls, row: Dict[str, Any]) -> "CanonicalRoad":
        highway = row.get("highway")
        length_meters = _float(row.get("length_meters"))
        coordinates = _endpoints(row)
        geometry = row.get("geometry")
        if isinstance(geometry, dict) and geometry.get("type") == "LineString":
            coordinates = [list(point) for point in geometry["coordinates"]] or coordinates

        return cls(
            id=row.get("id"),
            source="osm",
            name=_first(row.get("street_name"), row.get("name")) or UNNAMED_ROAD,
            route=_first(row.get("traf_rt_no"), row.get("ref")),
            classification=highway,
            surface=row.get("surface"),
            condition=None,
            traffic=None,
            length_miles=length_meters * METERS_TO_MILES if length_meters else None,
            lanes=row.get("lanes"),
            district=_first(row.get("district_no"), row.get("county")),
            state=row.get("state"),
            coordinates=coordinates,
            color=road_color(highway=highway),
            weight=road_weight(highway=highway, lanes=row.get("lanes")),
        )

    def to_feature(self) -> Dict[str, Any]:
        """GeoJSON Feature; geometry is null when coordinates are missing."""
        properties = asdict(self)
        coordinates = properties.pop("coordinates")
        geometry = {"type": "LineString", "coordinates": coordinates} if coordinates else None
        return {"type": "Feature", "geometry": geometry, "properties": properties}


def _endpoints(row: Dict[str, Any]) -> Optional[List[List[float]]]:
    """Start and end [lng, lat] pairs; None if any coordinate is missing or zero."""
    values = [_float(row.get(key)) for key in
              ("x_value_bgn", "y_value_bgn", "x_value_end", "y_value_end")]
    if not all(values):
        return None
    x1, y1, x2, y2 = values
    return [[x1, y1], [x2, y2]]


def feature_collection(roads: Iterable[CanonicalRoad]) -> Dict[str, Any]:
    return {
        "type": "FeatureCollection",
        "features": [road.to_feature() for road in roads],
    }
