"""
@file styling.py
@brief Road color, line weight and code-label lookup tables

@details
Color precedence: OSM highway class, then facility type, then surface
type. Line weight is max(floor, lanes * scale) with a per-class
(floor, scale) pair.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

from typing import Optional

DEFAULT_COLOR = "#888888"
OTHER_HIGHWAY_COLOR = "#666666"

## @brief Highway prefix -> color (motorway_link matches motorway)
HIGHWAY_COLORS = [
    ("motorway", "#0066cc"),
    ("trunk", "#00aa00"),
    ("primary", "#ffaa00"),
    ("secondary", "#9966cc"),
    ("tertiary", "#ff6666"),
]

FACILITY_COLORS = {
    "1": "#0066cc",
    "2": "#00aa00",
    "3": "#ffaa00",
    "4": "#9966cc",
    "5": "#ff6666",
}

SURFACE_COLORS = {
    "52": "#00aa00",
    "61": "#0066cc",
    "62": "#ffaa00",
}

## @brief (floor, scale) per OSM highway class
HIGHWAY_WEIGHTS = {
    "motorway": (4.0, 0.8),
    "trunk": (3.5, 0.7),
    "primary": (3.0, 0.6),
    "secondary": (2.5, 0.5),
    "tertiary": (2.0, 0.4),
    "residential": (1.5, 0.3),
    "unclassified": (1.5, 0.3),
}
OTHER_HIGHWAY_WEIGHT = (1.0, 0.2)

## @brief (floor, scale) per facility type
FACILITY_WEIGHTS = {
    "1": (3.0, 0.8),
    "2": (2.5, 0.7),
    "3": (2.0, 0.6),
    "4": (1.5, 0.5),
    "5": (1.0, 0.4),
}
OTHER_FACILITY_WEIGHT = (1.0, 0.3)

FACILITY_TYPE_NAMES = {
    "1": "Interstate",
    "2": "US Route",
    "3": "State Route",
    "4": "County Route",
    "5": "Local Road",
}

SURFACE_TYPE_NAMES = {
    "52": "Asphalt",
    "61": "Concrete",
    "62": "Composite",
    "63": "Gravel",
    "64": "Dirt",
}


def _code(value) -> str:
    """Normalize a type code ("1", 1, 1.0) to its string key."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def road_color(fac_type=None, surf_type=None, highway: Optional[str] = None) -> str:
    if highway:
        for prefix, color in HIGHWAY_COLORS:
            if highway.startswith(prefix):
                return color
        if highway in ("residential", "unclassified"):
            return DEFAULT_COLOR
        return OTHER_HIGHWAY_COLOR

    fac = _code(fac_type)
    if fac in FACILITY_COLORS:
        return FACILITY_COLORS[fac]

    return SURFACE_COLORS.get(_code(surf_type), DEFAULT_COLOR)


def road_weight(fac_type=None, lane_cnt=None, highway: Optional[str] = None, lanes=None) -> float:
    if highway:
        floor, scale = OTHER_HIGHWAY_WEIGHT
        for prefix, pair in HIGHWAY_WEIGHTS.items():
            if highway.startswith(prefix):
                floor, scale = pair
                break
        count = lanes or lane_cnt or 1
    else:
        floor, scale = FACILITY_WEIGHTS.get(_code(fac_type), OTHER_FACILITY_WEIGHT)
        count = lane_cnt or 1

    return max(floor, float(count) * scale)


def facility_type_name(fac_type) -> str:
    return FACILITY_TYPE_NAMES.get(_code(fac_type), "Unknown")


def surface_type_name(surf_type) -> str:
    return SURFACE_TYPE_NAMES.get(_code(surf_type), "Unknown")
