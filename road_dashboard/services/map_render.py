"""
@file map_render.py
@brief Server-side Leaflet map of the road network (folium)

@details
One PolyLine per canonical road, colored and weighted by class, with an
HTML popup; an optional heat layer built from {x, y, value} points; and a
layer control to toggle both.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import html
import logging
from typing import Dict, Iterable, List, Optional

import folium
from folium.plugins import HeatMap

from road_dashboard.services.features import CanonicalRoad

logger = logging.getLogger(__name__)

MAP_CENTER = [40.5, -77.5]
MAP_ZOOM = 7
ROAD_OPACITY = 0.9

HEATMAP_GRADIENT = {0.4: "blue", 0.65: "yellow", 1.0: "red"}


def _na(value, suffix: str = "") -> str:
    if value is None or value == "":
        return "N/A"
    return f"{value}{suffix}"


def road_popup_html(road: CanonicalRoad) -> str:
    length = f"{road.length_miles:.2f} miles" if road.length_miles else "N/A"
    lines = [
        f"<h3>{html.escape(road.name)}</h3>",
        f"<p><strong>Route:</strong> {html.escape(_na(road.route))}</p>",
        f"<p><strong>Classification:</strong> {html.escape(_na(road.classification))}</p>",
        f"<p><strong>Surface:</strong> {html.escape(_na(road.surface))}</p>",
        f"<p><strong>Condition Index:</strong> {_na(road.condition)}</p>",
        f"<p><strong>Traffic (AADT):</strong> {_na(road.traffic)}</p>",
        f"<p><strong>Length:</strong> {length}</p>",
        f"<p><strong>Lanes:</strong> {_na(road.lanes)}</p>",
        f"<p><strong>District:</strong> {html.escape(_na(road.district))}</p>",
    ]
    if road.state:
        lines.append(f"<p><strong>State:</strong> {html.escape(road.state)}</p>")
    return "<div>" + "".join(lines) + "</div>"


def render_map(roads: Iterable[CanonicalRoad],
               heat_points: Optional[List[Dict[str, float]]] = None) -> folium.Map:
    """
    @brief Build the folium map

    @param roads Canonical roads; those without coordinates are skipped
    @param heat_points Optional [{x, y, value}] heat-map feed
    @return folium.Map (call .get_root().render() for HTML)
    """
    m = folium.Map(location=MAP_CENTER, zoom_start=MAP_ZOOM, control_scale=True)

    road_layer = folium.FeatureGroup(name="Roads", show=True)
    drawn = 0
    for road in roads:
        if not road.coordinates:
            continue
        folium.PolyLine(
            locations=[[lat, lng] for lng, lat in road.coordinates],
            color=road.color,
            weight=road.weight,
            opacity=ROAD_OPACITY,
            popup=folium.Popup(road_popup_html(road), max_width=300),
        ).add_to(road_layer)
        drawn += 1
    road_layer.add_to(m)

    if heat_points:
        heat_data = [[p["y"], p["x"], float(p["value"])] for p in heat_points
                     if p.get("x") is not None and p.get("y") is not None]
        heat_layer = folium.FeatureGroup(name="Heat Map", show=True)
        HeatMap(heat_data, radius=20, blur=15, max_zoom=17,
                gradient=HEATMAP_GRADIENT).add_to(heat_layer)
        heat_layer.add_to(m)

    folium.LayerControl(collapsed=False).add_to(m)
    logger.debug(f"Rendered map with {drawn} roads")
    return m
