"""
Map Rendering Tests

Tests for the folium road map: one PolyLine per drawable road, the
optional heat layer and the popup contents.

Author: Road Dashboard Project
License: AGPL-3.0
"""

import folium
from folium.plugins import HeatMap

from road_dashboard.services.features import CanonicalRoad
from road_dashboard.services.map_render import render_map, road_popup_html


def make_road(road_id, coordinates=((-77.1, 40.1), (-77.0, 40.2)), **overrides):
    values = dict(
        id=road_id, source="csv", name="MAIN ST", route="PA322",
        classification="State Route", surface="Asphalt", condition=120.0,
        traffic=8500, length_miles=0.5, lanes=2, district="08", state=None,
        coordinates=[list(c) for c in coordinates] if coordinates else None,
        color="#ffaa00", weight=2.0,
    )
    values.update(overrides)
    return CanonicalRoad(**values)


def layer(m, name):
    for child in m._children.values():
        if isinstance(child, folium.FeatureGroup) and child.layer_name == name:
            return child
    return None


def children_of(group, kind):
    return [c for c in group._children.values() if isinstance(c, kind)]


class TestRenderMap:
    """Test map layer construction."""

    def test_one_polyline_per_road(self):
        m = render_map([make_road(1), make_road(2), make_road(3, coordinates=None)])

        lines = children_of(layer(m, "Roads"), folium.PolyLine)
        assert len(lines) == 2

    def test_polyline_is_lat_lng(self):
        m = render_map([make_road(1)])

        line = children_of(layer(m, "Roads"), folium.PolyLine)[0]
        assert [list(p) for p in line.locations] == [[40.1, -77.1], [40.2, -77.0]]

    def test_no_heat_layer_by_default(self):
        m = render_map([make_road(1)])
        assert layer(m, "Heat Map") is None

    def test_heat_layer(self):
        points = [{"x": -77.0, "y": 40.0, "value": 100}, {"x": None, "y": 40.0, "value": 5}]

        m = render_map([], heat_points=points)

        heat = children_of(layer(m, "Heat Map"), HeatMap)
        assert len(heat) == 1
        assert len(heat[0].data) == 1

    def test_renders_html(self):
        html = render_map([make_road(1)]).get_root().render()
        assert "leaflet" in html.lower()
        assert "MAIN ST" in html


class TestPopup:
    """Test popup HTML."""

    def test_missing_values_are_na(self):
        popup = road_popup_html(make_road(1, route=None, traffic=None, length_miles=None))

        assert "<strong>Route:</strong> N/A" in popup
        assert "<strong>Traffic (AADT):</strong> N/A" in popup
        assert "<strong>Length:</strong> N/A" in popup

    def test_length_and_state(self):
        popup = road_popup_html(make_road(1, length_miles=1.234, state="PA"))

        assert "1.23 miles" in popup
        assert "<strong>State:</strong> PA" in popup

    def test_name_is_escaped(self):
        popup = road_popup_html(make_road(1, name="<b>A & B</b>"))
        assert "&lt;b&gt;A &amp; B&lt;/b&gt;" in popup
