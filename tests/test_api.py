"""
API Endpoint Tests

Tests for the FastAPI endpoints with the database session, the road data
service and the Redis cache replaced by in-memory doubles.

Test Classes:
- TestRootEndpoint: GET / documentation page
- TestRoadsEndpoints: /api/roads, /bounds, /search
- TestOsmEndpoints: /api/osm-roads, /near
- TestErrorContract: query errors (500) vs connection errors (503)
- TestStatisticsEndpoint: cached statistics battery
- TestHeatmapEndpoint: metric/source fallbacks and caching
- TestFeaturesAndMap: GeoJSON export and rendered map
- TestGeocodeEndpoint: place-name search
- TestUploadEndpoint: CSV upload replacing the dataset
- TestHealthEndpoints: /health, /health/ready, /health/live

Author: Road Dashboard Project
License: AGPL-3.0
"""

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

from sqlalchemy.exc import OperationalError, ProgrammingError

from road_dashboard.etl.ingest_csv import IngestError
from road_dashboard.services.geocoding import GeocodeResult
from road_dashboard.services.road_store import IngestReport


def make_row(**values):
    return SimpleNamespace(_mapping=values)


class FakeResult:
    def __init__(self, rows=None):
        self.rows = rows or []

    def __iter__(self):
        return iter(self.rows)


SEGMENT = dict(
    id=1, objectid=11, street_name="MAIN ST", traf_rt_no="PA322", fac_type="3",
    surf_type="52", lane_cnt=2, rough_indx=120.0, cur_aadt=8500, segment_miles=0.5,
    district_no="08", x_value_bgn=-77.1, y_value_bgn=40.1, x_value_end=-77.0, y_value_end=40.2,
)


class TestRootEndpoint:
    """Test GET / documentation page."""

    def test_root_returns_html(self, api_client):
        response = api_client.get("/")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "Road Classification Dashboard" in response.text

    def test_root_documents_endpoints(self, api_client):
        response = api_client.get("/")
        for path in ("/api/roads", "/api/heatmap", "/api/upload", "/map"):
            assert path in response.text


class TestRoadsEndpoints:
    """Test the CSV segment endpoints."""

    def test_roads_empty(self, api_client):
        response = api_client.get("/api/roads")

        assert response.status_code == 200
        assert response.json() == []

    def test_roads_passes_filters(self, api_client, mock_session):
        mock_session.execute.return_value = [make_row(**SEGMENT)]

        response = api_client.get("/api/roads", params={
            "fac_type": "3", "min_condition": 100, "limit": 5, "offset": 10})

        assert response.status_code == 200
        assert response.json()[0]["street_name"] == "MAIN ST"
        statement, params = mock_session.execute.call_args[0]
        assert "fac_type = :fac_type" in str(statement)
        assert params["fac_type"] == "3"
        assert params["min_condition"] == 100
        assert params["limit"] == 5
        assert params["offset"] == 10

    def test_negative_limit_is_rejected(self, api_client):
        response = api_client.get("/api/roads", params={"limit": -1})

        assert response.status_code == 422
        assert response.json()["error"] == "Validation error"

    def test_bounds_requires_box(self, api_client):
        assert api_client.get("/api/roads/bounds", params={"min_lat": 40}).status_code == 422

    def test_bounds(self, api_client, mock_session):
        response = api_client.get("/api/roads/bounds", params={
            "min_lat": 40, "min_lng": -78, "max_lat": 41, "max_lng": -77})

        assert response.status_code == 200
        _, params = mock_session.execute.call_args[0]
        assert params == {"min_lat": 40, "min_lng": -78, "max_lat": 41, "max_lng": -77}

    def test_search_requires_term(self, api_client):
        assert api_client.get("/api/roads/search", params={"q": ""}).status_code == 422

    def test_search(self, api_client, mock_session):
        response = api_client.get("/api/roads/search", params={"q": "main"})

        assert response.status_code == 200
        _, params = mock_session.execute.call_args[0]
        assert params["pattern"] == "%main%"


class TestOsmEndpoints:
    """Test the OSM road endpoints."""

    def test_default_state(self, api_client, mock_session):
        response = api_client.get("/api/osm-roads", params={"highway": "primary"})

        assert response.status_code == 200
        _, params = mock_session.execute.call_args[0]
        assert params["state"] == "PA"
        assert params["highway"] == "primary"

    def test_near_default_distance(self, api_client, mock_session):
        response = api_client.get("/api/osm-roads/near", params={"lat": 40.0, "lng": -77.0})

        assert response.status_code == 200
        _, params = mock_session.execute.call_args[0]
        assert params["distance"] == 1000


class TestErrorContract:
    """Test query errors vs connection errors."""

    def test_query_error_returns_raw_message(self, api_client, mock_session):
        mock_session.execute.side_effect = ProgrammingError(
            "SELECT", {}, Exception('relation "road_segments" does not exist'))

        response = api_client.get("/api/roads")

        assert response.status_code == 500
        assert 'relation "road_segments" does not exist' in response.json()["error"]

    def test_connection_error_returns_maintenance(self, api_client, mock_session):
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

        response = api_client.get("/api/osm-statistics")

        assert response.status_code == 503
        assert response.json()["error"] == "Service unavailable"


class TestStatisticsEndpoint:
    """Test the cached statistics battery."""

    def test_cache_hit_skips_database(self, api_client, fake_cache, mock_session):
        fake_cache.get.return_value = {"total_segments": 3}

        response = api_client.get("/api/statistics")

        assert response.json() == {"total_segments": 3}
        fake_cache.get.assert_awaited_once_with("road_dashboard:statistics:v0")
        mock_session.execute.assert_not_called()

    def test_cache_miss_queries_and_stores(self, api_client, fake_cache, fake_service, mock_session):
        fake_service.dataset_version = 4
        mock_session.execute.return_value = FakeResult([make_row(count=0)])

        response = api_client.get("/api/statistics")

        assert response.status_code == 200
        body = response.json()
        assert body["total_segments"] == [{"count": 0}]
        assert body["by_fac_type"] == [{"count": 0}]
        fake_cache.set.assert_awaited_once()
        assert fake_cache.set.call_args[0][0] == "road_dashboard:statistics:v4"

    def test_facility_statistics(self, api_client, mock_session):
        mock_session.execute.return_value = [make_row(fac_type="1", segment_count=2)]

        response = api_client.get("/api/statistics/facility")

        assert response.json() == [{"fac_type": "1", "segment_count": 2}]


class TestHeatmapEndpoint:
    """Test metric/source fallbacks and caching."""

    def test_unknown_type_falls_back_to_condition(self, api_client, fake_cache, mock_session):
        response = api_client.get("/api/heatmap", params={"type": "bogus", "data_source": "x"})

        assert response.status_code == 200
        statement = mock_session.execute.call_args[0][0]
        assert "rough_indx > 0" in str(statement)
        assert fake_cache.set.call_args[0][0] == "road_dashboard:heatmap:csv:condition:PA:v0"

    def test_points(self, api_client, mock_session):
        mock_session.execute.return_value = [make_row(x=-77.0, y=40.0, value=95.5)]

        response = api_client.get("/api/heatmap", params={"type": "traffic"})

        assert response.json() == [{"x": -77.0, "y": 40.0, "value": 95.5}]

    def test_cached_points(self, api_client, fake_cache, mock_session):
        fake_cache.get.return_value = [{"x": 1, "y": 2, "value": 3}]

        response = api_client.get("/api/heatmap", params={"data_source": "osm"})

        assert response.json() == [{"x": 1, "y": 2, "value": 3}]
        mock_session.execute.assert_not_called()


class TestFeaturesAndMap:
    """Test GeoJSON export and the rendered map."""

    def test_features(self, api_client, mock_session):
        mock_session.execute.return_value = [make_row(**SEGMENT)]

        response = api_client.get("/api/features")

        body = response.json()
        assert body["type"] == "FeatureCollection"
        feature = body["features"][0]
        assert feature["geometry"]["coordinates"] == [[-77.1, 40.1], [-77.0, 40.2]]
        assert feature["properties"]["classification"] == "State Route"
        assert feature["properties"]["color"] == "#ffaa00"

    def test_map(self, api_client, mock_session):
        mock_session.execute.return_value = [make_row(**SEGMENT)]

        response = api_client.get("/map")

        assert response.status_code == 200
        assert "text/html" in response.headers["content-type"]
        assert "leaflet" in response.text.lower()

    def test_map_with_heat_layer(self, api_client, mock_session):
        mock_session.execute.return_value = [make_row(**SEGMENT, x=-77.0, y=40.0, value=120.0)]

        response = api_client.get("/map", params={"heatmap": "condition"})

        assert response.status_code == 200
        assert mock_session.execute.call_count == 2


class TestGeocodeEndpoint:
    """Test place-name search."""

    def test_result(self, api_client):
        with patch("road_dashboard.api.routes.geocode",
                   return_value=GeocodeResult(40.27, -76.88, "Harrisburg, PA")):
            response = api_client.get("/api/geocode", params={"q": "Harrisburg"})

        assert response.json() == {
            "query": "Harrisburg",
            "result": {"lat": 40.27, "lon": -76.88, "display_name": "Harrisburg, PA", "zoom": 12},
        }

    def test_no_result(self, api_client):
        with patch("road_dashboard.api.routes.geocode", return_value=None):
            response = api_client.get("/api/geocode", params={"q": "Nowhere"})

        assert response.json() == {"query": "Nowhere", "result": None}


class TestUploadEndpoint:
    """Test CSV upload."""

    def test_no_file(self, api_client, fake_service):
        response = api_client.post("/api/upload")

        assert response.status_code == 400
        assert response.json() == {"error": "No file uploaded"}
        fake_service.reload_from_csv.assert_not_called()

    def test_upload_replaces_dataset(self, api_client, fake_service, fake_cache):
        seen = {}

        def reload(path):
            seen["path"] = path
            with open(path) as f:
                seen["content"] = f.read()
            return IngestReport(source=path, loaded=2, rejected=1, dataset_version=1)

        fake_service.reload_from_csv.side_effect = reload

        response = api_client.post(
            "/api/upload", files={"csv": ("roads.csv", b"OBJECTID\n1\n", "text/csv")})

        assert response.status_code == 200
        assert response.json() == {
            "message": "Successfully loaded 2 road segments", "count": 2, "rejected": 1}
        assert seen["content"] == "OBJECTID\n1\n"
        assert not os.path.exists(seen["path"])
        fake_cache.invalidate.assert_awaited_once()

    def test_failed_upload(self, api_client, fake_service, fake_cache):
        fake_service.reload_from_csv.side_effect = IngestError("CSV file is empty")

        response = api_client.post("/api/upload", files={"csv": ("roads.csv", b"", "text/csv")})

        assert response.status_code == 500
        assert response.json() == {"error": "CSV file is empty"}
        fake_cache.invalidate.assert_not_awaited()
        uploaded = fake_service.reload_from_csv.call_args[0][0]
        assert not os.path.exists(uploaded)


class TestHealthEndpoints:
    """Test health probes."""

    def test_live(self, api_client):
        response = api_client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True

    def test_degraded_without_cache(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "degraded"
        assert body["components"]["database"]["status"] == "healthy"
        assert "note" in body

    def test_healthy(self, api_client, fake_cache):
        fake_cache.client = AsyncMock()

        response = api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert api_client.get("/health/ready").json()["ready"] is True

    def test_database_down(self, api_client, fake_cache, mock_session):
        fake_cache.client = AsyncMock()
        mock_session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))

        response = api_client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"
