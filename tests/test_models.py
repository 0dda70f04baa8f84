"""
Database Model and Configuration Tests

Tests for the ORM models, the schema registry and environment-driven
settings.

Test Classes:
- TestRoadSegmentModel: RoadSegment columns and construction
- TestOsmModels: Raw and derived OSM tables
- TestSchemaRegistry: Tables and statistics views
- TestSettings: Environment parsing

Author: Road Dashboard Project
License: AGPL-3.0
"""

import pytest
from geoalchemy2 import Geometry

from road_dashboard.core.config import DEFAULT_STATE, Settings, build_database_url
from road_dashboard.db.base import Base
from road_dashboard.db.schema import STATISTICS_VIEWS, VIEW_DDL
from road_dashboard.models.osm import OsmAdminBoundary, OsmRoad, OsmWay
from road_dashboard.models.road_network import RoadSegment


class TestRoadSegmentModel:
    """Test RoadSegment ORM model."""

    def test_creation(self):
        segment = RoadSegment(objectid=7, fac_type="1", lane_cnt=4, street_name="I-81")

        assert segment.objectid == 7
        assert segment.fac_type == "1"
        assert segment.lane_cnt == 4
        assert segment.additional_attrs is None

    def test_geometry_columns(self):
        columns = RoadSegment.__table__.columns
        for name, geometry_type in (("start_point", "POINT"), ("end_point", "POINT"),
                                    ("road_line", "LINESTRING")):
            assert isinstance(columns[name].type, Geometry)
            assert columns[name].type.geometry_type == geometry_type
            assert columns[name].type.srid == 4326

    def test_filter_columns_are_indexed(self):
        indexed = {col.name for index in RoadSegment.__table__.indexes for col in index.columns}
        assert {"fac_type", "surf_type", "district_no", "rough_indx", "cur_aadt"} <= indexed


class TestOsmModels:
    """Test OSM table definitions."""

    def test_road_id_is_not_generated(self):
        assert OsmRoad.__table__.columns["id"].autoincrement is False

    def test_road_state_default(self):
        assert OsmRoad.__table__.columns["state"].default.arg == DEFAULT_STATE

    def test_way_geometry_accepts_lines_and_polygons(self):
        assert OsmWay.__table__.columns["geom"].type.geometry_type == "GEOMETRY"

    def test_boundary_is_multipolygon(self):
        assert OsmAdminBoundary.__table__.columns["geom"].type.geometry_type == "MULTIPOLYGON"


class TestSchemaRegistry:
    """Test that every table and view is registered."""

    def test_tables(self):
        assert {"road_segments", "osm_nodes", "osm_ways", "osm_relations", "osm_roads",
                "osm_intersections", "osm_admin_boundaries"} <= set(Base.metadata.tables)

    def test_views(self):
        ddl = " ".join(VIEW_DDL)
        for view in STATISTICS_VIEWS.values():
            assert f"CREATE MATERIALIZED VIEW IF NOT EXISTS {view}" in ddl


class TestSettings:
    """Test environment parsing."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in ("DATABASE_URL", "DB_HOST", "DB_PORT", "DB_NAME", "DB_USER", "DB_PASSWORD",
                     "PORT", "CSV_PATH", "WATCH_CSV", "DEFAULT_STATE", "REDIS_URL", "CACHE_TTL",
                     "REJECTED_LOG"):
            monkeypatch.delenv(name, raising=False)

    def test_database_url_from_parts(self, monkeypatch):
        monkeypatch.setenv("DB_HOST", "db")
        monkeypatch.setenv("DB_NAME", "roads")

        assert build_database_url() == "postgresql://postgres:password@db:5432/roads"

    def test_database_url_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@h/d")
        monkeypatch.setenv("DB_HOST", "ignored")

        assert build_database_url() == "postgresql://u:p@h/d"

    def test_defaults(self):
        settings = Settings.from_env()

        assert settings.port == 3001
        assert settings.watch_csv is True
        assert settings.default_state == "PA"
        assert settings.cache_ttl == 300
        assert settings.rejected_log is None

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("WATCH_CSV", "false")
        monkeypatch.setenv("CSV_PATH", "")
        monkeypatch.setenv("DEFAULT_STATE", "NY")

        settings = Settings.from_env()

        assert settings.port == 8080
        assert settings.watch_csv is False
        assert settings.csv_path is None
        assert settings.default_state == "NY"
