"""
Test Suite for the Road Dashboard Backend

Test Categories:
- test_etl: CSV validation and ingestion
- test_etl_osm: PBF decoding helpers and OSM loading
- test_queries: SQL assembly and result shaping
- test_road_store / test_watcher: Dataset replacement and file watching
- test_api: FastAPI endpoints
- test_integration: PostgreSQL-backed behavior (skipped without a database)
- conftest.py: Shared fixtures and test configuration

Running Tests:
    pytest              # Run all tests
    pytest -m unit      # No database required
    pytest --cov        # With coverage report

Author: Road Dashboard Project
License: AGPL-3.0
"""
