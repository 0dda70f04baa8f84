"""
@file __init__.py
@brief Road classification dashboard backend package

@details
FastAPI service and import jobs for state road segment and OpenStreetMap
road data stored in PostGIS.

**Package Structure:**
- api/: FastAPI route handlers and endpoint definitions
- core/: Configuration, logging, cache, health, error handling
- db/: Engine/session factories, schema bootstrap, startup initialization
- etl/: CSV and OSM PBF ingestion (library functions and CLIs)
- models/: SQLAlchemy ORM models for the PostGIS schema
- services/: Dataset service, queries, styling, map rendering, geocoding

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see main for FastAPI application setup
@see api.routes for endpoint documentation
"""
