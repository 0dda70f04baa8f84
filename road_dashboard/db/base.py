"""
Database Base Configuration Module

Declarative base shared by the CSV segment model and the OSM models.
Every table registered here is created by db.schema.ensure_schema.

Author: Road Dashboard Project
License: AGPL-3.0
"""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
