"""
OpenStreetMap Data Models

SQLAlchemy ORM models for OSM data decoded from .osm.pbf extracts.

Raw tables (one row per OSM primitive, tags kept as HSTORE):
- OsmNode: tagged nodes and their point geometry
- OsmWay: ways with member node ids and line/polygon geometry
- OsmRelation: relations with encoded member lists

Derived tables (rebuilt from the raw tables on every import):
- OsmRoad: highway ways with normalized attributes and projected length
- OsmIntersection: signal/stop/junction nodes
- OsmAdminBoundary: closed administrative boundary ways

The derived tables are never patched incrementally; see etl.ingest_osm.

Author: Road Dashboard Project
License: AGPL-3.0
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, HSTORE
from geoalchemy2 import Geometry
from road_dashboard.core.config import DEFAULT_STATE
from road_dashboard.db.base import Base


class OsmNode(Base):
    """Raw OSM node."""

    __tablename__ = "osm_nodes"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    version = Column(Integer)
    user_id = Column(Integer)
    tstamp = Column(DateTime)
    changeset_id = Column(BigInteger)
    tags = Column(HSTORE)
    geom = Column(Geometry("POINT", srid=4326))


class OsmWay(Base):
    """Raw OSM way. `nodes` keeps the ordered member node ids."""

    __tablename__ = "osm_ways"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    version = Column(Integer)
    user_id = Column(Integer)
    tstamp = Column(DateTime)
    changeset_id = Column(BigInteger)
    tags = Column(HSTORE)
    nodes = Column(ARRAY(BigInteger))
    geom = Column(Geometry("GEOMETRY", srid=4326))


class OsmRelation(Base):
    """Raw OSM relation. Members are encoded as '<type><ref>:<role>'."""

    __tablename__ = "osm_relations"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    version = Column(Integer)
    user_id = Column(Integer)
    tstamp = Column(DateTime)
    changeset_id = Column(BigInteger)
    tags = Column(HSTORE)
    members = Column(ARRAY(Text))


class OsmRoad(Base):
    """
    Road extracted from a highway-tagged way.

    Attributes:
        id (int): OSM way id
        highway (str): OSM highway tag (motorway, trunk, primary, ...)
        lanes (int): Parsed only when the tag is a plain integer
        width (Decimal): Parsed only when the tag is numeric
        oneway (bool): yes -> True, no -> False, otherwise NULL
        state/county/city (str): Administrative labels
        length_meters (Decimal): Length of the projected geometry
    """

    __tablename__ = "osm_roads"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    osm_id = Column(BigInteger)
    name = Column(String(255))
    highway = Column(String(50), index=True)
    surface = Column(String(50), index=True)
    maxspeed = Column(String(20))
    lanes = Column(Integer)
    width = Column(Numeric(8, 2))
    oneway = Column(Boolean)
    bridge = Column(Boolean)
    tunnel = Column(Boolean)
    access = Column(String(50))
    ref = Column(String(100))
    operator = Column(String(255))
    network = Column(String(100))
    state = Column(String(10), default=DEFAULT_STATE, server_default=DEFAULT_STATE, index=True)
    county = Column(String(100))
    city = Column(String(100))
    tags = Column(HSTORE)
    geom = Column(Geometry("LINESTRING", srid=4326))
    length_meters = Column(Numeric(12, 2))
    created_at = Column(DateTime, server_default=func.now())


class OsmIntersection(Base):
    """Traffic control or junction node."""

    __tablename__ = "osm_intersections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    osm_id = Column(BigInteger)
    name = Column(String(255))
    highway = Column(String(50))
    junction = Column(String(50))
    traffic_signals = Column(Boolean)
    state = Column(String(10), default=DEFAULT_STATE, server_default=DEFAULT_STATE)
    county = Column(String(100))
    city = Column(String(100))
    tags = Column(HSTORE)
    geom = Column(Geometry("POINT", srid=4326))
    created_at = Column(DateTime, server_default=func.now())


class OsmAdminBoundary(Base):
    """Administrative boundary built from a closed way."""

    __tablename__ = "osm_admin_boundaries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    osm_id = Column(BigInteger)
    name = Column(String(255))
    admin_level = Column(Integer)
    boundary = Column(String(50))
    place = Column(String(50))
    population = Column(Integer)
    tags = Column(HSTORE)
    geom = Column(Geometry("MULTIPOLYGON", srid=4326))
    created_at = Column(DateTime, server_default=func.now())
