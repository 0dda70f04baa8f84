"""
Road Segment Data Model

SQLAlchemy ORM model for the state DOT road segment export (RMSSEG CSV)
stored in PostGIS.

Model: RoadSegment
- One row per CSV line that carries four non-zero endpoint coordinates
- start_point / end_point: WGS84 points built from the X/Y columns
- road_line: straight LINESTRING between the two endpoints
- additional_attrs: HSTORE bag for every secondary CSV column

Lifecycle: the whole table is replaced on every CSV import, upload, or
watched-file change (see services.road_store). Rows are never updated
individually.

Author: Road Dashboard Project
License: AGPL-3.0
"""

from sqlalchemy import Column, DateTime, Index, Integer, Numeric, String, func
from sqlalchemy.dialects.postgresql import HSTORE
from geoalchemy2 import Geometry
from road_dashboard.db.base import Base


class RoadSegment(Base):
    """
    SQLAlchemy ORM model for CSV-derived road segments.

    Attributes:
        id (int): Database-generated identifier
        objectid (int): OBJECTID from the source export
        st_rt_no (str): State route number
        cty_code (str): County code
        district_no (str): Engineering district
        seg_no (str): Segment number along the route
        fac_type (str): Facility type code (1=Interstate .. 5=Local)
        surf_type (str): Surface type code (52=Asphalt, 61=Concrete, ...)
        lane_cnt (int): Number of lanes
        rough_indx (Decimal): Roughness index, used as the condition metric
        cur_aadt (int): Annual Average Daily Traffic
        surface_year (int): Year of last resurfacing
        urban_rural (str): Urban/rural flag
        nhs_ind (str): National Highway System indicator
        additional_attrs (dict): Secondary attributes
    """

    __tablename__ = "road_segments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    objectid = Column(Integer)

    # Route identification
    st_rt_no = Column(String(10))
    cty_code = Column(String(5))
    district_no = Column(String(5), index=True)
    seg_no = Column(String(10))
    seg_lngth_feet = Column(Numeric(10, 2))

    # Classification
    fac_type = Column(String(5), index=True)
    surf_type = Column(String(5), index=True)
    lane_cnt = Column(Integer)
    total_width = Column(Numeric(8, 2))

    # Condition and traffic
    rough_indx = Column(Numeric(8, 2), index=True)
    frictn_coeff = Column(Numeric(8, 2))
    pvmnt_cond_rate = Column(String(10))
    cur_aadt = Column(Integer, index=True)

    street_name = Column(String(255))
    traf_rt_no = Column(String(20))

    # Geometry (SRID 4326); GIST indexes are created by GeoAlchemy2
    start_point = Column(Geometry("POINT", srid=4326))
    end_point = Column(Geometry("POINT", srid=4326))
    road_line = Column(Geometry("LINESTRING", srid=4326))

    segment_miles = Column(Numeric(10, 4))
    lane_miles = Column(Numeric(10, 4))
    iri_rating_text = Column(String(20))
    opi_rating_text = Column(String(20))
    surface_year = Column(Integer)
    urban_rural = Column(String(5))
    nhs_ind = Column(String(5))

    additional_attrs = Column(HSTORE)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


Index("idx_road_segments_condition_traffic", RoadSegment.rough_indx, RoadSegment.cur_aadt)
