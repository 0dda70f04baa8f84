"""
RMSSEG CSV Ingestion Module

Parses the state DOT road segment export (RMSSEG_(State_Roads).csv) and
loads it into the road_segments table.

1. EXTRACT: Stream the CSV in chunks with pandas (every column read as text)
2. TRANSFORM: Route each row through validate_row, which yields either a
   normalized SegmentRecord or a RowDiagnostic
3. LOAD: Replace the whole table atomically (services.road_store)

Coercion rules:
- Numeric columns accept a leading numeric prefix ("12 ft" -> 12.0,
  "3.7" read as integer -> 3). Empty or unparseable values default to 0
  (OBJECTID defaults to NULL). Text columns default to "".
- A coerced field never rejects the row; it is recorded as a warning on
  the record.
- Non-finite numbers and numbers too large for their column are coerced
  the same way.
- A row with any of the four endpoint coordinates missing, unparseable,
  non-finite or zero is rejected and reported in the rejected-rows log.
- Columns outside the known column map are kept in additional_attrs.

Usage:
    python -m road_dashboard.etl.ingest_csv PATH [--rejected-log FILE]

Author: Road Dashboard Project
License: AGPL-3.0
"""

import argparse
import logging
import math
import os
import re
import sys
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional

import pandas as pd
from geoalchemy2 import WKTElement

logger = logging.getLogger(__name__)

## CSV header -> (record field, kind)
COLUMN_MAP = {
    "OBJECTID": ("objectid", "id"),
    "ST_RT_NO": ("st_rt_no", "str"),
    "CTY_CODE": ("cty_code", "str"),
    "DISTRICT_NO": ("district_no", "str"),
    "SEG_NO": ("seg_no", "str"),
    "SEG_LNGTH_FEET": ("seg_lngth_feet", "float"),
    "FAC_TYPE": ("fac_type", "str"),
    "SURF_TYPE": ("surf_type", "str"),
    "LANE_CNT": ("lane_cnt", "int"),
    "TOTAL_WIDTH": ("total_width", "float"),
    "ROUGH_INDX": ("rough_indx", "float"),
    "FRICTN_COEFF": ("frictn_coeff", "float"),
    "PVMNT_COND_RATE": ("pvmnt_cond_rate", "str"),
    "CUR_AADT": ("cur_aadt", "int"),
    "STREET_NAME": ("street_name", "str"),
    "TRAF_RT_NO": ("traf_rt_no", "str"),
    "X_VALUE_BGN": ("x_value_bgn", "float"),
    "Y_VALUE_BGN": ("y_value_bgn", "float"),
    "X_VALUE_END": ("x_value_end", "float"),
    "Y_VALUE_END": ("y_value_end", "float"),
    "SEGMENT_MILES": ("segment_miles", "float"),
    "LANE_MILES": ("lane_miles", "float"),
    "IRI_RATING_TEXT": ("iri_rating_text", "str"),
    "OPI_RATING_TEXT": ("opi_rating_text", "str"),
    "SURFACE_YEAR": ("surface_year", "int"),
    "URBAN_RURAL": ("urban_rural", "str"),
    "NHS_IND": ("nhs_ind", "str"),
}

COORDINATE_FIELDS = ("x_value_bgn", "y_value_bgn", "x_value_end", "y_value_end")

## Exclusive magnitude bounds matching the road_segments column precisions
NUMERIC_LIMITS = {
    "seg_lngth_feet": 1e8,
    "total_width": 1e6,
    "rough_indx": 1e6,
    "frictn_coeff": 1e6,
    "segment_miles": 1e6,
    "lane_miles": 1e6,
}
INTEGER_LIMIT = 2 ** 31

## Fields stored as geometry rather than plain columns
GEOMETRY_SOURCE_FIELDS = set(COORDINATE_FIELDS)

_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")


class IngestError(Exception):
    """Raised when a source file cannot be read at all."""


def parse_float(value) -> Optional[float]:
    """Return the leading decimal number of `value`, or None."""
    if value is None:
        return None
    match = _FLOAT_PREFIX.match(str(value))
    if not match:
        return None
    return float(match.group(1))


def parse_int(value) -> Optional[int]:
    """Return the leading integer of `value`, or None ("3.7" -> 3)."""
    if value is None:
        return None
    match = _INT_PREFIX.match(str(value))
    if not match:
        return None
    return int(match.group(1))


@dataclass
class SegmentRecord:
    """Normalized CSV row, ready for insertion into road_segments."""

    objectid: Optional[int] = None
    st_rt_no: str = ""
    cty_code: str = ""
    district_no: str = ""
    seg_no: str = ""
    seg_lngth_feet: float = 0.0
    fac_type: str = ""
    surf_type: str = ""
    lane_cnt: int = 0
    total_width: float = 0.0
    rough_indx: float = 0.0
    frictn_coeff: float = 0.0
    pvmnt_cond_rate: str = ""
    cur_aadt: int = 0
    street_name: str = ""
    traf_rt_no: str = ""
    x_value_bgn: float = 0.0
    y_value_bgn: float = 0.0
    x_value_end: float = 0.0
    y_value_end: float = 0.0
    segment_miles: float = 0.0
    lane_miles: float = 0.0
    iri_rating_text: str = ""
    opi_rating_text: str = ""
    surface_year: int = 0
    urban_rural: str = ""
    nhs_ind: str = ""
    additional_attrs: Dict[str, str] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def to_row(self) -> dict:
        """
        Build the insert parameters for road_segments.

        Endpoints become SRID 4326 points; road_line is the straight line
        between them.
        """
        row = {
            column: getattr(self, column)
            for column, _ in COLUMN_MAP.values()
            if column not in GEOMETRY_SOURCE_FIELDS
        }
        start = f"{self.x_value_bgn} {self.y_value_bgn}"
        end = f"{self.x_value_end} {self.y_value_end}"
        row["start_point"] = WKTElement(f"POINT({start})", srid=4326)
        row["end_point"] = WKTElement(f"POINT({end})", srid=4326)
        row["road_line"] = WKTElement(f"LINESTRING({start}, {end})", srid=4326)
        row["additional_attrs"] = self.additional_attrs or None
        return row


@dataclass
class RowDiagnostic:
    """Why a CSV line was rejected."""

    line: int
    objectid: Optional[int]
    reason: str


@dataclass
class RowResult:
    record: Optional[SegmentRecord] = None
    diagnostic: Optional[RowDiagnostic] = None

    @property
    def accepted(self) -> bool:
        return self.record is not None


@dataclass
class IngestResult:
    """Outcome of parsing one CSV file."""

    records: List[SegmentRecord] = field(default_factory=list)
    rejected: List[RowDiagnostic] = field(default_factory=list)

    @property
    def warning_count(self) -> int:
        return sum(len(r.warnings) for r in self.records)


def _clean(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    return str(value).strip()


def _in_range(column: str, kind: str, value) -> bool:
    if kind == "float":
        if not math.isfinite(value):
            return False
        limit = NUMERIC_LIMITS.get(column)
        return limit is None or abs(value) < limit
    return abs(value) < INTEGER_LIMIT


def validate_row(raw: Mapping[str, object], line_no: int) -> RowResult:
    """
    Normalize one raw CSV row.

    Args:
        raw: Mapping of CSV header to raw cell value
        line_no: 1-based line number in the source file (header is line 1)

    Returns:
        RowResult: either a SegmentRecord (possibly with coercion warnings)
        or a RowDiagnostic when an endpoint coordinate is missing
    """
    record = SegmentRecord()

    for header, (column, kind) in COLUMN_MAP.items():
        value = _clean(raw.get(header))

        if kind == "str":
            setattr(record, column, value)
            continue

        parsed = parse_float(value) if kind == "float" else parse_int(value)
        if parsed is None:
            if value:
                record.warnings.append(f"{header}={value!r} is not numeric")
        elif not _in_range(column, kind, parsed):
            record.warnings.append(f"{header}={value!r} is out of range")
            parsed = None
        if parsed is None:
            parsed = None if kind == "id" else (0.0 if kind == "float" else 0)
        setattr(record, column, parsed)

    missing = [c for c in COORDINATE_FIELDS if not getattr(record, c)]
    if missing:
        return RowResult(diagnostic=RowDiagnostic(
            line=line_no,
            objectid=record.objectid,
            reason=f"missing coordinate(s): {', '.join(missing)}",
        ))

    for header, value in raw.items():
        if header is None or str(header).upper() in COLUMN_MAP:
            continue
        text_value = _clean(value)
        if text_value:
            record.additional_attrs[str(header).strip().lower()] = text_value

    return RowResult(record=record)


def iter_csv_rows(path: str, chunksize: int = 10000) -> Iterator[Mapping[str, object]]:
    """
    Stream raw rows from a CSV file.

    Raises:
        IngestError: if the file does not exist or has no header
    """
    if not os.path.exists(path):
        raise IngestError(f"CSV file not found: {path}")

    try:
        reader = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            chunksize=chunksize,
            encoding="utf-8-sig",
        )
        for chunk in reader:
            chunk.columns = [str(c).strip().upper() for c in chunk.columns]
            for row in chunk.to_dict("records"):
                yield row
    except pd.errors.EmptyDataError as e:
        raise IngestError(f"CSV file is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise IngestError(f"CSV file is malformed: {e}") from e


def parse_csv(path: str) -> IngestResult:
    """
    Parse and validate a whole CSV file.

    Args:
        path (str): Path to the RMSSEG export

    Returns:
        IngestResult: accepted records and rejected-row diagnostics
    """
    logger.info(f"Parsing CSV: {path}")
    result = IngestResult()

    for index, raw in enumerate(iter_csv_rows(path)):
        outcome = validate_row(raw, line_no=index + 2)
        if outcome.accepted:
            result.records.append(outcome.record)
        else:
            result.rejected.append(outcome.diagnostic)

    logger.info(f"  → {len(result.records)} valid segments, "
                f"{len(result.rejected)} rejected, "
                f"{result.warning_count} coerced fields")
    return result


def write_rejected_log(diagnostics: List[RowDiagnostic], path: str) -> None:
    """Write rejected rows as CSV (line, objectid, reason)."""
    frame = pd.DataFrame(
        [{"line": d.line, "objectid": d.objectid, "reason": d.reason} for d in diagnostics],
        columns=["line", "objectid", "reason"],
    )
    frame.to_csv(path, index=False)
    logger.info(f"Wrote {len(diagnostics)} rejected rows to {path}")


def run_import(path: str, service, rejected_log: Optional[str] = None):
    """
    Execute the full CSV import.

    Args:
        path (str): CSV file to import
        service (RoadDataService): owner of the connection pool
        rejected_log (str): optional path for the rejected-rows log

    Returns:
        IngestReport: loaded and rejected counts
    """
    logger.info("=" * 70)
    logger.info("STARTING ROAD SEGMENT CSV IMPORT")
    logger.info("=" * 70)

    report = service.reload_from_csv(path, rejected_log=rejected_log)

    logger.info("=" * 70)
    logger.info(f"✓ IMPORT COMPLETED: {report.loaded} loaded, {report.rejected} rejected")
    logger.info("=" * 70)
    return report


def main(argv=None) -> int:
    from road_dashboard.core.cache import invalidate_sync
    from road_dashboard.core.config import Settings
    from road_dashboard.core.logging import setup_logging
    from road_dashboard.db.schema import ensure_schema
    from road_dashboard.services.road_store import RoadDataService

    parser = argparse.ArgumentParser(description="Load the RMSSEG CSV export into PostGIS")
    parser.add_argument("path", nargs="?", help="CSV file (default: $CSV_PATH)")
    parser.add_argument("--rejected-log", help="Write rejected rows to this CSV file")
    args = parser.parse_args(argv)

    setup_logging()
    settings = Settings.from_env()
    settings.watch_csv = False
    path = args.path or settings.csv_path
    if not path:
        logger.critical("No CSV path given and CSV_PATH is empty")
        return 1

    service = RoadDataService(settings)
    try:
        ensure_schema(service.engine)
        run_import(path, service, rejected_log=args.rejected_log or settings.rejected_log)
        invalidate_sync(settings.redis_url)
        return 0
    except Exception as e:
        logger.critical(f"CSV import failed: {e}", exc_info=True)
        return 1
    finally:
        service.stop()


if __name__ == "__main__":
    sys.exit(main())
