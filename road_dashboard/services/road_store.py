"""
@file road_store.py
@brief Road data service: connection pool, atomic dataset replacement, CSV watch

@details
RoadDataService is constructed explicitly by the application factory (or
by an import job) and passed to whoever needs it. It owns:

- the SQLAlchemy engine and its connection pool
- the session factory used by request handlers
- the CSV file watcher subscription (start/stop lifecycle)
- the reload lock that serializes full-table replacements

**Replacement guarantee:** readers always see either the previous complete
dataset or the new complete dataset. The replacement runs as a single
transaction (advisory lock, DELETE, batched INSERT, view refresh, COMMIT);
PostgreSQL MVCC keeps the old rows visible to readers until commit. The
process-local lock keeps a watcher reload and an upload from running at
the same time; the advisory lock does the same across processes.

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see etl.ingest_csv for parsing and validation
@see services.watcher for change detection
"""

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import func, select, text

from road_dashboard.core.config import Settings
from road_dashboard.db.database import create_db_engine, create_session_factory
from road_dashboard.db.schema import refresh_statistics_view
from road_dashboard.etl.ingest_csv import SegmentRecord, parse_csv, write_rejected_log
from road_dashboard.models.road_network import RoadSegment
from road_dashboard.services.watcher import CsvFileWatcher

logger = logging.getLogger(__name__)

## @brief pg_advisory_xact_lock key guarding road_segments replacement
ROAD_SEGMENTS_LOCK_KEY = 7_340_001


@dataclass
class IngestReport:
    """Result of one CSV reload."""

    source: str
    loaded: int
    rejected: int
    dataset_version: int


class RoadDataService:
    """
    @brief Owner of the database pool and of the CSV dataset lifecycle
    """

    def __init__(self, settings: Optional[Settings] = None, engine=None):
        """
        @param settings Runtime settings [default: Settings.from_env()]
        @param engine Pre-built engine (tests); built from settings when omitted
        """
        self.settings = settings or Settings.from_env()
        self.engine = engine if engine is not None else create_db_engine(self.settings.database_url)
        self.session_factory = create_session_factory(self.engine)

        self._reload_lock = threading.Lock()
        self._watcher: Optional[CsvFileWatcher] = None
        self._started = False

        ## Bumped after every committed replacement; part of cache keys
        self.dataset_version = 0
        self.last_report: Optional[IngestReport] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """
        @brief Start the CSV watch subscription
        @details No-op when already started, when watching is disabled, or
        when no CSV path is configured.
        """
        if self._started:
            return
        self._started = True

        if self.settings.watch_csv and self.settings.csv_path:
            self._watcher = CsvFileWatcher(
                self.settings.csv_path,
                on_change=self._on_csv_change,
                interval=self.settings.watch_interval,
            )
            self._watcher.start()

    def stop(self) -> None:
        """@brief Stop the watcher and release pooled connections"""
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None
        self._started = False
        self.engine.dispose()

    @property
    def watching(self) -> bool:
        return self._watcher is not None and self._watcher.running

    def session(self):
        """@brief New ORM session bound to the service's pool"""
        return self.session_factory()

    # ------------------------------------------------------------------
    # Dataset replacement
    # ------------------------------------------------------------------

    def replace_segments(self, records: Iterable[SegmentRecord]) -> int:
        """
        @brief Atomically replace every row of road_segments

        @details
        1. Acquire the process-local reload lock
        2. BEGIN; pg_advisory_xact_lock
        3. DELETE FROM road_segments
        4. INSERT in batches of settings.batch_size
        5. REFRESH MATERIALIZED VIEW road_statistics
        6. COMMIT (any failure rolls back and the old dataset stays visible)

        @param records Normalized segment records
        @return Number of inserted rows
        @throws SQLAlchemyError on database failure (after rollback)
        """
        rows = [record.to_row() for record in records]
        table = RoadSegment.__table__
        batch_size = self.settings.batch_size

        with self._reload_lock:
            with self.engine.begin() as conn:
                conn.execute(
                    text("SELECT pg_advisory_xact_lock(:key)"),
                    {"key": ROAD_SEGMENTS_LOCK_KEY},
                )
                conn.execute(table.delete())

                for start in range(0, len(rows), batch_size):
                    conn.execute(table.insert(), rows[start:start + batch_size])
                    logger.info(f"Processed {min(start + batch_size, len(rows))} "
                                f"of {len(rows)} records")

                refresh_statistics_view(conn, "csv")

            self.dataset_version += 1

        logger.info(f"Loaded {len(rows)} road segments into database "
                    f"(dataset version {self.dataset_version})")
        return len(rows)

    def reload_from_csv(self, path: Optional[str] = None,
                        rejected_log: Optional[str] = None) -> IngestReport:
        """
        @brief Parse a CSV file and replace the dataset with its rows

        @param path CSV file [default: settings.csv_path]
        @param rejected_log Optional rejected-rows CSV output
        @return IngestReport
        @throws IngestError when the file is missing or unreadable
        """
        path = path or self.settings.csv_path
        result = parse_csv(path)

        rejected_log = rejected_log or self.settings.rejected_log
        if rejected_log and result.rejected:
            write_rejected_log(result.rejected, rejected_log)

        loaded = self.replace_segments(result.records)
        report = IngestReport(
            source=path,
            loaded=loaded,
            rejected=len(result.rejected),
            dataset_version=self.dataset_version,
        )
        self.last_report = report
        return report

    def segment_count(self) -> int:
        """@brief Number of visible rows in road_segments"""
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(RoadSegment.__table__)).scalar()

    def _on_csv_change(self, path: str) -> None:
        logger.info("CSV file changed, reloading data...")
        self.reload_from_csv(path)
