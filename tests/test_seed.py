"""
Database Initialization Tests

Tests for startup initialization: connection retries, seed detection and
the initial CSV load.

Test Classes:
- TestWaitForDatabase: Connection retry logic
- TestCheckDatabaseSeeded: Seed status verification
- TestInitializeDatabase: Complete initialization workflow

Author: Road Dashboard Project
License: AGPL-3.0
"""

import pytest
from unittest.mock import MagicMock, patch
from sqlalchemy.exc import OperationalError

from road_dashboard.db.seed import (
    check_database_seeded,
    initialize_database,
    wait_for_database,
)
from road_dashboard.etl.ingest_csv import IngestError
from road_dashboard.services.road_store import IngestReport


class TestWaitForDatabase:
    """Test database connection retry logic."""

    def test_wait_for_database_success(self):
        engine = MagicMock()
        assert wait_for_database(engine, max_retries=1) is True
        engine.connect.assert_called_once()

    def test_wait_for_database_timeout(self):
        engine = MagicMock()
        engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("Connection refused"))

        assert wait_for_database(engine, max_retries=3, retry_delay=0) is False
        assert engine.connect.call_count == 3

    def test_wait_for_database_recovers(self):
        engine = MagicMock()
        ok = MagicMock()
        engine.connect.side_effect = [OperationalError("SELECT 1", {}, Exception("starting")), ok]

        assert wait_for_database(engine, max_retries=3, retry_delay=0) is True


class TestCheckDatabaseSeeded:
    """Test seed status verification."""

    def _engine(self, count):
        engine = MagicMock()
        conn = engine.connect.return_value.__enter__.return_value
        conn.execute.return_value.scalar.return_value = count
        return engine

    def test_seeded(self):
        with patch("road_dashboard.db.seed.inspect") as mock_inspect:
            mock_inspect.return_value.get_table_names.return_value = ["road_segments"]
            assert check_database_seeded(self._engine(12)) is True

    def test_empty_table(self):
        with patch("road_dashboard.db.seed.inspect") as mock_inspect:
            mock_inspect.return_value.get_table_names.return_value = ["road_segments"]
            assert check_database_seeded(self._engine(0)) is False

    def test_missing_table(self):
        with patch("road_dashboard.db.seed.inspect") as mock_inspect:
            mock_inspect.return_value.get_table_names.return_value = []
            assert check_database_seeded(self._engine(12)) is False

    def test_error_means_not_seeded(self):
        with patch("road_dashboard.db.seed.inspect", side_effect=OperationalError("x", {}, Exception("down"))):
            assert check_database_seeded(MagicMock()) is False


class TestInitializeDatabase:
    """Test the complete initialization workflow."""

    @pytest.fixture
    def service(self, settings):
        service = MagicMock()
        service.settings = settings
        service.reload_from_csv.return_value = IngestReport("roads.csv", 10, 1, 1)
        return service

    @pytest.fixture
    def seed(self):
        with patch("road_dashboard.db.seed.wait_for_database", return_value=True) as wait, \
             patch("road_dashboard.db.seed.ensure_schema") as schema, \
             patch("road_dashboard.db.seed.check_database_seeded", return_value=False) as seeded:
            yield MagicMock(wait=wait, schema=schema, seeded=seeded)

    def test_database_unreachable(self, service, seed):
        seed.wait.return_value = False

        assert initialize_database(service, max_retries=1, retry_delay=0) is False
        seed.schema.assert_not_called()

    def test_schema_failure(self, service, seed):
        seed.schema.side_effect = OperationalError("CREATE EXTENSION", {}, Exception("denied"))
        assert initialize_database(service) is False

    def test_already_seeded(self, service, seed):
        seed.seeded.return_value = True

        assert initialize_database(service) is True
        service.reload_from_csv.assert_not_called()

    def test_no_csv_starts_empty(self, service, seed, tmp_path):
        service.settings.csv_path = str(tmp_path / "missing.csv")

        assert initialize_database(service) is True
        service.reload_from_csv.assert_not_called()

    def test_initial_load(self, service, seed, write_csv):
        service.settings.csv_path = write_csv([])

        assert initialize_database(service) is True
        seed.schema.assert_called_once_with(service.engine)
        service.reload_from_csv.assert_called_once_with(service.settings.csv_path)

    def test_initial_load_failure(self, service, seed, write_csv):
        service.settings.csv_path = write_csv([])
        service.reload_from_csv.side_effect = IngestError("CSV file is empty")

        assert initialize_database(service) is False
