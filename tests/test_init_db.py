"""Tests for the schema initialization script."""

import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect

sys.path.append(str(Path(__file__).resolve().parent.parent / "scripts"))

from common_lib.config import DatabaseEngine  # noqa: E402
from init_db import init_database, schema_path, split_statements  # noqa: E402

EXPECTED_TABLES = {
    "CveMetadata", "RootCve", "Containers", "ProviderMetadata", "CnaContainer", "AdpContainer",
    "Affected", "Versions", "VersionChanges", "Modules", "Cpes", "Platforms", "ProgramFiles",
    "ProgramRoutines", "Description", "SupportingMedia", "Metric", "MetricScenario",
    "TimelineEntry", "Credit", "Reference", "ReferenceTags", "ProblemType",
    "ProblemTypeDescription", "AdpMetric", "CvssV2_0", "CvssV3_0", "CvssV3_1", "CvssV4_0",
    "Ssvc", "SsvcContent", "SsvcOption",
}


class TestSplitStatements:
    """Test split_statements function."""

    def test_comments_and_blank_statements_dropped(self):
        """Test comment lines and empty fragments are removed."""
        script = "-- header\nCREATE TABLE A (Id INT);\n\n  -- note\nCREATE TABLE B (Id INT);\n;"
        assert split_statements(script) == ["CREATE TABLE A (Id INT)", "CREATE TABLE B (Id INT)"]


class TestSchemaFiles:
    """Test the per-engine DDL scripts."""

    @pytest.mark.parametrize("engine", list(DatabaseEngine))
    def test_every_engine_has_script(self, engine):
        """Test each supported engine ships a schema."""
        assert schema_path(engine).exists()

    @pytest.mark.parametrize("engine", list(DatabaseEngine))
    def test_every_table_defined(self, engine):
        """Test each schema creates the same set of tables."""
        script = schema_path(engine).read_text(encoding="utf-8")
        for table in EXPECTED_TABLES:
            assert f"CREATE TABLE {table} (" in script


class TestInitDatabase:
    """Test init_database function."""

    def test_creates_sqlite_schema(self, tmp_path):
        """Test the SQLite schema is applied to an empty database."""
        url = f"sqlite:///{tmp_path / 'fresh.sqlite'}"

        count = init_database(url, DatabaseEngine.SQLITE)

        engine = create_engine(url)
        try:
            tables = set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
        assert tables == EXPECTED_TABLES
        assert count == len(EXPECTED_TABLES) + 1
