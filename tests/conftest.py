"""Pytest configuration and shared fixtures."""
import json
import os
import sqlite3
from pathlib import Path
from typing import Any, Dict, List

import pytest
from sqlalchemy import inspect, text

from common_lib.config import get_settings
from common_lib.db import create_connection_provider, reset_connection_provider
from common_lib.logger import setup_logging
from cve_ingestor.app.mapper import CveMapper
from cve_ingestor.app.repository import CveRecordRepository

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SCHEMA_FILE = PROJECT_ROOT / "database" / "init-db.sqlite.sql"
FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"


class DatabaseInspector:
    """Read-only helpers for asserting on what the repository wrote."""

    def __init__(self, provider):
        self._provider = provider

    def tables(self) -> List[str]:
        return inspect(self._provider.engine).get_table_names()

    def count(self, table: str, where: str = "", **params: Any) -> int:
        clause = f" WHERE {where}" if where else ""
        with self._provider.open_connection() as connection:
            return connection.execute(text(f"SELECT COUNT(*) FROM {table}{clause}"), params).scalar_one()

    def rows(self, table: str, where: str = "", **params: Any) -> List[Dict[str, Any]]:
        clause = f" WHERE {where}" if where else ""
        with self._provider.open_connection() as connection:
            result = connection.execute(text(f"SELECT * FROM {table}{clause} ORDER BY 1"), params)
            return [dict(row) for row in result.mappings()]

    def total_rows(self) -> int:
        return sum(self.count(table) for table in self.tables())

    def execute(self, statement: str) -> None:
        with self._provider.open_connection() as connection:
            with connection.begin():
                connection.exec_driver_sql(statement)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep CVE_* variables and a stray .env from leaking into tests."""
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("CVE_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    reset_connection_provider()
    # main() rebinds the root handler to the stream captured during the test
    setup_logging(force=True)


@pytest.fixture
def database_path(tmp_path) -> Path:
    """File-backed SQLite database with the ingestor schema applied."""
    path = tmp_path / "cve.sqlite"
    connection = sqlite3.connect(path)
    try:
        connection.executescript(SCHEMA_FILE.read_text(encoding="utf-8"))
    finally:
        connection.close()
    return path


@pytest.fixture
def database_url(database_path) -> str:
    return f"sqlite:///{database_path}"


@pytest.fixture
def provider(database_url):
    provider = create_connection_provider("sqlite", database_url)
    yield provider
    provider.dispose()


@pytest.fixture
def db(provider) -> DatabaseInspector:
    return DatabaseInspector(provider)


@pytest.fixture
def mapper() -> CveMapper:
    return CveMapper()


@pytest.fixture
def repository(provider) -> CveRecordRepository:
    return CveRecordRepository(provider)


def load_fixture(name: str) -> Dict[str, Any]:
    return json.loads((FIXTURES_DIR / name).read_text(encoding="utf-8"))


@pytest.fixture
def basic_document() -> Dict[str, Any]:
    """CNA-only record: two affected products, one CVSS v3.1 metric."""
    return load_fixture("CVE-2024-0001.json")


@pytest.fixture
def full_document() -> Dict[str, Any]:
    """Record exercising every CNA child table plus an SSVC ADP container."""
    return load_fixture("CVE-2024-3094.json")


@pytest.fixture
def kev_document() -> Dict[str, Any]:
    """ADP-only record whose single metric is an unsupported "kev" scheme."""
    return load_fixture("CVE-2023-4863-kev.json")


@pytest.fixture
def input_dir(tmp_path) -> Path:
    path = tmp_path / "cves"
    path.mkdir()
    return path


@pytest.fixture
def write_document(input_dir):
    """Write a JSON document (dict or raw text) into the input directory."""

    def _write(name: str, document: Any, subdir: str = "") -> Path:
        target_dir = input_dir / subdir if subdir else input_dir
        target_dir.mkdir(parents=True, exist_ok=True)
        path = target_dir / name
        body = document if isinstance(document, str) else json.dumps(document)
        path.write_text(body, encoding="utf-8")
        return path

    return _write
