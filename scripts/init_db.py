#!/usr/bin/env python3
"""데이터베이스 스키마 초기화 스크립트(Database schema initialization script)."""
import argparse
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv

sys.path.append(str(Path(__file__).resolve().parent.parent))

from common_lib.config import DatabaseEngine, build_settings  # noqa: E402
from common_lib.db import create_connection_provider  # noqa: E402
from common_lib.logger import get_logger  # noqa: E402

logger = get_logger("init_db")

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "database"


def schema_path(engine: DatabaseEngine) -> Path:
    return SCHEMA_DIR / f"init-db.{engine.value}.sql"


def split_statements(script: str) -> List[str]:
    """Strip ``--`` comment lines and split a DDL script on semicolons."""
    body = "\n".join(line for line in script.splitlines() if not line.lstrip().startswith("--"))
    return [statement.strip() for statement in body.split(";") if statement.strip()]


def init_database(database_url: str, engine: DatabaseEngine) -> int:
    """데이터베이스 초기화(Create every ingestor table). Returns the number of statements run."""

    sql_file = schema_path(engine)
    if not sql_file.exists():
        raise FileNotFoundError(f"SQL initialization script not found: {sql_file}")

    statements = split_statements(sql_file.read_text(encoding="utf-8"))
    provider = create_connection_provider(engine, database_url)
    try:
        with provider.open_connection() as connection:
            with connection.begin():
                for statement in statements:
                    connection.exec_driver_sql(statement)
    finally:
        provider.dispose()

    logger.info("Database initialized from %s (%d statements)", sql_file.name, len(statements))
    return len(statements)


if __name__ == "__main__":
    load_dotenv()
    parser = argparse.ArgumentParser(description="Create the CVE ingestor schema")
    parser.add_argument("--database-url")
    parser.add_argument("--engine", dest="database_engine", choices=[engine.value for engine in DatabaseEngine])
    settings = build_settings(vars(parser.parse_args()))
    init_database(settings.database_url, settings.database_engine)
