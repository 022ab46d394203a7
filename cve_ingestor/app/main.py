"""CVE 수집 실행기(CVE ingestion entrypoint)."""
from __future__ import annotations

import argparse
import sys
from typing import Iterable, Optional

from dotenv import load_dotenv

from common_lib.config import DatabaseEngine, build_settings, load_environment, validate_settings
from common_lib.db import create_connection_provider
from common_lib.errors import ConfigurationError
from common_lib.logger import get_logger, setup_logging

from .mapper import CveMapper
from .repository import CveRecordRepository
from .service import BatchSummary, IngestionService

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_CONFIGURATION_ERROR = 2


def parse_args(argv: Optional[Iterable[str]] = None) -> argparse.Namespace:
    """커맨드라인 인자 파싱(Parse CLI arguments). Unset flags fall back to CVE_* settings."""

    parser = argparse.ArgumentParser(description="CVE JSON 5.x 관계형 적재기(CVE JSON 5.x relational ingestor)")
    parser.add_argument("--input-dir", help="CVE JSON 디렉터리(Directory scanned recursively for *.json)")
    parser.add_argument("--quarantine-dir", help="실패 파일 디렉터리(Directory receiving failed documents)")
    parser.add_argument("--database-url", help="SQLAlchemy 연결 URL(SQLAlchemy connection URL)")
    parser.add_argument(
        "--engine",
        dest="database_engine",
        choices=[engine.value for engine in DatabaseEngine],
        help="데이터베이스 엔진(Database engine)",
    )
    parser.add_argument("--log-level", help="로그 레벨(Log level)")
    parser.add_argument("--log-format", choices=["text", "json"], help="로그 형식(Log format)")
    return parser.parse_args(list(argv) if argv is not None else None)


def run(args: argparse.Namespace) -> BatchSummary:
    """설정 검증 후 일괄 처리 실행(Validate settings, then run the batch)."""

    settings = validate_settings(build_settings(vars(args)))
    setup_logging(settings.log_level, settings.log_format, force=True)

    provider = create_connection_provider(settings.database_engine, settings.database_url, echo=settings.echo_sql)
    service = IngestionService(CveMapper(), CveRecordRepository(provider), settings.quarantine_dir)
    try:
        return service.run(settings.input_dir)
    finally:
        provider.dispose()


def main(argv: Optional[Iterable[str]] = None) -> int:
    """동기 진입점(Synchronous entrypoint)."""

    load_dotenv()
    load_environment()
    args = parse_args(argv)
    try:
        run(args)
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIGURATION_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
