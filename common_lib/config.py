"""공통 설정 모듈(Common configuration module)."""
from __future__ import annotations

import os
from enum import Enum
from functools import lru_cache
from typing import Any, Dict

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


class DatabaseEngine(str, Enum):
    """지원 데이터베이스 엔진(Supported relational engines)."""

    SQLSERVER = "sqlserver"
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"


class Settings(BaseSettings):
    """수집기 환경설정(Ingestor environment settings)."""

    model_config = SettingsConfigDict(
        env_prefix="CVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = Field(default="cve-ingestor", description="서비스 이름(Service name)")

    input_dir: str = Field(default="", description="CVE JSON 입력 디렉터리(Input directory of CVE JSON files)")
    quarantine_dir: str = Field(
        default="quarantine",
        description="실패 파일 격리 디렉터리(Directory receiving failed documents)",
    )
    database_url: str = Field(
        default="",
        description="SQLAlchemy 연결 URL(SQLAlchemy connection URL)",
    )
    database_engine: DatabaseEngine = Field(
        default=DatabaseEngine.SQLSERVER,
        description="데이터베이스 엔진 선택(Database engine selector)",
    )
    echo_sql: bool = Field(default=False, description="SQL 문 로깅 여부(Echo SQL statements)")

    log_level: str = Field(default="INFO", description="로그 레벨(Log level)")
    log_format: str = Field(default="text", description="로그 형식 text|json(Log format)")

    @field_validator("database_engine", mode="before")
    @classmethod
    def parse_database_engine(cls, v: Any) -> Any:
        """Accept engine names case-insensitively ("MySql", "SQLSERVER")."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("log_format")
    @classmethod
    def parse_log_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("text", "json"):
            raise ValueError("log_format must be 'text' or 'json'")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """설정 인스턴스 반환(Return a cached settings instance)."""

    return Settings()


def build_settings(overrides: Dict[str, Any] | None = None) -> Settings:
    """명시적 값으로 설정 생성(Build settings with explicit overrides, e.g. CLI flags)."""

    values = {key: value for key, value in (overrides or {}).items() if value is not None}
    try:
        return Settings(**values)
    except ValidationError as exc:
        first = exc.errors()[0]
        setting = ".".join(str(part) for part in first["loc"]) or "settings"
        raise ConfigurationError(setting, first["msg"]) from exc


def validate_settings(settings: Settings) -> Settings:
    """필수 설정 검증(Validate required settings before any document is processed)."""

    if not settings.input_dir.strip():
        raise ConfigurationError("input_dir", "no input directory configured (CVE_INPUT_DIR)")
    if not settings.quarantine_dir.strip():
        raise ConfigurationError("quarantine_dir", "no quarantine directory configured (CVE_QUARANTINE_DIR)")
    if not settings.database_url.strip():
        raise ConfigurationError("database_url", "no connection URL configured (CVE_DATABASE_URL)")
    return settings


def load_environment() -> None:
    """기본 환경변수를 로드(Load base environment variables)."""

    os.environ.setdefault("TZ", "UTC")
