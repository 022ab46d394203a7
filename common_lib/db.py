"""데이터베이스 연결 추상화(Database connection abstraction).

The relational writer is written once against ConnectionProvider: open a
connection, run parameterized statements, and fetch the identity generated
by the last insert on that same connection. Each supported engine is one
subclass; the engine is chosen once at startup from configuration.
"""
from __future__ import annotations

from typing import Dict, Type

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.sql.elements import TextClause

from .config import DatabaseEngine, Settings, get_settings
from .errors import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)


class ConnectionProvider:
    """엔진 독립 연결 제공자(Engine-agnostic connection provider)."""

    engine_type: DatabaseEngine
    backends: tuple[str, ...] = ()
    last_insert_id_sql: str = ""

    def __init__(self, database_url: str, echo: bool = False) -> None:
        self._engine = create_engine(database_url, echo=echo)
        self._last_insert_id = text(self.last_insert_id_sql)
        self._configure(self._engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def _configure(self, engine: Engine) -> None:
        """Engine-specific hooks; no-op by default."""

    def open_connection(self) -> Connection:
        """새 연결 열기(Open a new connection; the caller owns and closes it)."""

        return self._engine.connect()

    def last_insert_id_statement(self) -> TextClause:
        """방금 삽입된 행의 식별자 조회문(Statement returning the identity of the row just inserted)."""

        return self._last_insert_id

    def dispose(self) -> None:
        logger.info("Disposing %s connection pool", self.engine_type.value)
        self._engine.dispose()


class SqlServerConnectionProvider(ConnectionProvider):
    engine_type = DatabaseEngine.SQLSERVER
    backends = ("mssql",)
    # Every execute() is its own batch, so SCOPE_IDENTITY() would be NULL here;
    # @@IDENTITY is session-scoped and survives across batches.
    last_insert_id_sql = "SELECT CAST(@@IDENTITY AS BIGINT)"


class MySqlConnectionProvider(ConnectionProvider):
    engine_type = DatabaseEngine.MYSQL
    backends = ("mysql", "mariadb")
    last_insert_id_sql = "SELECT LAST_INSERT_ID()"


class PostgresConnectionProvider(ConnectionProvider):
    engine_type = DatabaseEngine.POSTGRESQL
    backends = ("postgresql",)
    last_insert_id_sql = "SELECT lastval()"


class SqliteConnectionProvider(ConnectionProvider):
    engine_type = DatabaseEngine.SQLITE
    backends = ("sqlite",)
    last_insert_id_sql = "SELECT last_insert_rowid()"

    def _configure(self, engine: Engine) -> None:
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):  # pragma: no cover - driver hook
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()


_PROVIDERS: Dict[DatabaseEngine, Type[ConnectionProvider]] = {
    DatabaseEngine.SQLSERVER: SqlServerConnectionProvider,
    DatabaseEngine.MYSQL: MySqlConnectionProvider,
    DatabaseEngine.POSTGRESQL: PostgresConnectionProvider,
    DatabaseEngine.SQLITE: SqliteConnectionProvider,
}


def create_connection_provider(
    engine_type: DatabaseEngine | str,
    database_url: str,
    echo: bool = False,
) -> ConnectionProvider:
    """엔진 선택에 맞는 연결 제공자 생성(Resolve the engine selector into a provider).

    Args:
        engine_type: DatabaseEngine member or its name (e.g. "mysql")
        database_url: SQLAlchemy URL; its backend must match the engine

    Raises:
        ConfigurationError: unknown engine, malformed URL, or URL/engine mismatch
    """

    try:
        engine_type = DatabaseEngine(str(getattr(engine_type, "value", engine_type)).lower())
    except ValueError:
        supported = ", ".join(member.value for member in DatabaseEngine)
        raise ConfigurationError("database_engine", f"unsupported engine {engine_type!r} (expected one of: {supported})")

    provider_cls = _PROVIDERS[engine_type]
    try:
        backend = make_url(database_url).get_backend_name()
    except ArgumentError as exc:
        raise ConfigurationError("database_url", f"malformed URL: {exc}") from exc
    if backend not in provider_cls.backends:
        raise ConfigurationError(
            "database_url",
            f"URL backend {backend!r} does not match engine {engine_type.value!r}",
        )

    logger.info("Initializing %s connection provider", engine_type.value)
    return provider_cls(database_url, echo=echo)


_provider: ConnectionProvider | None = None


def get_connection_provider(settings: Settings | None = None) -> ConnectionProvider:
    """설정 기반 연결 제공자 제공(Provide the process-wide provider built from settings)."""

    global _provider
    if _provider is None:
        settings = settings or get_settings()
        _provider = create_connection_provider(
            settings.database_engine,
            settings.database_url,
            echo=settings.echo_sql,
        )
    return _provider


def reset_connection_provider() -> None:
    """캐시된 제공자 폐기(Dispose and forget the cached provider)."""

    global _provider
    if _provider is not None:
        _provider.dispose()
    _provider = None
