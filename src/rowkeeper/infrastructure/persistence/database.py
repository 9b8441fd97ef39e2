"""Engine management using SQLAlchemy 2.0.

This module owns the synchronous SQLAlchemy engine and hands out data stores
bound to it. SQLite connections get the configured pragmas and are switched
to explicit BEGIN so that savepoints work with the pysqlite driver.
"""

from pathlib import Path

from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from rowkeeper.core.config import Settings, get_settings
from rowkeeper.core.logging import get_logger
from rowkeeper.infrastructure.persistence.store import SqlDataStore

logger = get_logger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in url


def configure_sqlite(engine: Engine, settings: Settings) -> None:
    """Apply pragmas and explicit transaction handling to SQLite connections."""

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself, pysqlite's implicit handling breaks SAVEPOINT.
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout = {int(settings.db_sqlite_busy_timeout)}")
        cursor.execute(f"PRAGMA foreign_keys = {'ON' if settings.db_sqlite_foreign_keys else 'OFF'}")
        cursor.close()

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(settings: Settings) -> Engine:
    """Create an engine for the configured database URL."""
    url = settings.database_url

    if not settings.is_sqlite:
        return create_engine(
            url,
            echo=settings.db_echo,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,
        )

    if _is_memory_sqlite(url):
        # One shared connection, otherwise each checkout sees an empty database.
        engine = create_engine(
            url,
            echo=settings.db_echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            url,
            echo=settings.db_echo,
            connect_args={"check_same_thread": False},
        )
    configure_sqlite(engine, settings)
    return engine


class DatabaseManager:
    """Database engine and data store manager.

    The engine is created lazily on first access.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self._engine: Engine | None = None

    @property
    def engine(self) -> Engine:
        """Get or create the database engine."""
        if self._engine is None:
            self._ensure_sqlite_directory()
            self._engine = build_engine(self.settings)
            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
                pool_size=self.settings.db_pool_size,
            )
        return self._engine

    def _ensure_sqlite_directory(self) -> None:
        url = self.settings.database_url
        if not self.settings.is_sqlite or _is_memory_sqlite(url):
            return
        db_path = url.split(":///", 1)[-1]
        db_dir = Path(db_path).parent
        if not db_dir.exists():
            db_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Database directory created", path=str(db_dir))

    def data_store(self) -> SqlDataStore:
        """Create a data store bound to the engine.

        Each store tracks its own transaction; share one store between the
        repositories that must take part in the same transaction.
        """
        return SqlDataStore(self.engine)

    def check_connection(self) -> bool:
        """Check if the database connection is working."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
                logger.debug("Database connection check successful")
                return True
        except SQLAlchemyError as e:
            logger.error("Database connection check failed", error=str(e))
            return False

    def dispose(self) -> None:
        """Close the engine and all pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Database engine disposed")
