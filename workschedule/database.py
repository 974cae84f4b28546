import logging
import time

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(settings: Settings) -> Engine:
    """Build the engine and its connection pool for the configured database"""
    url = settings.database_url
    try:
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
                # Single shared connection so every session sees the same in-memory DB
                kwargs["poolclass"] = StaticPool
            engine = create_engine(url, echo=False, **kwargs)
            _enable_sqlite_foreign_keys(engine)
        else:
            engine = create_engine(
                url,
                pool_pre_ping=True,  # Test connections before using
                pool_recycle=settings.db_pool_recycle,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                echo=False,
            )
            logger.info(
                f"📊 Connection pool: size={settings.db_pool_size}, "
                f"max_overflow={settings.db_max_overflow}, timeout={settings.db_pool_timeout}s"
            )
        logger.info("✅ Database engine created successfully")
    except Exception as e:
        logger.error(f"❌ Failed to create database engine: {e}")
        raise

    if settings.db_log_slow_queries:
        _install_slow_query_logging(engine, settings.db_slow_query_threshold)

    return engine


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _install_slow_query_logging(engine: Engine, threshold: float) -> None:
    """Warn about any statement slower than ``threshold`` seconds"""

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, *_):
        conn.info.setdefault("slow_query_timers", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def _check_duration(conn, _cursor, statement, *_):
        elapsed = time.perf_counter() - conn.info["slow_query_timers"].pop()
        if elapsed >= threshold:
            sql = " ".join(statement.split())
            logger.warning(f"🐌 Query took {elapsed:.3f}s (limit {threshold}s): {sql[:200]}")

    logger.info(f"📊 Slow query logging enabled (threshold: {threshold}s)")


class Database:
    """Owns the engine and session factory for the lifetime of the process"""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(create_db_engine(settings))

    def create_tables(self) -> None:
        """Create tables and indexes if they don't exist yet; safe on every start"""
        from . import models  # noqa: F401  registers tables on Base

        Base.metadata.create_all(bind=self.engine, checkfirst=True)

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request):
    db = request.app.state.database.SessionLocal()
    try:
        yield db
    finally:
        db.close()
