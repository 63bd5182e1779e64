"""Database connection and session management."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import NullPool

from .config import get_settings
from .exceptions import ConfigurationError
from .logging_config import get_logger

LOGGER = get_logger(__name__)
SETTINGS = get_settings()


def enable_sqlite_transactions(sqlite_engine: Engine) -> Engine:
    """
    Make SQLite transactions cover DDL.

    pysqlite only emits BEGIN ahead of DML, so ALTER TABLE would otherwise
    commit on its own. Driver-level transaction handling is switched off and
    BEGIN is emitted whenever SQLAlchemy starts a transaction.
    """

    @event.listens_for(sqlite_engine, "connect")
    def disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(sqlite_engine, "begin")
    def emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return sqlite_engine


def create_db_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create an engine with settings appropriate for the backend.

    SQLite gets NullPool, WAL mode and transactional DDL, other backends a
    pre-pinged pool.

    Args:
        database_url: Connection string (defaults to DATABASE_URL).

    Returns:
        SQLAlchemy Engine.

    Raises:
        ConfigurationError: If the URL cannot be parsed.
    """
    url = database_url or SETTINGS.database_url
    try:
        make_url(url)
    except ArgumentError as e:
        raise ConfigurationError(f"Invalid DATABASE_URL {url!r}: {e}") from e

    if url.startswith("sqlite"):
        sqlite_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=NullPool,
        )

        if ":memory:" not in url:
            @event.listens_for(sqlite_engine, "connect")
            def set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA journal_mode=WAL")
                cursor.execute("PRAGMA busy_timeout=30000")  # 30 second timeout
                cursor.close()

        return enable_sqlite_transactions(sqlite_engine)

    return create_engine(
        url,
        pool_size=SETTINGS.db_pool_size,
        max_overflow=SETTINGS.db_max_overflow,
        pool_timeout=SETTINGS.db_pool_timeout,
        pool_pre_ping=True,
    )


engine = create_db_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def get_engine() -> Engine:
    """Return the application engine."""
    return engine


@contextmanager
def get_session(bind: Optional[Engine] = None) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Args:
        bind: Engine to use instead of the application engine.

    Yields:
        SQLAlchemy Session object.
    """
    session = Session(bind=bind, autoflush=False) if bind is not None else SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(bind: Optional[Engine] = None) -> dict:
    """
    Create the raw housing table if it does not exist yet.

    Args:
        bind: Engine to use (defaults to the application engine).

    Returns:
        Dict with initialization results.
    """
    # Import models to ensure they are registered with Base
    from . import models  # noqa: F401

    target = bind or engine
    existing_tables = set(inspect(target).get_table_names())
    Base.metadata.create_all(bind=target)
    new_tables = set(inspect(target).get_table_names())

    result = {
        "status": "success",
        "tables_created": sorted(new_tables - existing_tables),
        "tables_existing": sorted(existing_tables),
    }
    if result["tables_created"]:
        LOGGER.info("Created tables: %s", result["tables_created"])
    return result


def validate_database(bind: Optional[Engine] = None) -> dict:
    """
    Validate the database connection and that the housing table exists.

    Returns:
        Dict with validation results.
    """
    target = bind or engine
    result = {
        "status": "ok",
        "database_url": target.url.render_as_string(hide_password=True),
        "tables_found": [],
        "errors": [],
    }

    try:
        with target.connect() as conn:
            conn.execute(text("SELECT 1"))

        tables = inspect(target).get_table_names()
        result["tables_found"] = tables
        if SETTINGS.housing_table not in tables:
            result["status"] = "missing_tables"
            result["errors"].append(f"Missing table: {SETTINGS.housing_table}")

    except Exception as e:
        result["status"] = "error"
        result["errors"].append(str(e))

    return result
