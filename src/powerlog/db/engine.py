"""Database engine factory and session management."""

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import Engine, make_url
from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy.exc import ArgumentError
from sqlalchemy.orm import Session, sessionmaker

from powerlog.config.settings import Settings
from powerlog.db.base import Base
from powerlog.utils.exceptions import ConfigurationError


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    database = make_url(database_url).database
    if database and database != ":memory:" and not database.startswith("file:"):
        Path(database).expanduser().parent.mkdir(parents=True, exist_ok=True)


def create_engine(settings: Settings) -> Engine:
    """Create a SQLAlchemy engine from settings.

    Args:
        settings: Application settings containing database URL.

    Returns:
        Configured SQLAlchemy engine.

    Raises:
        ConfigurationError: If the database URL can't be used.
    """
    connect_args: dict = {}

    try:
        # SQLite-specific configuration
        if settings.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            _ensure_sqlite_directory(settings.database_url)

        return sa_create_engine(
            settings.database_url,
            connect_args=connect_args,
            echo=settings.log_level == "DEBUG",
            pool_pre_ping=True,
        )
    except ArgumentError as e:
        raise ConfigurationError(f"Invalid database URL {settings.database_url!r}: {e}") from e


def create_tables(engine: Engine) -> None:
    """Create the inventory tables if they don't exist.

    Args:
        engine: SQLAlchemy engine.
    """
    # Import models to ensure they're registered with Base
    from powerlog.db import models as _  # noqa: F401

    Base.metadata.create_all(bind=engine)


@contextmanager
def get_session(engine: Engine) -> Generator[Session, None, None]:
    """Get a database session context manager.

    Args:
        engine: SQLAlchemy engine.

    Yields:
        Database session that will be automatically committed on success
        or rolled back on failure.
    """
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    session = session_factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
