"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` and provides the small lifecycle helpers used by
the application and tests. The FastAPI lifespan calls
`create_db_and_tables()` on startup and `dispose_engine()` on shutdown;
requests receive their own `Session` through `get_session()`.
"""

from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.pool import StaticPool

from .config import settings


def _build_engine(url: str):
    """Create the engine, keeping in-memory SQLite on a single shared connection."""
    kwargs = {"echo": False}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # every session must see the same in-memory database
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


engine = _build_engine(settings.DATABASE_URL)


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    Creation is idempotent. The unique constraint on quiz results is part
    of the table definition, so it exists as soon as the tables do.
    """
    # models must be imported so their tables are registered on the metadata
    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def drop_db_and_tables():
    """Drop every table. Used by the test-suite to reset state between tests."""
    SQLModel.metadata.drop_all(engine)


def dispose_engine():
    """Release pooled connections on application shutdown."""
    engine.dispose()


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
