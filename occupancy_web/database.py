"""Engine and session helpers for the warehouse service."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

DATABASE_URL = os.getenv("OCCUPANCY_DATABASE_URL", "sqlite:///./occupancy.db")

logger = logging.getLogger(__name__)


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def make_engine(url: str = DATABASE_URL) -> Engine:
    """Create an engine for ``url``.

    SQLite connections are shared with worker threads and enforce the
    section to warehouse foreign key.
    """

    if not url.startswith("sqlite"):
        return create_engine(url, echo=False)
    sqlite_engine = create_engine(
        url, echo=False, connect_args={"check_same_thread": False}
    )
    event.listen(sqlite_engine, "connect", _enable_foreign_keys)
    return sqlite_engine


engine = make_engine()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Run one unit of work; commit on success, roll back on error."""

    with Session(engine) as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise


def init_db() -> None:
    """Create the warehouse and section tables if they are missing."""

    from . import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Warehouse tables ready on %s", engine.url.render_as_string(hide_password=True))


def get_session() -> Iterator[Session]:
    """FastAPI dependency yielding a session; routes commit explicitly."""

    with Session(engine) as session:
        yield session
