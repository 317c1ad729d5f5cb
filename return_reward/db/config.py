"""Database engine and session helpers."""
from contextlib import contextmanager
from typing import Generator
import logging

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """Create the SQLModel engine for the given URL."""
    if not database_url.startswith("sqlite"):
        logger.info("[DB CONFIG] Using database server")
        return create_engine(database_url, echo=echo, pool_pre_ping=True)

    connect_args = {"check_same_thread": False}
    in_memory = database_url in ("sqlite://", "sqlite:///:memory:")

    if in_memory:
        # One shared connection so every session sees the same database
        engine = create_engine(database_url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
    else:
        logger.info(f"[DB CONFIG] Using SQLite database: {database_url}")
        engine = create_engine(database_url, echo=echo, connect_args=connect_args)

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


@contextmanager
def session_scope(engine: Engine) -> Generator[Session, None, None]:
    """Yield a session bound to the engine; rolls back on error."""
    with Session(engine) as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise
