"""Shared plumbing for the SQL-backed stores."""
from contextlib import contextmanager
from typing import Generator
import logging

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from return_reward.db.config import session_scope
from return_reward.errors import StoreUnavailable
from return_reward.realtime.feed import ChangeFeed

logger = logging.getLogger(__name__)


class SqlStore:
    """Base class: one short-lived session per operation, errors mapped to StoreUnavailable."""

    def __init__(self, engine: Engine, feed: ChangeFeed):
        self.engine = engine
        self.feed = feed

    @contextmanager
    def _session(self, operation: str) -> Generator[Session, None, None]:
        try:
            with session_scope(self.engine) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Store operation '{operation}' failed: {str(e)}")
            raise StoreUnavailable(operation, e) from e
