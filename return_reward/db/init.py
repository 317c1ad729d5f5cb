"""Initialize database tables."""
import logging

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel

# Imported for table registration on SQLModel.metadata
from return_reward.models.profile import Profile  # noqa: F401
from return_reward.models.item import Item  # noqa: F401
from return_reward.models.chat import Chat  # noqa: F401
from return_reward.models.message import Message  # noqa: F401

logger = logging.getLogger(__name__)


def init_db(engine: Engine) -> None:
    """Create all tables in the database."""
    logger.info("[DB INIT] Creating all tables...")
    SQLModel.metadata.create_all(engine)
    logger.info("[DB INIT] Tables created successfully.")
