"""Wiring of the stores and identity provider behind one Backend bundle."""
from dataclasses import dataclass
from typing import Optional
import logging

from sqlalchemy.engine import Engine

from return_reward.auth.identity import IdentityProvider, JwtIdentityProvider
from return_reward.config import Settings
from return_reward.db.config import create_db_engine
from return_reward.db.init import init_db
from return_reward.realtime.feed import ChangeFeed
from return_reward.services.chat_directory import ChatDirectory, SqlChatDirectory
from return_reward.services.item_registry import ItemRegistry, SqlItemRegistry
from return_reward.services.profile_store import PROFILE_PAGE_SIZE, ProfileStore, SqlProfileStore

logger = logging.getLogger(__name__)


@dataclass
class Backend:
    """Everything a session controller talks to. Any field can be a fake in tests."""
    identity: IdentityProvider
    profiles: ProfileStore
    items: ItemRegistry
    chats: ChatDirectory
    profile_page_size: int = PROFILE_PAGE_SIZE
    engine: Optional[Engine] = None
    feed: Optional[ChangeFeed] = None


def build_backend(settings: Settings, engine: Optional[Engine] = None) -> Backend:
    """
    Build the SQL-backed stores for the given settings.

    Raises:
        ConfigurationMissing: If required settings are absent or invalid
    """
    settings.require_backend()

    engine = engine or create_db_engine(settings.database_url)
    init_db(engine)
    feed = ChangeFeed()

    logger.info(f"Backend ready for app {settings.app_id}")
    return Backend(
        identity=JwtIdentityProvider(settings.auth_secret),
        profiles=SqlProfileStore(engine, feed),
        items=SqlItemRegistry(engine, feed),
        chats=SqlChatDirectory(engine, feed),
        profile_page_size=settings.profile_page_size,
        engine=engine,
        feed=feed,
    )
