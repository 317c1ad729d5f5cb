"""Typed stores over the document tables."""

from .chat_directory import ChatDirectory, SqlChatDirectory, chat_id_for
from .item_registry import ItemRegistry, SqlItemRegistry
from .profile_store import ProfileStore, SqlProfileStore

__all__ = [
    "ChatDirectory",
    "ItemRegistry",
    "ProfileStore",
    "SqlChatDirectory",
    "SqlItemRegistry",
    "SqlProfileStore",
    "chat_id_for",
]
