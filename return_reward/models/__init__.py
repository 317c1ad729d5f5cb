"""SQLModel tables for Return&Reward."""

from .chat import Chat
from .item import Item, ItemStatus
from .message import Message
from .profile import Profile

__all__ = ["Chat", "Item", "ItemStatus", "Message", "Profile"]
