"""Read models and wire schemas."""

from .records import ChatRead, ItemRead, MessageRead, ProfileRead
from .session import ErrorFrame, NoticeFrame, SessionCommand

__all__ = [
    "ChatRead",
    "ErrorFrame",
    "ItemRead",
    "MessageRead",
    "NoticeFrame",
    "ProfileRead",
    "SessionCommand",
]
