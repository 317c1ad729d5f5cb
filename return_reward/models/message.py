"""
Message Model

Individual chat message within a two-party chat.
Messages are append-only and immutable once created.
"""

from datetime import datetime
from typing import Optional
import uuid

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from return_reward.utils.clock import utc_now


class Message(SQLModel, table=True):
    """
    A message in a chat.

    `sequence` is the insertion order and breaks ties between messages
    written within the same clock tick.
    """
    __tablename__ = "messages"

    sequence: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), unique=True, index=True)
    chat_id: str = Field(foreign_key="chats.id", index=True)
    sender_id: str = Field(max_length=128)
    text: str = Field(sa_column=Column(Text, nullable=False))
    timestamp: datetime = Field(default_factory=utc_now, index=True)
