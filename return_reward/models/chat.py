"""
Chat Model

Two-party conversation thread about one item. The primary key is derived
from the sorted participant pair, so there is at most one chat per pair.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from return_reward.utils.clock import utc_now


class Chat(SQLModel, table=True):
    __tablename__ = "chats"

    id: str = Field(primary_key=True, max_length=300)
    # Stored sorted: participant_a < participant_b
    participant_a: str = Field(index=True, max_length=128)
    participant_b: str = Field(index=True, max_length=128)
    related_item_id: Optional[str] = Field(default=None, max_length=64)
    last_activity_at: datetime = Field(default_factory=utc_now)
    created_at: datetime = Field(default_factory=utc_now)
