"""Item model for SQLModel."""
from datetime import datetime
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import Column, String
from sqlmodel import Field, SQLModel

from return_reward.utils.clock import utc_now


class ItemStatus(str, Enum):
    """Item status. Only ever moves missing -> returned."""
    MISSING = "missing"
    RETURNED = "returned"


class Item(SQLModel, table=True):
    """A physical object registered for loss/return tracking."""
    __tablename__ = "items"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True
    )
    item_name: str = Field(max_length=200, min_length=1)
    description: Optional[str] = Field(default=None, max_length=1000)
    owner_id: str = Field(index=True, max_length=128)
    status: str = Field(default=ItemStatus.MISSING.value, sa_column=Column(String(20), nullable=False))
    created_at: datetime = Field(default_factory=utc_now)
