"""Profile model for SQLModel."""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field, SQLModel

from return_reward.utils.clock import utc_now


class Profile(SQLModel, table=True):
    """
    Public profile of a principal.

    Exactly one row per principal. Completion is tracked explicitly, so a
    profile is never inferred complete or incomplete from its name.
    """
    __tablename__ = "profiles"

    owner_id: str = Field(primary_key=True, index=True, max_length=128)
    display_name: str = Field(default="", max_length=255)
    # URI or inline data: URL, so it can be long
    photo_reference: Optional[str] = Field(default=None, sa_column=Column(Text))
    email: Optional[str] = Field(default=None, max_length=255)
    is_complete: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
