"""Read models delivered by the stores to subscribers."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from return_reward.models.item import ItemStatus
from return_reward.utils.clock import as_utc

PLACEHOLDER_NAME = "Anonymous User"


class ReadModel(BaseModel):
    """Base for read models: timestamps always come out timezone-aware UTC."""

    class Config:
        from_attributes = True

    @field_validator("*")
    @classmethod
    def _aware_timestamps(cls, value):
        if isinstance(value, datetime):
            return as_utc(value)
        return value


class ProfileRead(ReadModel):
    """Profile as seen by the session."""
    owner_id: str
    display_name: str
    photo_reference: Optional[str] = None
    email: Optional[str] = None
    is_complete: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def placeholder(cls, owner_id: str, email: Optional[str] = None) -> "ProfileRead":
        """Transient profile for a principal that has not completed one. Never persisted."""
        return cls(owner_id=owner_id, display_name=PLACEHOLDER_NAME, email=email, is_complete=False)


class ItemRead(ReadModel):
    id: str
    item_name: str
    description: Optional[str] = None
    owner_id: str
    status: ItemStatus = ItemStatus.MISSING
    created_at: Optional[datetime] = None


class ChatRead(ReadModel):
    id: str
    participant_a: str
    participant_b: str
    related_item_id: Optional[str] = None
    last_activity_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def participants(self) -> List[str]:
        return [self.participant_a, self.participant_b]

    def other_participant(self, principal: str) -> str:
        return self.participant_b if principal == self.participant_a else self.participant_a


class MessageRead(ReadModel):
    id: str
    chat_id: str
    sender_id: str
    text: str
    timestamp: datetime
