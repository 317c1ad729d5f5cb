"""WebSocket wire schemas for interactive sessions."""
from typing import Literal, Optional

from pydantic import BaseModel, Field


class SessionCommand(BaseModel):
    """A user action sent by the client."""
    action: Literal[
        "sign_in",
        "refresh_identity",
        "sign_out",
        "complete_profile",
        "open_composer",
        "open_scanner",
        "back",
        "dashboard",
        "register_item",
        "view_item",
        "scan",
        "start_chat",
        "open_chat",
        "send_message",
        "request_return",
        "confirm",
        "dismiss_notice",
    ]
    token: Optional[str] = None
    display_name: Optional[str] = Field(None, max_length=255)
    photo_reference: Optional[str] = None
    item_name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    item_id: Optional[str] = None
    chat_id: Optional[str] = None
    identifier: Optional[str] = None
    text: Optional[str] = Field(None, max_length=4000)
    accepted: Optional[bool] = None


class ErrorFrame(BaseModel):
    """Inline error for the action that was just attempted."""
    type: Literal["error"] = "error"
    action: Optional[str] = None
    code: str
    message: str


class NoticeFrame(BaseModel):
    type: Literal["notice"] = "notice"
    title: str
    message: str
    code: str
