"""Outbound message and message history schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from studybot.schemas.base import BaseSchema


class SendMessageRequest(BaseSchema):
    """Direct message to one user, addressed by platform id."""

    user_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=2000)


class SendMessageResult(BaseSchema):
    success: bool


class BroadcastRequest(BaseSchema):
    """Empty or missing `user_ids` means every known user."""

    message: str = Field(..., min_length=1, max_length=2000)
    user_ids: list[str] | None = None


class BroadcastResult(BaseSchema):
    sent: int
    failed: int
    skipped: int
    failed_users: list[str] = []


class MessageRead(BaseSchema):
    id: UUID
    chat_id: str | None = None
    content: str
    type: str
    direction: str
    timestamp: datetime


class MessagePage(BaseSchema):
    """One page of a user's messages, newest first."""

    messages: list[MessageRead]
    total: int
    page: int
    limit: int
    total_pages: int
