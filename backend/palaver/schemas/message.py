"""Message Schemas — send payload and poll responses.

Invariants:
    - content is 1-2000 chars before trimming; the store rejects whitespace-only
    - username is only honoured for guest posts in broadcast mode
"""

from datetime import datetime

from pydantic import BaseModel, Field

from palaver.core.domain_types import MESSAGE_MAX_LENGTH
from palaver.core.records import Message


class SendMessageRequest(BaseModel):
    to: str | None = Field(None, max_length=256)
    content: str = Field(min_length=1, max_length=MESSAGE_MAX_LENGTH)
    username: str | None = Field(None, max_length=256)


class MessageResponse(BaseModel):
    id: int
    sender: str
    recipient: str
    body: str
    created_at: datetime
    broadcast: bool

    @classmethod
    def from_record(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            sender=message.sender,
            recipient=message.recipient,
            body=message.body,
            created_at=message.created_at,
            broadcast=message.is_broadcast,
        )


class SendMessageResponse(BaseModel):
    message: MessageResponse


class MessageFeedResponse(BaseModel):
    messages: list[MessageResponse]
    poll_interval_ms: int


class UserSummary(BaseModel):
    username: str


class UserListResponse(BaseModel):
    users: list[UserSummary]
