"""Store Records — immutable pydantic models for users and messages.

Invariants:
    - Records are frozen: a created message or user is never edited in place
    - UserRecord holds a bcrypt hash, never the raw credential
    - Message ordering key is (created_at, id)
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from palaver.core.domain_types import BROADCAST_RECIPIENT


class User(BaseModel):
    """Public view of a registered user."""
    model_config = ConfigDict(frozen=True)

    username: str
    created_at: datetime


class UserRecord(User):
    """Stored identity row."""
    credential_hash: str

    def public(self) -> User:
        return User(username=self.username, created_at=self.created_at)


class Message(BaseModel):
    """A directed or broadcast message."""
    model_config = ConfigDict(frozen=True)

    id: int
    sender: str
    recipient: str
    body: str
    created_at: datetime

    @property
    def is_broadcast(self) -> bool:
        return self.recipient == BROADCAST_RECIPIENT

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.created_at, self.id)
