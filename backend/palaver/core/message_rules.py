"""Message Log Rules — pure validation, timestamping and eviction for appends.

Invariants:
    - normalize_body is the only place a body is trimmed; "" after trim -> EmptyBodyError
    - resolve_recipient enforces one delivery mode per deployment
    - next_timestamp never returns a value older than the previous message
    - apply_capacity only drops from the head (oldest first), never reorders

Design Decisions:
    - Pure functions: MessageLog applies the result under its lock and owns publication
"""

from collections.abc import Sequence
from datetime import datetime

from palaver.core.domain_types import BROADCAST_RECIPIENT, MessageMode
from palaver.core.errors import EmptyBodyError, ValidationFailedError
from palaver.core.records import Message


def normalize_body(body: str | None) -> str:
    text = (body or "").strip()
    if not text:
        raise EmptyBodyError()
    return text


def normalize_sender(sender: str | None) -> str:
    name = (sender or "").strip()
    if not name:
        raise ValidationFailedError("Sender is required", "sender")
    if name == BROADCAST_RECIPIENT:
        raise ValidationFailedError("Sender cannot be the broadcast sentinel", "sender")
    return name


def resolve_recipient(mode: MessageMode, recipient: str | None) -> str:
    """Map the caller's recipient onto the stored one for this deployment mode."""
    name = (recipient or "").strip()
    if mode is MessageMode.BROADCAST:
        if name and name != BROADCAST_RECIPIENT:
            raise ValidationFailedError(
                "Directed recipients are not accepted in broadcast mode", "recipient",
            )
        return BROADCAST_RECIPIENT
    if not name:
        raise ValidationFailedError("Recipient is required", "recipient")
    if name == BROADCAST_RECIPIENT:
        raise ValidationFailedError(
            "Broadcast messages are not accepted in directed mode", "recipient",
        )
    return name


def next_timestamp(now: datetime, previous: Message | None) -> datetime:
    """Clamp to the previous timestamp so (created_at, id) follows append order."""
    if previous is not None and now < previous.created_at:
        return previous.created_at
    return now


def apply_capacity(
    messages: Sequence[Message], capacity: int | None,
) -> tuple[tuple[Message, ...], tuple[Message, ...]]:
    """Split into (kept, evicted). Unbounded when capacity is None."""
    if capacity is None or len(messages) <= capacity:
        return tuple(messages), ()
    overflow = len(messages) - capacity
    return tuple(messages[overflow:]), tuple(messages[:overflow])


def next_message_id(messages: Sequence[Message]) -> int:
    """Seed the id counter from a loaded log."""
    return max((m.id for m in messages), default=0) + 1
