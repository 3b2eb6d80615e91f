"""Message Log — append-only, time-ordered, optionally bounded sequence of messages.

Invariants:
    - Ids come from a strictly increasing counter advanced under _write_lock
    - A rejected append (EmptyBody, ValidationFailed, PersistenceFailure) mutates nothing
    - Published snapshot is always sorted by (created_at, id) == append order
    - Bounded mode evicts from the head only, in the same atomic unit as the append
    - A loaded log longer than capacity is trimmed at construction; the next append persists it

Design Decisions:
    - Immutable tuple snapshot swapped after save: readers never lock
    - Mode is fixed at construction; resolve_recipient rejects the other variant
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from palaver.core.domain_types import MessageMode
from palaver.core.message_rules import (
    apply_capacity, next_message_id, next_timestamp,
    normalize_body, normalize_sender, resolve_recipient,
)
from palaver.core.records import Message
from palaver.core.storage_protocols import MessageStorage

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageLog:
    """Ordered message records for one deployment mode."""

    def __init__(
        self,
        storage: MessageStorage,
        messages: Sequence[Message] | None = None,
        mode: MessageMode = MessageMode.DIRECTED,
        capacity: int | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._storage = storage
        loaded = sorted(messages or (), key=lambda m: m.sort_key)
        self._messages, evicted = apply_capacity(loaded, capacity)
        self._next_id = next_message_id(loaded)
        if evicted:
            logger.info(
                f"Dropped {len(evicted)} loaded message(s) beyond capacity {capacity}",
                extra={"operation": "evict", "evicted": [m.id for m in evicted]},
            )
        self.mode = mode
        self.capacity = capacity
        self._clock = clock
        self._write_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._messages)

    def snapshot(self) -> tuple[Message, ...]:
        return self._messages

    async def append(
        self, sender: str, body: str, recipient: str | None = None,
    ) -> Message:
        text = normalize_body(body)
        author = normalize_sender(sender)
        target = resolve_recipient(self.mode, recipient)

        async with self._write_lock:
            previous = self._messages[-1] if self._messages else None
            message = Message(
                id=self._next_id,
                sender=author,
                recipient=target,
                body=text,
                created_at=next_timestamp(self._clock(), previous),
            )
            kept, evicted = apply_capacity(self._messages + (message,), self.capacity)
            await self._storage.save_messages(kept)
            self._messages = kept
            self._next_id += 1

        logger.info(
            f"Appended message {message.id}",
            extra={"username": author, "operation": "append", "message_id": message.id},
        )
        if evicted:
            logger.info(
                f"Evicted {len(evicted)} oldest message(s) to stay within {self.capacity}",
                extra={"operation": "evict", "evicted": [m.id for m in evicted]},
            )
        return message
