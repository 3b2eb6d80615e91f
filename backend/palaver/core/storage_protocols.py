"""Boundary Protocols — contracts between the store components and the storage medium.

Invariants:
    - Services depend on these Protocols, never on PersistenceGateway directly
    - save_* receives the complete structure (full rewrite, not a delta)

Design Decisions:
    - Protocol over ABC: structural subtyping, the gateway needs no base class
"""

from collections.abc import Mapping, Sequence
from typing import Protocol

from palaver.core.records import Message, UserRecord


class IdentityStorage(Protocol):
    """Durable sink for the Identity Table."""
    async def save_users(self, users: Mapping[str, UserRecord]) -> None: ...


class MessageStorage(Protocol):
    """Durable sink for the Message Log."""
    async def save_messages(self, messages: Sequence[Message]) -> None: ...
