"""Visibility Rules — who may see which message, and in what order.

Invariants:
    - A directed message is visible only to its sender and its recipient
    - A broadcast message is visible to everyone
    - Every projection is sorted ascending by (created_at, id)
"""

from collections.abc import Iterable

from palaver.core.records import Message


def is_visible_to(message: Message, username: str) -> bool:
    if message.is_broadcast:
        return True
    return username in (message.sender, message.recipient)


def involves_pair(message: Message, a: str, b: str) -> bool:
    """True when {sender, recipient} == {a, b}, in either direction."""
    if message.is_broadcast:
        return False
    return (message.sender, message.recipient) in ((a, b), (b, a))


def ordered(messages: Iterable[Message]) -> list[Message]:
    return sorted(messages, key=lambda m: m.sort_key)


def visible_to(messages: Iterable[Message], username: str) -> list[Message]:
    return ordered(m for m in messages if is_visible_to(m, username))


def between(messages: Iterable[Message], a: str, b: str) -> list[Message]:
    return ordered(m for m in messages if involves_pair(m, a, b))
