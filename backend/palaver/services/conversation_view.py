"""Conversation View — read-only, ordered projections of the Message Log.

Invariants:
    - Computed fresh from the current snapshot on every call (no per-pair index)
    - between_pair is symmetric and only defined in directed mode
"""

from palaver.core.domain_types import MessageMode
from palaver.core.errors import ValidationFailedError
from palaver.core.records import Message
from palaver.core import visibility
from palaver.services.message_log import MessageLog


class ConversationView:
    def __init__(self, log: MessageLog):
        self._log = log

    @property
    def mode(self) -> MessageMode:
        return self._log.mode

    def for_user(self, username: str) -> list[Message]:
        """Directed: messages sent or received. Broadcast: the whole feed."""
        if self.mode is MessageMode.BROADCAST:
            return self.global_feed()
        return visibility.visible_to(self._log.snapshot(), username)

    def between_pair(self, a: str, b: str) -> list[Message]:
        if self.mode is MessageMode.BROADCAST:
            raise ValidationFailedError(
                "Pair conversations are not available in broadcast mode", "with",
            )
        return visibility.between(self._log.snapshot(), a, b)

    def global_feed(self) -> list[Message]:
        return visibility.ordered(self._log.snapshot())
