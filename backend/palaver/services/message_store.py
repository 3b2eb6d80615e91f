"""Message Store — facade wiring gateway, Identity Table, Message Log and Conversation View.

Invariants:
    - open() either returns a fully loaded store or raises PersistenceFailureError
    - The store never serves before both records are loaded (or bootstrapped)
    - Referential checks on recipients run only when require_registered_recipient is set

Design Decisions:
    - Singleton store initialized on startup; FastAPI lifespan manages lifecycle
    - Routes call the facade only, so the components stay replaceable in tests
"""

import asyncio
import logging

from palaver.config import Settings
from palaver.core.credentials import dummy_hash
from palaver.core.domain_types import MessageMode
from palaver.core.errors import ErrorContext, RecipientNotFoundError
from palaver.core.records import Message, User
from palaver.infrastructure.persistence import PersistenceGateway
from palaver.services.conversation_view import ConversationView
from palaver.services.identity_table import IdentityTable
from palaver.services.message_log import MessageLog

logger = logging.getLogger(__name__)


class MessageStore:
    """Single entry point the route layer uses for identity and messages."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        identities: IdentityTable,
        log: MessageLog,
        require_registered_recipient: bool = False,
    ):
        self.gateway = gateway
        self.identities = identities
        self.log = log
        self.view = ConversationView(log)
        self.require_registered_recipient = require_registered_recipient

    @classmethod
    async def open(cls, settings: Settings) -> "MessageStore":
        gateway = PersistenceGateway(
            settings.data_dir,
            timeout_seconds=settings.persistence_timeout_seconds,
            max_retries=settings.persistence_max_retries,
            base_delay_ms=settings.persistence_base_delay_ms,
            max_delay_ms=settings.persistence_max_delay_ms,
        )
        users, messages = await gateway.load()
        await asyncio.to_thread(dummy_hash, settings.bcrypt_rounds)
        store = cls(
            gateway,
            IdentityTable(gateway, users, bcrypt_rounds=settings.bcrypt_rounds),
            MessageLog(
                gateway, messages,
                mode=settings.message_mode,
                capacity=settings.effective_log_capacity,
            ),
            require_registered_recipient=settings.require_registered_recipient,
        )
        logger.info(
            f"Message store ready (mode={store.mode.value}, "
            f"capacity={store.log.capacity or 'unbounded'})",
        )
        return store

    @property
    def mode(self) -> MessageMode:
        return self.log.mode

    async def register(self, username: str, credential: str) -> User:
        return await self.identities.register(username, credential)

    async def authenticate(self, username: str, credential: str) -> User:
        return await self.identities.authenticate(username, credential)

    def list_usernames(self) -> list[str]:
        return self.identities.list_usernames()

    def is_registered(self, username: str) -> bool:
        return self.identities.exists(username)

    async def send(
        self, sender: str, body: str, recipient: str | None = None,
    ) -> Message:
        if (
            self.require_registered_recipient
            and self.mode is MessageMode.DIRECTED
            and recipient
            and not self.identities.exists(recipient.strip())
        ):
            raise RecipientNotFoundError(
                recipient, ErrorContext(username=sender, operation="send"),
            )
        return await self.log.append(sender, body, recipient)

    def feed(self, viewer: str | None = None, counterpart: str | None = None) -> list[Message]:
        """What a poller sees: global feed, a viewer's messages, or one pair."""
        if self.mode is MessageMode.BROADCAST:
            return self.view.global_feed()
        if viewer is None:
            return []
        if counterpart:
            return self.view.between_pair(viewer, counterpart)
        return self.view.for_user(viewer)

    async def health_check(self) -> bool:
        return await self.gateway.health_check()


# Singleton (initialized on startup)
message_store: MessageStore | None = None


async def init_store(settings: Settings) -> MessageStore:
    global message_store
    message_store = await MessageStore.open(settings)
    return message_store


def get_store() -> MessageStore:
    """FastAPI dependency for the loaded store."""
    if not message_store:
        raise RuntimeError("Message store not initialized")
    return message_store
