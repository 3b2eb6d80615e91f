"""Identity Table — username -> credential record, with uniqueness and durable registration.

Invariants:
    - Usernames are unique at all times; a failed register leaves the table unchanged
    - register persists the whole table before returning (or raises PersistenceFailureError)
    - authenticate raises the same InvalidCredentialsError for unknown user and wrong secret
    - list_usernames returns insertion order, caller included
    - Registered usernames always pass normalize_username, so "*" is never one

Design Decisions:
    - Copy-on-write snapshot: readers dereference self._users once and never see a
      half-applied register; writers serialize on _write_lock
    - bcrypt runs in a worker thread, outside the lock, so hashing never blocks other writers
      (the dummy hash for unknown users included)
"""

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from palaver.core.credentials import dummy_hash, hash_credential, verify_credential
from palaver.core.errors import AlreadyExistsError, ErrorContext, InvalidCredentialsError
from palaver.core.identity_rules import normalize_username
from palaver.core.records import User, UserRecord
from palaver.core.storage_protocols import IdentityStorage

logger = logging.getLogger(__name__)


class IdentityTable:
    """Registered users keyed by username."""

    def __init__(
        self,
        storage: IdentityStorage,
        users: Mapping[str, UserRecord] | None = None,
        bcrypt_rounds: int = 12,
    ):
        self._storage = storage
        self._users: dict[str, UserRecord] = dict(users or {})
        self._bcrypt_rounds = bcrypt_rounds
        self._write_lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._users)

    def exists(self, username: str) -> bool:
        return username in self._users

    def list_usernames(self) -> list[str]:
        return list(self._users)

    def snapshot(self) -> dict[str, UserRecord]:
        return dict(self._users)

    async def register(self, username: str, credential: str) -> User:
        username = normalize_username(username)
        if username in self._users:
            raise AlreadyExistsError(username, ErrorContext(username=username, operation="register"))

        credential_hash = await asyncio.to_thread(
            hash_credential, credential, self._bcrypt_rounds,
        )
        async with self._write_lock:
            # Re-check: another register may have won while we were hashing
            if username in self._users:
                raise AlreadyExistsError(
                    username, ErrorContext(username=username, operation="register"),
                )
            record = UserRecord(
                username=username,
                credential_hash=credential_hash,
                created_at=datetime.now(timezone.utc),
            )
            updated = {**self._users, username: record}
            await self._storage.save_users(updated)
            self._users = updated

        logger.info(
            f"Registered user {username}",
            extra={"username": username, "operation": "register"},
        )
        return record.public()

    async def authenticate(self, username: str, credential: str) -> User:
        record = self._users.get(username)
        matched = await asyncio.to_thread(
            self._verify, credential, record.credential_hash if record else None,
        )
        if record is None or not matched:
            logger.info(
                "Authentication failed",
                extra={"username": username, "operation": "authenticate"},
            )
            raise InvalidCredentialsError(
                ErrorContext(username=username, operation="authenticate"),
            )
        return record.public()

    def _verify(self, credential: str, stored_hash: str | None) -> bool:
        return verify_credential(credential, stored_hash or dummy_hash(self._bcrypt_rounds))
