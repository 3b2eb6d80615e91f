"""Persistence Gateway — durable JSON records for the Identity Table and Message Log.

Invariants:
    - The only module that touches the storage medium
    - Absent record -> bootstrapped empty and written back before first use
    - Present but unreadable/corrupt record -> PersistenceFailureError (never "empty")
    - Every save is a full-structure rewrite: temp file, fsync, os.replace
    - A save that lands after a newer save for the same record is discarded
    - A save whose caller was told it failed (deadline) never replaces the record
    - Writes retry OSError with exponential backoff and ±25% jitter, all under one deadline

Design Decisions:
    - pydantic TypeAdapter for (de)serialization: the file is validated against the
      same models the store uses, so schema drift is caught at load time
    - Blocking file IO runs in asyncio.to_thread; the event loop never waits on disk
"""

import asyncio
import contextlib
import logging
import os
import random
import tempfile
import threading
from collections.abc import Mapping, Sequence
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from palaver.core.errors import PersistenceFailureError
from palaver.core.records import Message, UserRecord

logger = logging.getLogger(__name__)

USERS_RECORD = "users"
MESSAGES_RECORD = "messages"

_USERS_ADAPTER = TypeAdapter(dict[str, UserRecord])
_MESSAGES_ADAPTER = TypeAdapter(list[Message])


class PersistenceGateway:
    """Reads and rewrites the two durable records with bounded retry and deadline."""

    def __init__(
        self,
        data_dir: Path | str,
        timeout_seconds: float = 5.0,
        max_retries: int = 3,
        base_delay_ms: int = 50,
        max_delay_ms: int = 1_000,
    ):
        self.data_dir = Path(data_dir)
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self._file_locks = {
            USERS_RECORD: threading.Lock(),
            MESSAGES_RECORD: threading.Lock(),
        }
        self._issued = {USERS_RECORD: 0, MESSAGES_RECORD: 0}
        self._committed = {USERS_RECORD: 0, MESSAGES_RECORD: 0}
        self._abandoned: dict[str, set[int]] = {USERS_RECORD: set(), MESSAGES_RECORD: set()}

    def path_for(self, record: str) -> Path:
        return self.data_dir / f"{record}.json"

    # ─── Load ────────────────────────────────────────────────────

    async def load(self) -> tuple[dict[str, UserRecord], list[Message]]:
        """Startup load of both records. Raises PersistenceFailureError on corruption."""
        users = await self.load_users()
        messages = await self.load_messages()
        logger.info(
            f"Loaded {len(users)} user(s) and {len(messages)} message(s) "
            f"from {self.data_dir}",
        )
        return users, messages

    async def load_users(self) -> dict[str, UserRecord]:
        users = await self._load(USERS_RECORD, _USERS_ADAPTER, {})
        mismatched = [key for key, user in users.items() if key != user.username]
        if mismatched:
            self._report_corrupt(USERS_RECORD, f"keys do not match usernames: {mismatched[:5]}")
        return users

    async def load_messages(self) -> list[Message]:
        messages = await self._load(MESSAGES_RECORD, _MESSAGES_ADAPTER, [])
        ids = [m.id for m in messages]
        if len(ids) != len(set(ids)):
            self._report_corrupt(MESSAGES_RECORD, "duplicate message ids")
        return messages

    async def _load(self, record: str, adapter: TypeAdapter, empty):
        raw = await asyncio.to_thread(self._read, record)
        if raw is None:
            logger.info(
                f"No {record} record at {self.path_for(record)}; bootstrapping empty",
                extra={"operation": "bootstrap", "record": record},
            )
            await self._save(record, adapter.dump_json(empty, indent=2))
            return empty
        try:
            return adapter.validate_json(raw)
        except ValidationError as e:
            self._report_corrupt(record, f"{e.error_count()} validation error(s): {e.errors()[:3]}")

    def _read(self, record: str) -> bytes | None:
        path = self.path_for(record)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.critical(
                f"Cannot read {path}: {e}",
                extra={"operation": "read", "record": record},
            )
            raise PersistenceFailureError(f"unreadable ({e.strerror})", "read", record) from e

    def _report_corrupt(self, record: str, detail: str):
        logger.critical(
            f"Refusing to start: {self.path_for(record)} is corrupt ({detail}). "
            "Restore it from backup or move it aside to bootstrap an empty store.",
            extra={"operation": "read", "record": record, "error_code": "PERSISTENCE_FAILURE"},
        )
        raise PersistenceFailureError("record is corrupt", "read", record)

    # ─── Save ────────────────────────────────────────────────────

    async def save_users(self, users: Mapping[str, UserRecord]) -> None:
        await self._save(USERS_RECORD, _USERS_ADAPTER.dump_json(dict(users), indent=2))

    async def save_messages(self, messages: Sequence[Message]) -> None:
        await self._save(MESSAGES_RECORD, _MESSAGES_ADAPTER.dump_json(list(messages), indent=2))

    async def _save(self, record: str, payload: bytes) -> None:
        self._issued[record] += 1
        generation = self._issued[record]
        try:
            await asyncio.wait_for(
                self._write_with_retry(record, payload, generation),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            # The worker thread outlives the cancelled task; stop it from committing
            self._abandoned[record].add(generation)
            if await asyncio.to_thread(self._settle_abandoned, record, generation):
                logger.warning(
                    f"Write of {record} landed as its {self.timeout_seconds}s deadline expired",
                    extra={"operation": "write", "record": record},
                )
                return
            logger.error(
                f"Write of {record} exceeded {self.timeout_seconds}s deadline",
                extra={"operation": "write", "record": record, "error_code": "PERSISTENCE_FAILURE"},
            )
            raise PersistenceFailureError(
                f"deadline of {self.timeout_seconds}s exceeded", "write", record,
            )

    def _settle_abandoned(self, record: str, generation: int) -> bool:
        """Wait out an in-flight attempt. True if the generation committed before abandonment."""
        lock = self._file_locks[record]
        if not lock.acquire(timeout=self.timeout_seconds):
            return False
        try:
            if self._committed[record] == generation:
                self._abandoned[record].discard(generation)
                return True
            return False
        finally:
            lock.release()

    async def _write_with_retry(self, record: str, payload: bytes, generation: int) -> None:
        for attempt in range(self.max_retries + 1):
            try:
                await asyncio.to_thread(self._write_atomic, record, payload, generation)
                return
            except OSError as e:
                if attempt >= self.max_retries:
                    logger.error(
                        f"Write of {record} failed after {attempt + 1} attempt(s): {e}",
                        extra={"operation": "write", "record": record, "attempt": attempt + 1},
                    )
                    raise PersistenceFailureError(
                        e.strerror or str(e), "write", record,
                    ) from e
                delay = self._backoff_delay(attempt)
                logger.warning(
                    f"Write of {record} failed ({e}), retrying in {delay:.3f}s",
                    extra={"operation": "write", "record": record, "attempt": attempt + 1},
                )
                await asyncio.sleep(delay)

    def _backoff_delay(self, attempt: int) -> float:
        """Seconds to wait before retry number attempt + 1."""
        delay_ms = min(self.base_delay_ms * (2 ** attempt), self.max_delay_ms)
        jitter = delay_ms * 0.25 * (2 * random.random() - 1)
        return max(0.0, delay_ms + jitter) / 1000

    def _write_atomic(self, record: str, payload: bytes, generation: int) -> None:
        path = self.path_for(record)
        with self._file_locks[record]:
            if self._is_stale(record, generation):
                return
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{record}.", suffix=".tmp", dir=self.data_dir,
            )
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                if self._is_stale(record, generation):
                    os.unlink(tmp_name)
                    return
                os.replace(tmp_name, path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
            self._fsync_dir()
            self._committed[record] = generation

    def _is_stale(self, record: str, generation: int) -> bool:
        """Caller holds the record's file lock."""
        if generation in self._abandoned[record]:
            self._abandoned[record].discard(generation)
            reason = "its caller hit the deadline"
        elif generation <= self._committed[record]:
            reason = "a newer write already committed"
        else:
            return False
        logger.warning(
            f"Discarding late write of {record} (generation {generation}): {reason}",
            extra={"operation": "write", "record": record},
        )
        return True

    def _fsync_dir(self) -> None:
        if not hasattr(os, "O_DIRECTORY"):
            return
        fd = os.open(self.data_dir, os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)

    # ─── Health ──────────────────────────────────────────────────

    async def health_check(self) -> bool:
        """Readiness: data directory exists and is writable."""
        try:
            return await asyncio.to_thread(
                lambda: self.data_dir.is_dir() and os.access(self.data_dir, os.W_OK),
            )
        except OSError as e:
            logger.error(f"Storage health check failed: {e}")
            return False
