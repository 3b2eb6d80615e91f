"""Persistence Gateway — tests for bootstrap, fail-fast loads, atomic rewrites and retries.

Invariants:
    - Absent records bootstrap empty and are written back
    - Corrupt or unreadable records raise PersistenceFailureError and are left untouched
    - Round-trip preserves content and order
    - Transient OSError is retried; exhaustion and deadline raise PersistenceFailureError
    - A late write never overwrites a newer commit
    - A write whose caller hit the deadline never lands, even after its thread finishes
"""

import asyncio
import json
import time
from datetime import datetime, timedelta, timezone

import pytest

from palaver.core.errors import PersistenceFailureError
from palaver.core.records import Message, UserRecord
from palaver.infrastructure.persistence import (
    MESSAGES_RECORD, USERS_RECORD, PersistenceGateway,
)

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def gateway(tmp_path):
    return PersistenceGateway(
        tmp_path / "data",
        timeout_seconds=2.0,
        max_retries=3,
        base_delay_ms=1,
        max_delay_ms=5,
    )


def _user(name: str) -> UserRecord:
    return UserRecord(username=name, credential_hash=f"$2b$04$hash-of-{name}", created_at=T0)


def _msg(i: int) -> Message:
    return Message(
        id=i, sender="alice", recipient="bob", body=f"m{i}",
        created_at=T0 + timedelta(seconds=i),
    )


# ─── Bootstrap ───────────────────────────────────────────────────

async def test_absent_records_bootstrap_empty(gateway):
    users, messages = await gateway.load()
    assert users == {}
    assert messages == []
    assert json.loads(gateway.path_for(USERS_RECORD).read_text()) == {}
    assert json.loads(gateway.path_for(MESSAGES_RECORD).read_text()) == []


async def test_bootstrap_creates_missing_data_dir(tmp_path):
    gw = PersistenceGateway(tmp_path / "nested" / "deeper")
    await gw.load()
    assert (tmp_path / "nested" / "deeper" / "users.json").is_file()


# ─── Round-trip ──────────────────────────────────────────────────

async def test_round_trip_preserves_content_and_order(gateway):
    users = {name: _user(name) for name in ("zed", "amy", "bob")}
    messages = [_msg(i) for i in range(1, 6)]
    await gateway.save_users(users)
    await gateway.save_messages(messages)

    fresh = PersistenceGateway(gateway.data_dir)
    loaded_users, loaded_messages = await fresh.load()
    assert loaded_users == users
    assert list(loaded_users) == ["zed", "amy", "bob"]
    assert loaded_messages == messages


async def test_save_leaves_no_temp_files(gateway):
    await gateway.save_messages([_msg(1)])
    await gateway.save_messages([_msg(1), _msg(2)])
    assert list(gateway.data_dir.glob(".*.tmp")) == []


# ─── Fail-fast loads ─────────────────────────────────────────────

async def test_invalid_json_fails_fast_and_keeps_file(gateway):
    gateway.data_dir.mkdir(parents=True)
    path = gateway.path_for(USERS_RECORD)
    path.write_text("{not json")
    with pytest.raises(PersistenceFailureError) as exc:
        await gateway.load_users()
    assert exc.value.operation == "read"
    assert exc.value.record == USERS_RECORD
    assert path.read_text() == "{not json"


async def test_schema_mismatch_fails_fast(gateway):
    gateway.data_dir.mkdir(parents=True)
    # Plaintext layout without a credential hash
    gateway.path_for(USERS_RECORD).write_text(
        json.dumps({"alice": {"username": "alice", "password": "secret1"}}),
    )
    with pytest.raises(PersistenceFailureError):
        await gateway.load_users()


async def test_empty_file_is_corrupt_not_absent(gateway):
    gateway.data_dir.mkdir(parents=True)
    gateway.path_for(MESSAGES_RECORD).write_text("")
    with pytest.raises(PersistenceFailureError):
        await gateway.load_messages()


async def test_user_key_mismatch_fails_fast(gateway):
    await gateway.save_users({"alice": _user("bob")})
    with pytest.raises(PersistenceFailureError):
        await gateway.load_users()


async def test_duplicate_message_ids_fail_fast(gateway):
    await gateway.save_messages([_msg(1), _msg(1)])
    with pytest.raises(PersistenceFailureError):
        await gateway.load_messages()


async def test_unreadable_record_fails_fast(gateway):
    gateway.path_for(USERS_RECORD).mkdir(parents=True)
    with pytest.raises(PersistenceFailureError):
        await gateway.load_users()


# ─── Retry & deadline ────────────────────────────────────────────

async def test_transient_write_errors_are_retried(gateway, monkeypatch):
    real_write = gateway._write_atomic
    attempts = []

    def flaky(record, payload, generation):
        attempts.append(generation)
        if len(attempts) < 3:
            raise OSError(5, "Input/output error")
        real_write(record, payload, generation)

    monkeypatch.setattr(gateway, "_write_atomic", flaky)
    await gateway.save_messages([_msg(1)])

    assert len(attempts) == 3
    assert len(set(attempts)) == 1
    assert len(json.loads(gateway.path_for(MESSAGES_RECORD).read_text())) == 1


async def test_retry_exhaustion_raises(gateway, monkeypatch):
    attempts = []

    def broken(record, payload, generation):
        attempts.append(generation)
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(gateway, "_write_atomic", broken)
    with pytest.raises(PersistenceFailureError) as exc:
        await gateway.save_users({"alice": _user("alice")})

    assert len(attempts) == gateway.max_retries + 1
    assert exc.value.operation == "write"
    assert exc.value.record == USERS_RECORD


async def test_slow_write_hits_deadline_and_never_lands(tmp_path, monkeypatch):
    gw = PersistenceGateway(tmp_path / "data", timeout_seconds=0.1)
    await gw.load()
    real_write = gw._write_atomic
    finished = []

    def slow(record, payload, generation):
        time.sleep(0.3)
        real_write(record, payload, generation)
        finished.append(generation)

    monkeypatch.setattr(gw, "_write_atomic", slow)
    with pytest.raises(PersistenceFailureError) as exc:
        await gw.save_messages([_msg(1)])
    assert "deadline" in exc.value.message

    # Let the orphaned worker thread run to completion
    for _ in range(50):
        if finished:
            break
        await asyncio.sleep(0.02)
    assert finished
    assert json.loads(gw.path_for(MESSAGES_RECORD).read_text()) == []
    assert list(gw.data_dir.glob(".*.tmp")) == []
    assert await PersistenceGateway(gw.data_dir).load_messages() == []


async def test_write_that_commits_at_the_deadline_counts_as_saved(gateway):
    await gateway.load()
    gateway._write_atomic(MESSAGES_RECORD, b"[]", 5)
    gateway._abandoned[MESSAGES_RECORD].add(5)
    assert gateway._settle_abandoned(MESSAGES_RECORD, 5)
    assert gateway._abandoned[MESSAGES_RECORD] == set()


def test_backoff_is_bounded(gateway):
    for attempt in range(10):
        assert 0 <= gateway._backoff_delay(attempt) <= gateway.max_delay_ms * 1.25 / 1000


async def test_late_write_never_overwrites_newer_commit(gateway):
    await gateway.save_messages([_msg(1)])
    await gateway.save_messages([_msg(1), _msg(2)])

    # Generation 1 finishing after generation 2 must be discarded
    gateway._write_atomic(MESSAGES_RECORD, b"[]", 1)

    stored = json.loads(gateway.path_for(MESSAGES_RECORD).read_text())
    assert [m["id"] for m in stored] == [1, 2]


# ─── Health ──────────────────────────────────────────────────────

async def test_health_check(gateway, tmp_path):
    await gateway.load()
    assert await gateway.health_check()
    assert not await PersistenceGateway(tmp_path / "missing").health_check()
