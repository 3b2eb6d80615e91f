"""Service test fixtures — loaded stores on tmp_path + FastAPI test client.

Invariants:
    - Every test gets a fresh data directory and a fresh SessionDirectory
    - get_store / get_settings / get_session_directory overridden for route tests
    - message_store singleton patched so readiness probes see the test store
"""

from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient

from palaver.config import Settings, get_settings
from palaver.core.domain_types import MessageMode
from palaver.main import app
from palaver.services import message_store as store_module
from palaver.services.message_store import MessageStore, get_store
from palaver.services.session_directory import SessionDirectory, get_session_directory


def _settings(tmp_path, **overrides) -> Settings:
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        bcrypt_rounds=4,
        persistence_base_delay_ms=1,
        persistence_max_delay_ms=5,
        **overrides,
    )


@asynccontextmanager
async def _client_for(store: MessageStore, settings: Settings):
    sessions = SessionDirectory(settings.session_max_age_seconds)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_session_directory] = lambda: sessions

    original_store = store_module.message_store
    store_module.message_store = store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://testserver",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    store_module.message_store = original_store


@pytest.fixture
def settings(tmp_path):
    return _settings(tmp_path)


@pytest.fixture
def broadcast_settings(tmp_path):
    return _settings(tmp_path, message_mode=MessageMode.BROADCAST)


@pytest.fixture
async def store(settings):
    return await MessageStore.open(settings)


@pytest.fixture
async def broadcast_store(broadcast_settings):
    return await MessageStore.open(broadcast_settings)


@pytest.fixture
async def client(store, settings):
    """FastAPI test client bound to a directed-mode store."""
    async with _client_for(store, settings) as c:
        yield c


@pytest.fixture
async def broadcast_client(broadcast_store, broadcast_settings):
    async with _client_for(broadcast_store, broadcast_settings) as c:
        yield c


@pytest.fixture
def login(client):
    """Register (optionally) and log in; the session cookie stays in the client jar."""
    async def _login(username: str, password: str = "secret1", register: bool = True):
        if register:
            res = await client.post(
                "/api/auth/register", json={"username": username, "password": password},
            )
            assert res.status_code == 201, res.text
        res = await client.post(
            "/api/auth/login", json={"username": username, "password": password},
        )
        assert res.status_code == 200, res.text
        return res
    return _login
