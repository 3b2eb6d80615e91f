"""Session Directory — opaque tokens binding a browser session to a username.

Invariants:
    - Tokens are random (secrets.token_urlsafe), never derived from the username
    - resolve() of an expired or revoked token returns None and forgets it
    - In-memory only: a restart logs everyone out

Design Decisions:
    - Module-level singleton like the store; single-process deployment assumed
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionGrant:
    username: str
    expires_at: datetime


class SessionDirectory:
    def __init__(self, max_age_seconds: int = 60 * 60 * 24 * 7):
        self.max_age = timedelta(seconds=max_age_seconds)
        self._grants: dict[str, SessionGrant] = {}

    def issue(self, username: str) -> str:
        token = secrets.token_urlsafe(32)
        self._grants[token] = SessionGrant(
            username=username,
            expires_at=datetime.now(timezone.utc) + self.max_age,
        )
        logger.info("Session issued", extra={"username": username, "operation": "login"})
        return token

    def resolve(self, token: str | None) -> str | None:
        if not token:
            return None
        grant = self._grants.get(token)
        if grant is None:
            return None
        if grant.expires_at <= datetime.now(timezone.utc):
            self._grants.pop(token, None)
            return None
        return grant.username

    def revoke(self, token: str | None) -> None:
        if token and self._grants.pop(token, None):
            logger.info("Session revoked", extra={"operation": "logout"})


session_directory = SessionDirectory()


def init_session_directory(max_age_seconds: int) -> SessionDirectory:
    global session_directory
    session_directory = SessionDirectory(max_age_seconds)
    return session_directory


def get_session_directory() -> SessionDirectory:
    """FastAPI dependency for the process-wide session directory."""
    return session_directory
