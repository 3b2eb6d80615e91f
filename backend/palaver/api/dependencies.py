"""Request Dependencies — resolve the session cookie into a username."""

from fastapi import Depends, Request

from palaver.config import Settings, get_settings
from palaver.core.errors import UnauthenticatedError
from palaver.services.session_directory import SessionDirectory, get_session_directory


def optional_username(
    request: Request,
    sessions: SessionDirectory = Depends(get_session_directory),
    settings: Settings = Depends(get_settings),
) -> str | None:
    return sessions.resolve(request.cookies.get(settings.session_cookie_name))


def current_username(username: str | None = Depends(optional_username)) -> str:
    if username is None:
        raise UnauthenticatedError()
    return username
