"""Auth Routes — register, login, logout and session status.

Invariants:
    - Login failure is a uniform 401 whatever the cause
    - The session cookie holds an opaque token, never the username
    - Cookie is httpOnly, SameSite=strict, secure in production
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from palaver.api.dependencies import optional_username
from palaver.config import Settings, get_settings
from palaver.schemas.auth import AuthStatusResponse, LoginRequest, RegisterRequest
from palaver.services.message_store import MessageStore, get_store
from palaver.services.session_directory import SessionDirectory, get_session_directory

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, store: MessageStore = Depends(get_store)):
    await store.register(body.username, body.password)
    return {"message": "User registered successfully"}


@router.post("/login")
async def login(
    body: LoginRequest,
    response: Response,
    store: MessageStore = Depends(get_store),
    sessions: SessionDirectory = Depends(get_session_directory),
    settings: Settings = Depends(get_settings),
):
    user = await store.authenticate(body.username, body.password)
    token = sessions.issue(user.username)
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )
    return {"message": "Login successful", "user": user.username}


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    sessions: SessionDirectory = Depends(get_session_directory),
    settings: Settings = Depends(get_settings),
):
    sessions.revoke(request.cookies.get(settings.session_cookie_name))
    response.delete_cookie(settings.session_cookie_name)
    return {"message": "Logged out"}


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status(username: str | None = Depends(optional_username)):
    return AuthStatusResponse(user=username)
