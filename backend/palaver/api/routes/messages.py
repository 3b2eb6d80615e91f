"""Message Routes — send and poll.

Invariants:
    - Directed mode: both endpoints require a session; sender always comes from it
    - Broadcast mode: the feed is public; guests may post under an unregistered name
      when allow_guest_broadcast is set; the name must be one registration would accept
    - Feed responses carry poll_interval_ms; there is no push channel
"""

import logging

from fastapi import APIRouter, Depends, Query, status

from palaver.api.dependencies import optional_username
from palaver.config import Settings, get_settings
from palaver.core.domain_types import MessageMode
from palaver.core.errors import UnauthenticatedError
from palaver.core.identity_rules import normalize_username
from palaver.schemas.message import (
    MessageFeedResponse, MessageResponse, SendMessageRequest, SendMessageResponse,
)
from palaver.services.message_store import MessageStore, get_store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("", response_model=MessageFeedResponse)
async def fetch_feed(
    with_user: str | None = Query(None, alias="with", max_length=256),
    viewer: str | None = Depends(optional_username),
    store: MessageStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    if store.mode is MessageMode.DIRECTED and viewer is None:
        raise UnauthenticatedError()
    return MessageFeedResponse(
        messages=[
            MessageResponse.from_record(m) for m in store.feed(viewer, with_user)
        ],
        poll_interval_ms=settings.poll_interval_ms,
    )


@router.post(
    "", response_model=SendMessageResponse, status_code=status.HTTP_201_CREATED,
)
async def send_message(
    body: SendMessageRequest,
    viewer: str | None = Depends(optional_username),
    store: MessageStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    sender = viewer or _guest_sender(body, store, settings)
    message = await store.send(sender, body.content, body.to)
    return SendMessageResponse(message=MessageResponse.from_record(message))


def _guest_sender(
    body: SendMessageRequest, store: MessageStore, settings: Settings,
) -> str:
    if not (store.mode is MessageMode.BROADCAST and settings.allow_guest_broadcast):
        raise UnauthenticatedError()
    name = normalize_username(body.username)
    if store.is_registered(name):
        raise UnauthenticatedError()
    return name
