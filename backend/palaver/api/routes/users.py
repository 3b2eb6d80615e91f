"""User Directory Route — lists registered usernames for the recipient picker."""

from fastapi import APIRouter, Depends

from palaver.api.dependencies import current_username
from palaver.schemas.message import UserListResponse, UserSummary
from palaver.services.message_store import MessageStore, get_store

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def list_users(
    username: str = Depends(current_username),
    store: MessageStore = Depends(get_store),
):
    """Registration order, caller excluded."""
    return UserListResponse(
        users=[
            UserSummary(username=name)
            for name in store.list_usernames()
            if name != username
        ],
    )
