"""Debug Route — store counters for local development. 403 in production."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from palaver.config import Settings, get_settings
from palaver.services.message_store import MessageStore, get_store

router = APIRouter(prefix="/api/debug", tags=["debug"])


@router.get("")
async def debug_info(
    store: MessageStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    if settings.is_production:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"error": "Not available in production"},
        )
    usernames = store.list_usernames()
    return {
        "user_count": len(usernames),
        "usernames": usernames,
        "message_count": len(store.log),
        "mode": store.mode.value,
    }
