# app/core/auth.py
from fastapi import Header, HTTPException

from app.core.errors import UnauthorizedError
from app.models.chat import Chat


def get_current_user_id(x_user_id: str = Header(None)) -> str:
    """
    Resolves the calling user. Authentication happens upstream; the gateway
    forwards the authenticated id in the X-User-Id header.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated.")
    return x_user_id


def can_access_chat(chat: Chat, user_id: str) -> bool:
    return chat.user_id == user_id or bool(chat.is_public) or chat.share_mode == "collaboration"


def ensure_chat_access(chat: Chat, user_id: str, action: str = "access") -> None:
    """Owner, or a public/collaborative chat."""
    if not can_access_chat(chat, user_id):
        raise UnauthorizedError(f"Unauthorized to {action} this chat.")


def ensure_chat_owner(chat: Chat, user_id: str, action: str = "modify") -> None:
    if chat.user_id != user_id:
        raise UnauthorizedError(f"Only the owner can {action} this chat.")
