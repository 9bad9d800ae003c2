# app/core/branching/resolver.py
"""
Resolution of the message sequence a chat currently shows.

The path in view is always chat.base_messages followed by the active branch's
messages. Reads resolve it on demand; mutations finish by storing it in the
chat.active_messages cache through update_active_messages_for_chat.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.auth import ensure_chat_access
from app.core.branching.repository import (
    BranchRepository,
    ChatRepository,
    MessageRepository,
    unit_of_work,
)
from app.core.errors import InvalidStateError
from app.models.chat import Chat
from app.models.message import Message

logger = logging.getLogger(__name__)


def resolve_path_ids(db: Session, chat: Optional[Chat]) -> List[str]:
    """
    Message ids in view, in positional order. Empty while the chat has no
    active branch or the branch no longer exists.
    """
    if chat is None or not chat.active_branch_id:
        return []
    branch = BranchRepository(db).get(chat.active_branch_id)
    if branch is None:
        return []
    return list(chat.base_messages or []) + list(branch.messages or [])


def load_messages(db: Session, message_ids: List[str]) -> List[Message]:
    """Fetch messages keeping the order of message_ids; dangling ids are dropped."""
    found = MessageRepository(db).get_many(message_ids)
    return [found[message_id] for message_id in message_ids if message_id in found]


def get_chat_messages(
    db: Session, chat_id: str, exclude_message_id: Optional[str] = None
) -> List[Message]:
    """
    The conversation as the user sees it, oldest first.

    Returns an empty list for unknown or uninitialised chats instead of raising,
    so display and history code never has to special-case them.
    """
    chat = ChatRepository(db).get(chat_id)
    message_ids = resolve_path_ids(db, chat)
    if exclude_message_id:
        message_ids = [mid for mid in message_ids if mid != exclude_message_id]
    # sorted() is stable: equal timestamps keep base-then-branch order
    return sorted(load_messages(db, message_ids), key=lambda message: message.timestamp)


def compute_base_messages(
    db: Session, chat: Chat, anchor: Message
) -> Tuple[List[str], List[str]]:
    """
    Split the path in view at the divergence point for `anchor`.

    The divergence point is the first position holding the anchor itself or
    one of its edited variants. Returns (prefix, continuation): the prefix
    becomes chat.base_messages, the continuation starts at the anchor.
    """
    path_ids = resolve_path_ids(db, chat)
    found = MessageRepository(db).get_many(path_ids)
    for index, message_id in enumerate(path_ids):
        message = found.get(message_id)
        if message_id == anchor.id or (message is not None and message.edit_of == anchor.id):
            logger.debug(
                "Divergence point for message %s in chat %s at index %d (previous base %d)",
                anchor.id, chat.id, index, len(chat.base_messages or []),
            )
            return path_ids[:index], path_ids[index:]
    raise InvalidStateError("Message is not on the active conversation path.")


def update_active_messages_for_chat(db: Session, chat: Chat) -> List[str]:
    """
    Refresh the chat.active_messages cache from base_messages and the active
    branch. Idempotent; every mutating operation calls it as its last step.
    """
    base_messages = list(chat.base_messages or [])
    branch = BranchRepository(db).get(chat.active_branch_id)
    branch_messages = list(branch.messages or []) if branch is not None else []
    active_messages = base_messages + branch_messages

    ChatRepository(db).patch(chat, active_messages=active_messages)
    logger.info(
        "Active messages updated for chat %s: base=%d branch=%d total=%d",
        chat.id, len(base_messages), len(branch_messages), len(active_messages),
    )
    return active_messages


def update_active_messages(db: Session, chat_id: str, user_id: str) -> List[str]:
    """Explicit re-sync of the cache, safe to call at any time."""
    with unit_of_work(db):
        chat = ChatRepository(db).require(chat_id)
        ensure_chat_access(chat, user_id, "update")
        active_messages = update_active_messages_for_chat(db, chat)
    return active_messages
