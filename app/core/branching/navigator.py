# app/core/branching/navigator.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.auth import ensure_chat_access
from app.core.branching.repository import (
    BranchRepository,
    ChatRepository,
    MessageRepository,
    unit_of_work,
)
from app.core.branching.resolver import compute_base_messages, update_active_messages_for_chat
from app.core.errors import InvalidStateError
from app.schemas.branch import (
    BranchNavigationResponse,
    MessageBranchEntry,
    MessageBranchesResponse,
)

logger = logging.getLogger(__name__)


def navigate_to_branch(
    db: Session, message_id: str, branch_id: str, user_id: str
) -> BranchNavigationResponse:
    """
    Switch the conversation to another branch forked at `message_id`.

    Does the same pointer bookkeeping as an edit (base_messages recomputed
    from the message, message and chat pointers moved) without creating
    anything.
    """
    messages = MessageRepository(db)
    branches = BranchRepository(db)
    chats = ChatRepository(db)

    with unit_of_work(db):
        message = messages.require(message_id)
        anchor = messages.anchor_of(message)
        target_branch = branches.require(branch_id, "Target branch not found.")
        chat = chats.require(target_branch.chat_id)
        ensure_chat_access(chat, user_id, "navigate")

        if branch_id not in (anchor.branches or []):
            raise InvalidStateError("Branch is not associated with this message.")

        base_messages, _ = compute_base_messages(db, chat, anchor)

        messages.patch(anchor, active_branch_id=branch_id)
        chats.patch(chat, base_messages=base_messages)
        chats.patch(chat, active_branch_id=branch_id)
        update_active_messages_for_chat(db, chat)

        result = BranchNavigationResponse(
            switched_to_branch=branch_id,
            branch_name=target_branch.branch_name,
        )
        logger.info("Chat %s switched to %s at message %s", chat.id, result.branch_name, anchor.id)

    return result


def get_message_branches(db: Session, message_id: str) -> Optional[MessageBranchesResponse]:
    """
    All versions available at a message, for the "2/3" style navigator.

    Display numbers come from positions in the message's branches list, so
    they stay correct after deletions. Returns None for unknown or never
    edited messages.
    """
    messages = MessageRepository(db)
    message = messages.get(message_id)
    if message is None:
        return None
    anchor = messages.anchor_of(message)
    if not anchor.branches:
        return None

    branches = BranchRepository(db)
    valid_branches = [
        branch for branch in (branches.get(bid) for bid in anchor.branches) if branch is not None
    ]
    active_branch_id = anchor.active_branch_id

    entries = [
        MessageBranchEntry(
            id=branch.id,
            name=branch.branch_name or f"Branch {index + 1}",
            description=branch.description,
            is_active=branch.id == active_branch_id,
            display_number=index + 1,
            message_count=len(branch.messages or []),
            created_at=branch.created_at,
        )
        for index, branch in enumerate(valid_branches)
    ]
    current = next((entry.display_number for entry in entries if entry.is_active), 0)

    return MessageBranchesResponse(
        branches=entries,
        total_branches=len(entries),
        active_branch_id=active_branch_id,
        current_display_number=current,
        navigation_display=f"{current}/{len(entries)}",
    )
