# app/core/branching/fork.py
import logging

from sqlalchemy.orm import Session

from app.core.auth import ensure_chat_access
from app.core.branching.repository import (
    BranchRepository,
    ChatRepository,
    MessageRepository,
    unit_of_work,
)
from app.core.branching.resolver import compute_base_messages, update_active_messages_for_chat
from app.schemas.branch import BranchEditResponse

logger = logging.getLogger(__name__)


def create_branch_from_message_edit(
    db: Session, message_id: str, new_content: str, user_id: str
) -> BranchEditResponse:
    """
    Edit a message by forking the conversation at it.

    The first edit of a message creates two branches: "Branch 1" keeps the
    original continuation (the message and everything after it on the current
    path) and "Branch 2" starts with the edited text. Each later edit appends
    one more branch, numbered len(existing branches) + 2. The new branch
    becomes active both on the message and on the chat.

    The edited text is stored on a new variant message (edit_of -> the
    original) so the original branch keeps showing what was actually said.
    Editing a variant edits its original, so one position has one branch set.
    """
    messages = MessageRepository(db)
    branches = BranchRepository(db)
    chats = ChatRepository(db)

    with unit_of_work(db):
        # 1) Validate everything before the first write
        message = messages.require(message_id)
        anchor = messages.anchor_of(message)
        current_branch = branches.require(anchor.branch_id, "Current branch not found.")
        chat = chats.require(current_branch.chat_id)
        ensure_chat_access(chat, user_id, "edit messages in")

        # 2) Divergence point, computed before any branch exists so every
        #    branch forked here shares the same prefix
        base_messages, continuation = compute_base_messages(db, chat, anchor)

        # 3) Create the branch(es)
        existing_branches = list(anchor.branches or [])
        created_branches = []
        if not existing_branches:
            original_branch = branches.create(
                chat.id,
                branch_name="Branch 1",
                description="Original version",
                from_message_id=anchor.id,
                messages=continuation,
            )
            created_branches.append(original_branch.id)
            branch_number = 2
            description = "Edited version"
        else:
            branch_number = len(existing_branches) + 2
            description = f"Edited version {branch_number - 1}"

        new_branch = branches.create(
            chat.id,
            branch_name=f"Branch {branch_number}",
            description=description,
            from_message_id=anchor.id,
        )
        variant = messages.create(
            chat.id,
            new_branch.id,
            anchor.role,
            new_content,
            model=anchor.model,
            edit_of=anchor.id,
        )
        branches.set_messages(new_branch, [variant.id])
        all_branches = existing_branches + created_branches + [new_branch.id]

        # 4) Message-scoped pointers
        messages.patch(anchor, branches=all_branches, active_branch_id=new_branch.id)

        # 5) Chat pointers; the active branch is switched last
        chats.patch(chat, base_messages=base_messages)
        chats.patch(chat, active_branch_id=new_branch.id)

        # 6) Refresh the cache
        update_active_messages_for_chat(db, chat)

        result = BranchEditResponse(
            new_branch_id=new_branch.id,
            new_message_id=variant.id,
            branch_number=branch_number,
            total_branches=len(all_branches),
            active_branch_name=new_branch.branch_name,
        )
        logger.info(
            "Edited message %s in chat %s: created %s, %d branches at this point",
            anchor.id, chat.id, result.active_branch_name, result.total_branches,
        )

    return result
