# app/core/branching/cleanup.py
import logging
from typing import Set

from sqlalchemy.orm import Session

from app.core.auth import ensure_chat_access, ensure_chat_owner
from app.core.branching.repository import (
    BranchRepository,
    ChatRepository,
    MessageRepository,
    unit_of_work,
)
from app.core.branching.resolver import update_active_messages_for_chat
from app.core.config import MAIN_BRANCH_DESCRIPTION, MAIN_BRANCH_NAME
from app.models.branch import Branch
from app.models.chat import Chat
from app.models.preferences import Preferences
from app.models.user import User
from app.schemas.chat import AccountDeletionResponse, DeleteAllChatsResponse
from app.schemas.message import MessageDeletionResponse

logger = logging.getLogger(__name__)


def _delete_branch_tree(
    db: Session, branch: Branch, deleted_branches: Set[str], deleted_messages: Set[str]
) -> None:
    """
    Delete a branch with the messages physically stored under it, and,
    recursively, the branches forked at those messages. The main branch is
    never removed here.
    """
    if branch.is_main or branch.id in deleted_branches:
        return
    deleted_branches.add(branch.id)

    messages = MessageRepository(db)
    branches = BranchRepository(db)
    for owned in messages.list_for_branch(branch.id):
        for nested_id in list(owned.branches or []):
            nested = branches.get(nested_id)
            if nested is not None:
                _delete_branch_tree(db, nested, deleted_branches, deleted_messages)
        deleted_messages.add(owned.id)
        messages.delete(owned)
    branches.delete(branch)


def _scrub_references(db: Session, chat: Chat, message_ids: Set[str]) -> None:
    """Drop deleted message ids from every branch list of the chat and from base_messages."""
    branches = BranchRepository(db)
    for branch in branches.list_for_chat(chat.id):
        if any(mid in message_ids for mid in branch.messages or []):
            branches.set_messages(branch, [mid for mid in branch.messages if mid not in message_ids])
    base_messages = list(chat.base_messages or [])
    if any(mid in message_ids for mid in base_messages):
        ChatRepository(db).patch(
            chat, base_messages=[mid for mid in base_messages if mid not in message_ids]
        )


def fall_back_to_main_branch(db: Session, chat: Chat, keep_messages: bool = False) -> Branch:
    """
    Point the chat back at its main branch so it never references a deleted
    or permanently empty branch. Re-creates the main branch if the chat
    somehow lost it.

    By default the main branch is emptied and base_messages stay in front of
    it. With keep_messages the main branch keeps what it still holds and
    becomes the whole path (base_messages cleared), so surviving messages
    stay in view.
    """
    branches = BranchRepository(db)
    chats = ChatRepository(db)
    main_branch = branches.get_main(chat.id)
    if main_branch is None:
        logger.warning("Chat %s had no main branch; re-initialising it", chat.id)
        main_branch = branches.create(
            chat.id,
            branch_name=MAIN_BRANCH_NAME,
            description=MAIN_BRANCH_DESCRIPTION,
            is_main=True,
        )
    elif not keep_messages:
        branches.set_messages(main_branch, [])
    if keep_messages:
        chats.patch(chat, base_messages=[])
    chats.patch(chat, active_branch_id=main_branch.id)
    logger.info(
        "Chat %s fell back to main branch %s (%d messages kept)",
        chat.id, main_branch.id, len(main_branch.messages or []),
    )
    return main_branch


def handle_message_deletion(db: Session, message_id: str, user_id: str) -> MessageDeletionResponse:
    """
    Delete a message together with every branch forked at it.

    Deleting an edited version deletes the whole position: the original it
    was edited from, and with it every version and branch forked there.

    The id is removed from the owning branch (and any other list that still
    references it). When that leaves a non-main branch empty, the chat falls
    back to an emptied main branch. When the chat's active branch was one of
    the removed branches, it falls back to whatever the main branch still
    holds.
    """
    messages = MessageRepository(db)
    branches = BranchRepository(db)
    chats = ChatRepository(db)

    with unit_of_work(db):
        requested = messages.require(message_id)
        message = messages.anchor_of(requested)
        if message.id != requested.id:
            logger.debug("Deleting %s through its edited version %s", message.id, requested.id)
        owning_branch = branches.require(message.branch_id)
        chat = chats.require(owning_branch.chat_id)
        ensure_chat_access(chat, user_id, "delete messages in")

        forked_branch_ids = list(message.branches or [])
        deleted_branches: Set[str] = set()
        deleted_messages: Set[str] = {message.id}
        for branch_id in forked_branch_ids:
            branch = branches.get(branch_id)
            if branch is None:
                logger.warning("Branch %s listed on message %s no longer exists", branch_id, message.id)
                continue
            _delete_branch_tree(db, branch, deleted_branches, deleted_messages)

        remaining = [mid for mid in owning_branch.messages or [] if mid != message.id]
        branches.set_messages(owning_branch, remaining)
        messages.delete(message)
        _scrub_references(db, chat, deleted_messages)

        if chat.active_branch_id in deleted_branches:
            fall_back_to_main_branch(db, chat, keep_messages=True)
        elif not remaining and not owning_branch.is_main:
            fall_back_to_main_branch(db, chat)

        update_active_messages_for_chat(db, chat)
        logger.info(
            "Deleted message %s from chat %s with %d forked branches",
            message.id, chat.id, len(deleted_branches),
        )

    return MessageDeletionResponse(deleted_branches=len(forked_branch_ids))


def delete_chat_cascade(db: Session, chat: Chat) -> None:
    """Every branch with the messages it references, leftover messages, then the chat."""
    messages = MessageRepository(db)
    branches = BranchRepository(db)
    for branch in branches.list_for_chat(chat.id):
        for message_id in branch.messages or []:
            message = messages.get(message_id)
            if message is not None:
                messages.delete(message)
        branches.delete(branch)
    # Messages no list references any more (e.g. left behind by deleted branches)
    for message in messages.list_for_chat(chat.id):
        messages.delete(message)
    ChatRepository(db).delete(chat)


def delete_chat(db: Session, chat_id: str, user_id: str) -> None:
    with unit_of_work(db):
        chat = ChatRepository(db).require(chat_id)
        ensure_chat_owner(chat, user_id, "delete")
        delete_chat_cascade(db, chat)
        logger.info("Deleted chat %s", chat_id)


def delete_all_user_chats(db: Session, user_id: str) -> DeleteAllChatsResponse:
    with unit_of_work(db):
        chats = ChatRepository(db).list_for_user(user_id)
        for chat in chats:
            delete_chat_cascade(db, chat)
        logger.info("Deleted %d chats of user %s", len(chats), user_id)
    return DeleteAllChatsResponse(deleted_chats=len(chats))


def delete_user_account(db: Session, user_id: str) -> AccountDeletionResponse:
    """Chats, preferences and finally the user record itself."""
    with unit_of_work(db):
        chats = ChatRepository(db).list_for_user(user_id)
        for chat in chats:
            delete_chat_cascade(db, chat)

        preferences = db.query(Preferences).filter(Preferences.user_id == user_id).first()
        if preferences:
            db.delete(preferences)

        user = db.get(User, user_id)
        if user:
            db.delete(user)
        logger.info("Deleted account %s with %d chats", user_id, len(chats))

    return AccountDeletionResponse(deleted_chats=len(chats), deleted_user=user is not None)
