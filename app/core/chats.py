# app/core/chats.py
"""
Chat aggregate: chat lifecycle, conversation turns and copying a conversation
into a new chat. Branch-level mutations live in app.core.branching.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.auth import ensure_chat_access, ensure_chat_owner
from app.core.branching.repository import (
    BranchRepository,
    ChatRepository,
    MessageRepository,
    unit_of_work,
)
from app.core.branching.resolver import (
    get_chat_messages,
    load_messages,
    update_active_messages_for_chat,
)
from app.core.config import (
    MAIN_BRANCH_DESCRIPTION,
    MAIN_BRANCH_NAME,
    NEW_CHAT_TITLE,
    TITLE_MAX_LENGTH,
)
from app.core.errors import InvalidStateError
from app.models.branch import Branch
from app.models.chat import Chat
from app.models.message import Message
from app.schemas.chat import ForkChatResponse

logger = logging.getLogger(__name__)

MESSAGE_ROLES = ("user", "assistant", "system")
SHARE_MODES = ("read-only", "collaboration")


def _init_main_branch(db: Session, chat: Chat, message_ids: Optional[List[str]] = None) -> Branch:
    main_branch = BranchRepository(db).create(
        chat.id,
        branch_name=MAIN_BRANCH_NAME,
        description=MAIN_BRANCH_DESCRIPTION,
        messages=message_ids,
        is_main=True,
    )
    ChatRepository(db).patch(chat, active_branch_id=main_branch.id, base_messages=[])
    update_active_messages_for_chat(db, chat)
    return main_branch


def create_main_branch(db: Session, chat_id: str, user_id: str) -> str:
    """Create the chat's main branch and make it active. Allowed once per chat."""
    with unit_of_work(db):
        chat = ChatRepository(db).require(chat_id)
        ensure_chat_owner(chat, user_id, "initialise")
        if BranchRepository(db).get_main(chat.id) is not None:
            raise InvalidStateError("Chat already has a main branch.")
        branch_id = _init_main_branch(db, chat).id
    return branch_id


def _is_empty(db: Session, chat: Chat) -> bool:
    if chat.base_messages:
        return False
    branch = BranchRepository(db).get(chat.active_branch_id)
    return branch is None or not branch.messages


def create_chat(db: Session, user_id: str, title: str, model: str) -> Chat:
    """
    Create a chat with its (empty) main branch.

    Asking for another "New Chat" while an empty one exists hands back the
    existing one instead of piling up blank chats.
    """
    chats = ChatRepository(db)
    with unit_of_work(db):
        if title == NEW_CHAT_TITLE:
            existing = chats.find_by_title(user_id, NEW_CHAT_TITLE)
            if existing is not None and _is_empty(db, existing):
                chats.patch(existing, model=model)
                return existing

        chat = chats.create(user_id, title, model)
        _init_main_branch(db, chat)
        logger.info("Created chat %s for user %s", chat.id, user_id)
    return chat


def get_chat(db: Session, chat_id: str, user_id: str) -> Chat:
    chat = ChatRepository(db).require(chat_id)
    ensure_chat_access(chat, user_id)
    return chat


def list_chats(db: Session, user_id: str) -> List[Chat]:
    return ChatRepository(db).list_for_user(user_id)


def rename_chat(db: Session, chat_id: str, user_id: str, title: str) -> Chat:
    with unit_of_work(db):
        chat = get_chat(db, chat_id, user_id)
        ChatRepository(db).patch(chat, title=title)
    return chat


def update_chat_model(db: Session, chat_id: str, user_id: str, model: str) -> Chat:
    with unit_of_work(db):
        chat = get_chat(db, chat_id, user_id)
        ChatRepository(db).patch(chat, model=model)
    return chat


def set_chat_visibility(
    db: Session, chat_id: str, user_id: str, is_public: bool, share_mode: Optional[str] = None
) -> Chat:
    """Toggle the public flag and share mode; share links are issued elsewhere."""
    if share_mode is not None and share_mode not in SHARE_MODES:
        raise InvalidStateError(f"Unknown share mode: {share_mode}")
    with unit_of_work(db):
        chat = ChatRepository(db).require(chat_id)
        ensure_chat_owner(chat, user_id, "share")
        ChatRepository(db).patch(
            chat,
            is_public=is_public,
            share_mode=share_mode if is_public else None,
        )
    return chat


def get_main_branch(db: Session, chat_id: str) -> Optional[Branch]:
    return BranchRepository(db).get_main(chat_id)


def get_chat_branches(db: Session, chat_id: str) -> List[Branch]:
    return BranchRepository(db).list_for_chat(chat_id)


def get_branch_with_messages(db: Session, branch_id: str) -> Optional[Tuple[Branch, List[Message]]]:
    """The branch and its messages sorted by timestamp; dangling ids are skipped."""
    branch = BranchRepository(db).get(branch_id)
    if branch is None:
        return None
    populated = load_messages(db, list(branch.messages or []))
    return branch, sorted(populated, key=lambda message: message.timestamp)


def make_title(content: str) -> str:
    title = content[:TITLE_MAX_LENGTH].strip()
    return title + "..." if len(content) > TITLE_MAX_LENGTH else title


def add_message(
    db: Session,
    chat_id: str,
    user_id: str,
    role: str,
    content: str,
    model: Optional[str] = None,
) -> Message:
    """Append a conversation turn to the chat's active branch."""
    if role not in MESSAGE_ROLES:
        raise InvalidStateError(f"Unknown message role: {role}")

    chats = ChatRepository(db)
    branches = BranchRepository(db)
    with unit_of_work(db):
        chat = get_chat(db, chat_id, user_id)
        branch = branches.get(chat.active_branch_id)
        if branch is None:
            raise InvalidStateError("Chat has no active branch.")

        message = MessageRepository(db).create(chat.id, branch.id, role, content, model=model)
        branches.append_message(branch, message.id)

        updates = {}
        if chat.title == NEW_CHAT_TITLE and role == "user" and content.strip():
            updates["title"] = make_title(content)
        chats.patch(chat, **updates)
        update_active_messages_for_chat(db, chat)
    return message


def _copy_into_new_chat(
    db: Session, source: Chat, up_to: Message, user_id: str, title: str
) -> Tuple[Chat, int]:
    """New chat whose main branch holds copies of the source conversation up to `up_to`."""
    to_copy = [
        message for message in get_chat_messages(db, source.id)
        if message.timestamp <= up_to.timestamp
    ]

    chat = ChatRepository(db).create(
        user_id,
        title,
        source.model,
        parent_chat_id=source.id,
        branch_point=up_to.id,
    )
    main_branch = _init_main_branch(db, chat)

    messages = MessageRepository(db)
    copied_ids = [
        messages.create(
            chat.id,
            main_branch.id,
            message.role,
            message.content,
            model=message.model,
            timestamp=message.timestamp,
        ).id
        for message in to_copy
    ]
    BranchRepository(db).set_messages(main_branch, copied_ids)
    update_active_messages_for_chat(db, chat)
    logger.info("Copied %d messages from chat %s into chat %s", len(copied_ids), source.id, chat.id)
    return chat, len(copied_ids)


def fork_chat_from_message(db: Session, message_id: str, user_id: str) -> ForkChatResponse:
    """Start a separate chat from the conversation up to and including a message."""
    messages = MessageRepository(db)
    with unit_of_work(db):
        message = messages.require(message_id)
        branch = BranchRepository(db).require(message.branch_id)
        source = ChatRepository(db).require(branch.chat_id)
        ensure_chat_access(source, user_id, "fork")
        chat, count = _copy_into_new_chat(db, source, message, user_id, f"Fork of {source.title}")
        result = ForkChatResponse(new_chat_id=chat.id, message_count=count)
    return result


def branch_chat(
    db: Session, original_chat_id: str, message_id: str, title: str, user_id: str
) -> str:
    """Like fork_chat_from_message, addressed by chat and with a caller-chosen title."""
    with unit_of_work(db):
        source = get_chat(db, original_chat_id, user_id)
        message = MessageRepository(db).require(message_id)
        if message.chat_id != source.id:
            raise InvalidStateError("Message does not belong to this chat.")
        chat, _ = _copy_into_new_chat(db, source, message, user_id, title)
        new_chat_id = chat.id
    return new_chat_id
