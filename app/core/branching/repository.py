# app/core/branching/repository.py
"""
Thin repositories over the SQLAlchemy session.

The branching engine only needs document-store style operations: insert with
a generated id, get by id, patch by id, delete by id and indexed equality
queries. Every write is flushed straight away so later queries inside the
same transaction observe it (sessions are created with autoflush=False).
List-valued columns are JSON, so they are always replaced, never mutated
in place.
"""
import logging
import uuid
from contextlib import contextmanager
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConflictError, NotFoundError
from app.models.base import now_ms
from app.models.branch import Branch
from app.models.chat import Chat
from app.models.message import Message

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


@contextmanager
def unit_of_work(db: Session):
    """
    Runs one public operation as a single transaction: commit on success,
    rollback on any error. A stale message version (another transaction
    updated the same message first) surfaces as ConflictError.
    """
    try:
        yield
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        logger.warning("Concurrent update rejected: %s", exc)
        raise ConflictError(
            "The message was changed by another request. Reload the chat and retry."
        ) from exc
    except Exception:
        db.rollback()
        raise


class ChatRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, title: str, model: str, **fields) -> Chat:
        now = now_ms()
        chat = Chat(
            id=new_id(),
            user_id=user_id,
            title=title,
            model=model,
            created_at=now,
            updated_at=now,
            base_messages=[],
            active_messages=[],
            **fields
        )
        self.db.add(chat)
        self.db.flush()
        return chat

    def get(self, chat_id: Optional[str]) -> Optional[Chat]:
        if not chat_id:
            return None
        return self.db.get(Chat, chat_id)

    def require(self, chat_id: Optional[str]) -> Chat:
        chat = self.get(chat_id)
        if not chat:
            raise NotFoundError("Chat not found.")
        return chat

    def list_for_user(self, user_id: str) -> List[Chat]:
        return (
            self.db.query(Chat)
            .filter(Chat.user_id == user_id)
            .order_by(Chat.updated_at.desc())
            .all()
        )

    def find_by_title(self, user_id: str, title: str) -> Optional[Chat]:
        return (
            self.db.query(Chat)
            .filter(Chat.user_id == user_id, Chat.title == title)
            .first()
        )

    def patch(self, chat: Chat, **fields) -> Chat:
        for key, value in fields.items():
            setattr(chat, key, value)
        chat.updated_at = now_ms()
        self.db.flush()
        return chat

    def delete(self, chat: Chat) -> None:
        self.db.delete(chat)
        self.db.flush()


class BranchRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        chat_id: str,
        branch_name: str,
        description: Optional[str] = None,
        from_message_id: Optional[str] = None,
        messages: Optional[List[str]] = None,
        is_main: bool = False,
    ) -> Branch:
        now = now_ms()
        branch = Branch(
            id=new_id(),
            chat_id=chat_id,
            from_message_id=from_message_id,
            messages=list(messages or []),
            is_main=is_main,
            branch_name=branch_name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self.db.add(branch)
        self.db.flush()
        return branch

    def get(self, branch_id: Optional[str]) -> Optional[Branch]:
        if not branch_id:
            return None
        return self.db.get(Branch, branch_id)

    def require(self, branch_id: Optional[str], detail: str = "Branch not found.") -> Branch:
        branch = self.get(branch_id)
        if not branch:
            raise NotFoundError(detail)
        return branch

    def get_main(self, chat_id: str) -> Optional[Branch]:
        return (
            self.db.query(Branch)
            .filter(Branch.chat_id == chat_id, Branch.is_main == True)  # noqa: E712
            .first()
        )

    def list_for_chat(self, chat_id: str) -> List[Branch]:
        return (
            self.db.query(Branch)
            .filter(Branch.chat_id == chat_id)
            .order_by(Branch.created_at)
            .all()
        )

    def set_messages(self, branch: Branch, message_ids: Iterable[str]) -> Branch:
        branch.messages = list(message_ids)
        branch.updated_at = now_ms()
        self.db.flush()
        return branch

    def append_message(self, branch: Branch, message_id: str) -> Branch:
        return self.set_messages(branch, list(branch.messages or []) + [message_id])

    def delete(self, branch: Branch) -> None:
        self.db.delete(branch)
        self.db.flush()


class MessageRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        chat_id: str,
        branch_id: str,
        role: str,
        content: str,
        model: Optional[str] = None,
        timestamp: Optional[int] = None,
        edit_of: Optional[str] = None,
    ) -> Message:
        now = now_ms()
        message = Message(
            id=new_id(),
            chat_id=chat_id,
            branch_id=branch_id,
            role=role,
            content=content,
            timestamp=timestamp if timestamp is not None else now,
            model=model,
            branches=[],
            active_branch_id=None,
            edit_of=edit_of,
            updated_at=now,
        )
        self.db.add(message)
        self.db.flush()
        return message

    def get(self, message_id: Optional[str]) -> Optional[Message]:
        if not message_id:
            return None
        return self.db.get(Message, message_id)

    def require(self, message_id: Optional[str]) -> Message:
        message = self.get(message_id)
        if not message:
            raise NotFoundError("Message not found.")
        return message

    def get_many(self, message_ids: Iterable[str]) -> Dict[str, Message]:
        """Fetch by id in one query; ids that do not resolve are simply absent."""
        ids = list(set(message_ids))
        if not ids:
            return {}
        rows = self.db.query(Message).filter(Message.id.in_(ids)).all()
        return {message.id: message for message in rows}

    def list_for_chat(self, chat_id: str) -> List[Message]:
        return (
            self.db.query(Message)
            .filter(Message.chat_id == chat_id)
            .order_by(Message.timestamp)
            .all()
        )

    def list_for_branch(self, branch_id: str) -> List[Message]:
        return self.db.query(Message).filter(Message.branch_id == branch_id).all()

    def anchor_of(self, message: Message) -> Message:
        """
        The message that owns the branch set at this position. Edited variants
        point at it through edit_of; every other message is its own anchor.
        """
        if message.edit_of:
            anchor = self.get(message.edit_of)
            if anchor is not None:
                return anchor
            logger.warning(
                "Message %s is a variant of missing message %s", message.id, message.edit_of
            )
        return message

    def patch(self, message: Message, **fields) -> Message:
        for key, value in fields.items():
            setattr(message, key, value)
        message.updated_at = now_ms()
        self.db.flush()
        return message

    def delete(self, message: Message) -> None:
        self.db.delete(message)
        self.db.flush()
