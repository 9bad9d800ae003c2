"""Shared fixtures: an in-memory database, seeded users and a two-message chat."""

import os

# Must be set before anything imports app.core.config
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.branching.repository import BranchRepository, ChatRepository, MessageRepository
from app.core.branching.resolver import update_active_messages_for_chat
from app.core.chats import create_chat
from app.models.base import Base
from app.models.user import User


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def user(db):
    owner = User(id="user-owner", email="owner@example.com", name="Owner")
    db.add(owner)
    db.commit()
    return owner


@pytest.fixture
def other_user(db):
    stranger = User(id="user-other", email="other@example.com", name="Other")
    db.add(stranger)
    db.commit()
    return stranger


@pytest.fixture
def seed_message():
    """
    Append a message with an explicit timestamp to the chat's active branch,
    bypassing the clock so ordering in tests is deterministic.
    """
    def _seed(session, chat_id, content, timestamp, role="user"):
        chat = ChatRepository(session).require(chat_id)
        branches = BranchRepository(session)
        branch = branches.require(chat.active_branch_id)
        message = MessageRepository(session).create(
            chat.id, branch.id, role, content, timestamp=timestamp
        )
        branches.append_message(branch, message.id)
        update_active_messages_for_chat(session, chat)
        session.commit()
        return message

    return _seed


@pytest.fixture
def chat(db, user):
    return create_chat(db, user.id, "Branching test", "gpt-4o-mini")


@pytest.fixture
def conversation(db, chat, seed_message):
    """Main branch holding [m1, m2] with timestamps 100 and 200."""
    m1 = seed_message(db, chat.id, "hello", 100)
    m2 = seed_message(db, chat.id, "second", 200, role="user")
    return chat, m1, m2
