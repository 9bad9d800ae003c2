"""Tests for chat lifecycle, conversation turns and copying a chat."""

import pytest

from app.core import chats
from app.core.branching import create_branch_from_message_edit, get_chat_messages
from app.core.branching.repository import BranchRepository, ChatRepository
from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError


def contents(messages):
    return [message.content for message in messages]


class TestCreateChat:
    def test_creates_active_main_branch(self, db, user):
        chat = chats.create_chat(db, user.id, "Planning", "gpt-4o")

        main = BranchRepository(db).get_main(chat.id)
        assert main.branch_name == "Main"
        assert main.messages == []
        assert chat.active_branch_id == main.id
        assert chat.base_messages == []
        assert chat.active_messages == []
        assert chat.model == "gpt-4o"

    def test_reuses_empty_new_chat(self, db, user):
        first = chats.create_chat(db, user.id, "New Chat", "gpt-4o-mini")
        second = chats.create_chat(db, user.id, "New Chat", "gpt-4o")

        assert second.id == first.id
        assert second.model == "gpt-4o"
        assert len(chats.list_chats(db, user.id)) == 1

    def test_new_chat_with_messages_is_not_reused(self, db, user):
        first = chats.create_chat(db, user.id, "New Chat", "gpt-4o-mini")
        chats.add_message(db, first.id, user.id, "assistant", "Hi, how can I help?")

        second = chats.create_chat(db, user.id, "New Chat", "gpt-4o-mini")

        assert second.id != first.id

    def test_main_branch_only_once(self, db, chat, user):
        with pytest.raises(InvalidStateError):
            chats.create_main_branch(db, chat.id, user.id)

    def test_main_branch_for_chat_without_one(self, db, user):
        bare = ChatRepository(db).create(user.id, "Imported", "gpt-4o-mini")
        db.commit()

        branch_id = chats.create_main_branch(db, bare.id, user.id)

        chat = ChatRepository(db).get(bare.id)
        assert chat.active_branch_id == branch_id
        assert BranchRepository(db).get(branch_id).is_main

    def test_main_branch_owner_only(self, db, user, other_user):
        bare = ChatRepository(db).create(user.id, "Imported", "gpt-4o-mini")
        db.commit()

        with pytest.raises(UnauthorizedError):
            chats.create_main_branch(db, bare.id, other_user.id)


class TestAddMessage:
    def test_appends_to_active_branch(self, db, chat, user):
        first = chats.add_message(db, chat.id, user.id, "user", "hi")
        second = chats.add_message(db, chat.id, user.id, "assistant", "hello there", model="gpt-4o")

        main = BranchRepository(db).get(chat.active_branch_id)
        assert main.messages == [first.id, second.id]
        assert second.model == "gpt-4o"
        assert chat.active_messages == [first.id, second.id]
        assert contents(get_chat_messages(db, chat.id)) == ["hi", "hello there"]

    def test_first_user_message_titles_new_chat(self, db, user):
        chat = chats.create_chat(db, user.id, "New Chat", "gpt-4o-mini")

        chats.add_message(db, chat.id, user.id, "user", "What is a branch?")

        assert ChatRepository(db).get(chat.id).title == "What is a branch?"

    def test_long_title_is_truncated(self, db, user):
        chat = chats.create_chat(db, user.id, "New Chat", "gpt-4o-mini")

        chats.add_message(db, chat.id, user.id, "user", "x" * 80)

        assert ChatRepository(db).get(chat.id).title == "x" * 50 + "..."

    def test_custom_title_is_kept(self, db, chat, user):
        chats.add_message(db, chat.id, user.id, "user", "Something else entirely")
        assert ChatRepository(db).get(chat.id).title == "Branching test"

    def test_unknown_role(self, db, chat, user):
        with pytest.raises(InvalidStateError):
            chats.add_message(db, chat.id, user.id, "robot", "beep")

    def test_stranger_cannot_add(self, db, chat, other_user):
        with pytest.raises(UnauthorizedError):
            chats.add_message(db, chat.id, other_user.id, "user", "hi")

    def test_unknown_chat(self, db, user):
        with pytest.raises(NotFoundError):
            chats.add_message(db, "missing", user.id, "user", "hi")


def test_make_title():
    assert chats.make_title("short") == "short"
    assert chats.make_title("a" * 51) == "a" * 50 + "..."


def test_rename_and_model(db, chat, user):
    chats.rename_chat(db, chat.id, user.id, "Renamed")
    chats.update_chat_model(db, chat.id, user.id, "gpt-4o")

    stored = ChatRepository(db).get(chat.id)
    assert stored.title == "Renamed"
    assert stored.model == "gpt-4o"


class TestVisibility:
    def test_public_chat_readable_by_others(self, db, chat, user, other_user):
        with pytest.raises(UnauthorizedError):
            chats.get_chat(db, chat.id, other_user.id)

        chats.set_chat_visibility(db, chat.id, user.id, True, "read-only")

        assert chats.get_chat(db, chat.id, other_user.id).id == chat.id

    def test_private_again_clears_share_mode(self, db, chat, user):
        chats.set_chat_visibility(db, chat.id, user.id, True, "collaboration")
        updated = chats.set_chat_visibility(db, chat.id, user.id, False, "collaboration")

        assert not updated.is_public
        assert updated.share_mode is None

    def test_unknown_share_mode(self, db, chat, user):
        with pytest.raises(InvalidStateError):
            chats.set_chat_visibility(db, chat.id, user.id, True, "everyone")

    def test_owner_only(self, db, chat, other_user):
        with pytest.raises(UnauthorizedError):
            chats.set_chat_visibility(db, chat.id, other_user.id, True, "read-only")


class TestCopyChat:
    def test_fork_copies_up_to_message(self, db, conversation, user, seed_message):
        chat, m1, m2 = conversation
        seed_message(db, chat.id, "third", 300, role="assistant")

        result = chats.fork_chat_from_message(db, m2.id, user.id)

        assert result.message_count == 2
        forked = ChatRepository(db).get(result.new_chat_id)
        assert forked.title == "Fork of Branching test"
        assert forked.parent_chat_id == chat.id
        assert forked.branch_point == m2.id
        copied = get_chat_messages(db, forked.id)
        assert contents(copied) == ["hello", "second"]
        assert all(message.chat_id == forked.id for message in copied)
        assert [m.id for m in copied] != [m1.id, m2.id]

    def test_fork_follows_the_path_in_view(self, db, conversation, user):
        chat, _, m2 = conversation
        edit = create_branch_from_message_edit(db, m2.id, "edited", user.id)

        result = chats.fork_chat_from_message(db, edit.new_message_id, user.id)

        assert contents(get_chat_messages(db, result.new_chat_id)) == ["hello", "edited"]

    def test_fork_by_another_user(self, db, conversation, user, other_user):
        chat, _, m2 = conversation
        chats.set_chat_visibility(db, chat.id, user.id, True, "read-only")

        result = chats.fork_chat_from_message(db, m2.id, other_user.id)

        assert ChatRepository(db).get(result.new_chat_id).user_id == other_user.id

    def test_branch_chat_with_title(self, db, conversation, user):
        chat, m1, _ = conversation

        new_chat_id = chats.branch_chat(db, chat.id, m1.id, "Side quest", user.id)

        new_chat = ChatRepository(db).get(new_chat_id)
        assert new_chat.title == "Side quest"
        assert contents(get_chat_messages(db, new_chat_id)) == ["hello"]

    def test_branch_chat_rejects_foreign_message(self, db, conversation, user):
        chat, m1, _ = conversation
        other_chat = chats.create_chat(db, user.id, "Other", "gpt-4o-mini")

        with pytest.raises(InvalidStateError):
            chats.branch_chat(db, other_chat.id, m1.id, "Nope", user.id)


def test_branch_with_messages(db, conversation):
    chat, m1, m2 = conversation

    branch, messages = chats.get_branch_with_messages(db, chat.active_branch_id)

    assert branch.is_main
    assert [m.id for m in messages] == [m1.id, m2.id]
    assert chats.get_branch_with_messages(db, "missing") is None


def test_chat_branches_listing(db, conversation, user):
    chat, _, m2 = conversation
    create_branch_from_message_edit(db, m2.id, "edited", user.id)

    names = {branch.branch_name for branch in chats.get_chat_branches(db, chat.id)}

    assert names == {"Main", "Branch 1", "Branch 2"}
    assert chats.get_main_branch(db, chat.id).branch_name == "Main"
