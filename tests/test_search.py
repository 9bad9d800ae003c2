"""Tests for searching the conversations in view."""

import pytest

from app.core.branching import create_branch_from_message_edit, navigate_to_branch
from app.core.branching.repository import MessageRepository
from app.core.chats import create_chat
from app.core.errors import NotFoundError, UnauthorizedError
from app.core.search import search_messages_in_chat, search_user_messages


class TestSearchInChat:
    def test_finds_messages_in_view(self, db, conversation, user):
        chat, m1, m2 = conversation

        hits = search_messages_in_chat(db, chat.id, user.id, "SEC")

        assert [hit.message_id for hit in hits] == [m2.id]
        assert hits[0].snippet == "second"
        assert hits[0].chat_id == chat.id
        assert not hits[0].full_match

    def test_inactive_branches_are_not_searched(self, db, conversation, user):
        chat, _, m2 = conversation
        create_branch_from_message_edit(db, m2.id, "revised", user.id)

        assert search_messages_in_chat(db, chat.id, user.id, "second") == []
        assert len(search_messages_in_chat(db, chat.id, user.id, "revised")) == 1

        original_id = MessageRepository(db).get(m2.id).branches[0]
        navigate_to_branch(db, m2.id, original_id, user.id)

        assert [hit.message_id for hit in search_messages_in_chat(db, chat.id, user.id, "second")] == [m2.id]
        assert search_messages_in_chat(db, chat.id, user.id, "revised") == []

    def test_snippet_is_cut_around_the_match(self, db, chat, user, seed_message):
        seed_message(db, chat.id, "a" * 100 + "needle" + "b" * 100, 100)

        hit = search_messages_in_chat(db, chat.id, user.id, "needle")[0]

        assert hit.snippet == "a" * 60 + "needle" + "b" * 60

    def test_full_match_ignores_surrounding_space(self, db, conversation, user):
        chat, _, _ = conversation

        hits = search_messages_in_chat(db, chat.id, user.id, "  Hello ")

        assert len(hits) == 1
        assert hits[0].full_match

    def test_results_are_oldest_first_and_limited(self, db, chat, user, seed_message):
        seed_message(db, chat.id, "topic one", 100)
        seed_message(db, chat.id, "topic two", 200)
        seed_message(db, chat.id, "topic three", 300)

        hits = search_messages_in_chat(db, chat.id, user.id, "topic", limit=2)

        assert [hit.snippet for hit in hits] == ["topic one", "topic two"]

    def test_blank_query(self, db, conversation, user):
        chat, _, _ = conversation
        assert search_messages_in_chat(db, chat.id, user.id, "   ") == []

    def test_private_chat_of_someone_else(self, db, conversation, other_user):
        chat, _, _ = conversation
        with pytest.raises(UnauthorizedError):
            search_messages_in_chat(db, chat.id, other_user.id, "hello")

    def test_unknown_chat(self, db, user):
        with pytest.raises(NotFoundError):
            search_messages_in_chat(db, "missing", user.id, "hello")


class TestSearchUserMessages:
    def test_searches_own_chats_best_match_first(self, db, user, other_user, seed_message):
        early = create_chat(db, user.id, "Early match", "gpt-4o-mini")
        late = create_chat(db, user.id, "Late match", "gpt-4o-mini")
        foreign = create_chat(db, other_user.id, "Not mine", "gpt-4o-mini")
        seed_message(db, early.id, "needle", 100)
        seed_message(db, late.id, "x" * 40 + " needle", 200)
        seed_message(db, foreign.id, "needle", 300)

        hits = search_user_messages(db, user.id, "needle")

        assert [hit.chat_title for hit in hits] == ["Early match", "Late match"]
        assert hits[0].score > hits[1].score

    def test_only_the_path_in_view(self, db, conversation, user):
        chat, _, m2 = conversation
        create_branch_from_message_edit(db, m2.id, "revised", user.id)

        assert search_user_messages(db, user.id, "second") == []
        assert [hit.chat_id for hit in search_user_messages(db, user.id, "revised")] == [chat.id]

    def test_limit(self, db, chat, user, seed_message):
        for timestamp in (100, 200, 300):
            seed_message(db, chat.id, "repeat", timestamp)

        assert len(search_user_messages(db, user.id, "repeat", limit=2)) == 2

    def test_blank_query(self, db, conversation, user):
        assert search_user_messages(db, user.id, "") == []
