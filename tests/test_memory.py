"""Tests for MemoryService."""

from datetime import datetime, timedelta

import pytest

from stephly.models.assistant import Conversation, Insight, InsightType
from stephly.services.storage import NotFoundError

from conftest import UID, run


START = datetime(2025, 1, 1, 9, 0)


def seed_conversations(storage, count, uid=UID):
    for i in range(count):
        run(storage.save_conversation(Conversation(
            uid=uid,
            timestamp=START + timedelta(minutes=i),
            user_message=f"question {i}",
            ai_response=f"answer {i}",
        )))


def seed_insights(storage, count, acknowledged=False):
    for i in range(count):
        run(storage.save_insight(Insight(
            uid=UID,
            message=f"insight {i}",
            timestamp=START + timedelta(minutes=i),
            acknowledged=acknowledged,
        )))


class TestConversations:

    def test_history_is_chronological(self, memory, memory_storage):
        seed_conversations(memory_storage, 3)
        history = run(memory.get_conversation_history(UID))
        assert [c.user_message for c in history] == ["question 0", "question 1", "question 2"]

    def test_history_keeps_latest(self, memory, memory_storage):
        seed_conversations(memory_storage, 25)
        history = run(memory.get_conversation_history(UID, limit=20))
        assert len(history) == 20
        assert history[0].user_message == "question 5"
        assert history[-1].user_message == "question 24"

    def test_history_scoped_to_user(self, memory, memory_storage):
        seed_conversations(memory_storage, 2, uid="someone-else")
        assert run(memory.get_conversation_history(UID)) == []

    def test_save_conversation_context(self, memory):
        saved = run(memory.save_conversation(UID, "hi", "hello", page="Budgets", recent_transactions=4))
        assert saved.context.page == "Budgets"
        assert saved.context.recent_transactions == 4


class TestInsights:

    def test_newest_first_capped(self, memory, memory_storage):
        seed_insights(memory_storage, 60)
        insights = run(memory.get_insights(UID))
        assert len(insights) == 50
        assert insights[0].message == "insight 59"

    def test_unacknowledged_filter(self, memory, memory_storage):
        seed_insights(memory_storage, 2, acknowledged=True)
        fresh = run(memory.save_insight(UID, "watch food spending", InsightType.WARNING))
        insights = run(memory.get_insights(UID, only_unacknowledged=True))
        assert [i.id for i in insights] == [fresh.id]

    def test_acknowledge(self, memory):
        insight = run(memory.save_insight(UID, "tip"))
        acknowledged = run(memory.acknowledge_insight(insight.id))
        assert acknowledged.acknowledged
        assert run(memory.get_insights(UID, only_unacknowledged=True)) == []

    def test_acknowledge_missing(self, memory):
        with pytest.raises(NotFoundError):
            run(memory.acknowledge_insight("missing"))


class TestPreferences:

    def test_add_goal_creates_memory(self, memory):
        stored = run(memory.add_goal(UID, "Buy a laptop"))
        assert stored.preferences.financial_goals == ["Buy a laptop"]

    def test_add_goal_ignores_duplicates(self, memory):
        run(memory.add_goal(UID, "Buy a laptop"))
        stored = run(memory.add_goal(UID, "buy a LAPTOP"))
        assert stored.preferences.financial_goals == ["Buy a laptop"]

    def test_save_memory_stamps_update_time(self, memory):
        stored = run(memory.add_goal(UID, "Save"))
        later = run(memory.save_memory(stored))
        assert later.last_updated >= stored.last_updated


class TestContext:

    def test_empty_context(self, memory):
        text = run(memory.build_context(UID))
        assert "Previous Conversations (0):" in text
        assert "No previous conversations" in text
        assert "No active insights" in text

    def test_context_contents(self, memory, memory_storage):
        run(memory_storage.save_conversation(Conversation(
            uid=UID, user_message="how's my budget?", ai_response="x" * 150,
        )))
        run(memory.save_insight(UID, "Food is over budget", InsightType.WARNING))
        run(memory.add_goal(UID, "Emergency fund"))

        text = run(memory.build_context(UID))
        assert "[Chat] User: how's my budget?" in text
        assert "AI: " + "x" * 100 + "..." in text
        assert "x" * 101 not in text
        assert "- [warning] Food is over budget" in text
        assert "Emergency fund" in text

    def test_context_uses_last_ten(self, memory, memory_storage):
        seed_conversations(memory_storage, 12)
        text = run(memory.build_context(UID))
        assert "Previous Conversations (10):" in text
        assert "question 1\n" not in text
        assert "question 11" in text


class TestClear:

    def test_clear_removes_only_that_user(self, memory, memory_storage):
        seed_conversations(memory_storage, 2)
        seed_conversations(memory_storage, 1, uid="other")
        run(memory.save_insight(UID, "tip"))
        run(memory.add_goal(UID, "goal"))

        assert run(memory.clear(UID)) == 4
        assert run(memory.get_conversation_history("other")) != []
        assert run(memory.get_memory(UID)) is None
