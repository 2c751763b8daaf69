"""
Assistant Memory Service

What the assistant remembers between chats:
- Conversations (one user message + reply, with page/balance context)
- Insights (short warnings/tips the user hasn't dismissed yet)
- Long-term preferences (goals, risk tolerance, savings target)

build_context() turns all three into a text block that is prepended
to every chat prompt.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog

from stephly.models.assistant import (
    AssistantMemory,
    Conversation,
    ConversationContext,
    Insight,
    InsightType,
)
from stephly.services.storage import AssistantMemoryStorageInterface, NotFoundError


logger = structlog.get_logger(__name__)

MAX_INSIGHTS = 50
CONTEXT_CONVERSATIONS = 10
RESPONSE_PREVIEW_CHARS = 100


class MemoryService:

    def __init__(self, storage: AssistantMemoryStorageInterface):
        self._storage = storage

    # -- conversations -------------------------------------------------------

    async def save_conversation(
        self,
        uid: str,
        user_message: str,
        ai_response: str,
        page: str = "Chat",
        balance: Decimal = Decimal("0.00"),
        recent_transactions: int = 0,
    ) -> Conversation:
        conversation = Conversation(
            uid=uid,
            user_message=user_message,
            ai_response=ai_response,
            context=ConversationContext(
                page=page,
                balance=balance,
                recent_transactions=recent_transactions,
            ),
        )
        await self._storage.save_conversation(conversation)
        return conversation

    async def get_conversation_history(self, uid: str, limit: int = 20) -> list[Conversation]:
        """The last `limit` conversations, oldest first."""
        latest = await self._storage.list_conversations(uid, limit=limit)
        return list(reversed(latest))

    # -- insights ------------------------------------------------------------

    async def save_insight(
        self,
        uid: str,
        message: str,
        insight_type: InsightType = InsightType.TIP,
    ) -> Insight:
        insight = Insight(uid=uid, type=insight_type, message=message)
        await self._storage.save_insight(insight)
        return insight

    async def get_insights(
        self,
        uid: str,
        only_unacknowledged: bool = False,
    ) -> list[Insight]:
        """
        Newest first. The full list is capped at 50; the unacknowledged
        list is not, so nothing the user hasn't seen gets dropped.
        """
        insights = await self._storage.list_insights(uid)
        if only_unacknowledged:
            return [i for i in insights if not i.acknowledged]
        return insights[:MAX_INSIGHTS]

    async def acknowledge_insight(self, insight_id: str) -> Insight:
        insight = await self._storage.get_insight(insight_id)
        if insight is None:
            raise NotFoundError(f"Insight not found: {insight_id}")
        acknowledged = insight.model_copy(update={"acknowledged": True})
        await self._storage.update_insight(acknowledged)
        return acknowledged

    # -- long-term memory ----------------------------------------------------

    async def save_memory(self, memory: AssistantMemory) -> AssistantMemory:
        stamped = memory.model_copy(update={"last_updated": datetime.utcnow()})
        await self._storage.save_memory(stamped)
        return stamped

    async def get_memory(self, uid: str) -> Optional[AssistantMemory]:
        return await self._storage.get_memory(uid)

    async def add_goal(self, uid: str, goal: str) -> AssistantMemory:
        """Append a financial goal unless it's already recorded."""
        memory = await self._storage.get_memory(uid) or AssistantMemory(uid=uid)
        goals = list(memory.preferences.financial_goals)
        if goal.lower() not in (g.lower() for g in goals):
            goals.append(goal)
        preferences = memory.preferences.model_copy(update={"financial_goals": goals})
        return await self.save_memory(memory.model_copy(update={"preferences": preferences}))

    # -- prompt context ------------------------------------------------------

    async def build_context(self, uid: str) -> str:
        conversations = await self.get_conversation_history(uid, limit=CONTEXT_CONVERSATIONS)
        insights = await self.get_insights(uid, only_unacknowledged=True)
        memory = await self.get_memory(uid)

        conversation_summary = "\n\n".join(
            f"[{c.context.page}] User: {c.user_message}\n"
            f"AI: {c.ai_response[:RESPONSE_PREVIEW_CHARS]}..."
            for c in conversations
        )
        insights_summary = "\n".join(f"- [{i.type.value}] {i.message}" for i in insights)
        preferences = (
            memory.preferences.model_dump(mode="json", exclude_none=True)
            if memory
            else {}
        )

        return (
            f"Previous Conversations ({len(conversations)}):\n"
            f"{conversation_summary or 'No previous conversations'}\n\n"
            f"Active Insights ({len(insights)}):\n"
            f"{insights_summary or 'No active insights'}\n\n"
            f"User Preferences:\n"
            f"{json.dumps(preferences, indent=2)}"
        )

    async def clear(self, uid: str) -> int:
        removed = await self._storage.clear_user(uid)
        logger.info("assistant_memory_cleared", uid=uid, removed=removed)
        return removed
