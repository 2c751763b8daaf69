"""
In-Memory Storage Implementation

Dict-backed versions of the storage interfaces, used for tests and
for running the app locally without Google credentials.

Models are copied on the way in and out so callers can never mutate
stored state by accident - the same isolation a remote store gives.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from stephly.models.assistant import AssistantMemory, Conversation, Insight
from stephly.models.audit import AuditEvent
from stephly.models.finance import (
    Budget,
    Todo,
    Transaction,
    TransactionType,
    UserProfile,
)
from stephly.services.storage.interface import (
    AssistantMemoryStorageInterface,
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
)
from stephly.services.storage.query import (
    filter_budgets,
    filter_transactions,
    same_category,
    sort_todos,
)


def _copy(model):
    return model.model_copy(deep=True)


class InMemoryFinanceStorage(FinanceStorageInterface):
    """Finance collections held in plain dicts keyed by document id."""

    def __init__(self):
        self.profiles: dict[str, UserProfile] = {}
        self.transactions: dict[str, Transaction] = {}
        self.budgets: dict[str, Budget] = {}
        self.todos: dict[str, Todo] = {}

    @staticmethod
    def _insert(collection: dict, key: str, model, kind: str) -> bool:
        if key in collection:
            raise DuplicateError(f"{kind} already exists: {key}")
        collection[key] = _copy(model)
        return True

    @staticmethod
    def _replace(collection: dict, key: str, model, kind: str) -> bool:
        if key not in collection:
            raise NotFoundError(f"{kind} not found: {key}")
        collection[key] = _copy(model)
        return True

    @staticmethod
    def _get(collection: dict, key: str):
        item = collection.get(key)
        return _copy(item) if item is not None else None

    # -- users ---------------------------------------------------------------

    async def save_profile(self, profile: UserProfile) -> bool:
        return self._insert(self.profiles, profile.uid, profile, "Profile")

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        return self._get(self.profiles, uid)

    async def update_profile(self, profile: UserProfile) -> bool:
        return self._replace(self.profiles, profile.uid, profile, "Profile")

    # -- transactions --------------------------------------------------------

    async def save_transaction(self, transaction: Transaction) -> bool:
        return self._insert(self.transactions, transaction.id, transaction, "Transaction")

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._get(self.transactions, transaction_id)

    async def update_transaction(self, transaction: Transaction) -> bool:
        return self._replace(self.transactions, transaction.id, transaction, "Transaction")

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self.transactions.pop(transaction_id, None) is not None

    async def list_transactions(
        self,
        uid: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        return [
            _copy(t)
            for t in filter_transactions(
                self.transactions.values(),
                uid,
                date_from=date_from,
                date_to=date_to,
                transaction_type=transaction_type,
                category=category,
                limit=limit,
            )
        ]

    # -- budgets -------------------------------------------------------------

    async def save_budget(self, budget: Budget) -> bool:
        return self._insert(self.budgets, budget.id, budget, "Budget")

    async def get_budget(self, budget_id: str) -> Optional[Budget]:
        return self._get(self.budgets, budget_id)

    async def find_budget(
        self,
        uid: str,
        category: str,
        month: int,
        year: int,
    ) -> Optional[Budget]:
        for budget in filter_budgets(self.budgets.values(), uid, month=month, year=year):
            if same_category(budget.category, category):
                return _copy(budget)
        return None

    async def update_budget(self, budget: Budget) -> bool:
        return self._replace(self.budgets, budget.id, budget, "Budget")

    async def delete_budget(self, budget_id: str) -> bool:
        return self.budgets.pop(budget_id, None) is not None

    async def list_budgets(
        self,
        uid: str,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[Budget]:
        return [
            _copy(b)
            for b in filter_budgets(self.budgets.values(), uid, month=month, year=year)
        ]

    # -- todos ---------------------------------------------------------------

    async def save_todo(self, todo: Todo) -> bool:
        return self._insert(self.todos, todo.id, todo, "Todo")

    async def get_todo(self, todo_id: str) -> Optional[Todo]:
        return self._get(self.todos, todo_id)

    async def update_todo(self, todo: Todo) -> bool:
        return self._replace(self.todos, todo.id, todo, "Todo")

    async def delete_todo(self, todo_id: str) -> bool:
        return self.todos.pop(todo_id, None) is not None

    async def list_todos(self, uid: str) -> list[Todo]:
        return [_copy(t) for t in sort_todos(t for t in self.todos.values() if t.uid == uid)]


class InMemoryAssistantMemoryStorage(AssistantMemoryStorageInterface):

    def __init__(self):
        self.conversations: list[Conversation] = []
        self.insights: dict[str, Insight] = {}
        self.memories: dict[str, AssistantMemory] = {}

    async def save_conversation(self, conversation: Conversation) -> bool:
        self.conversations.append(_copy(conversation))
        return True

    async def list_conversations(
        self,
        uid: str,
        limit: Optional[int] = None,
    ) -> list[Conversation]:
        items = sorted(
            (c for c in self.conversations if c.uid == uid),
            key=lambda c: c.timestamp,
            reverse=True,
        )
        if limit is not None:
            items = items[:limit]
        return [_copy(c) for c in items]

    async def save_insight(self, insight: Insight) -> bool:
        self.insights[insight.id] = _copy(insight)
        return True

    async def get_insight(self, insight_id: str) -> Optional[Insight]:
        insight = self.insights.get(insight_id)
        return _copy(insight) if insight else None

    async def update_insight(self, insight: Insight) -> bool:
        if insight.id not in self.insights:
            raise NotFoundError(f"Insight not found: {insight.id}")
        self.insights[insight.id] = _copy(insight)
        return True

    async def list_insights(self, uid: str) -> list[Insight]:
        items = sorted(
            (i for i in self.insights.values() if i.uid == uid),
            key=lambda i: i.timestamp,
            reverse=True,
        )
        return [_copy(i) for i in items]

    async def save_memory(self, memory: AssistantMemory) -> bool:
        self.memories[memory.uid] = _copy(memory)
        return True

    async def get_memory(self, uid: str) -> Optional[AssistantMemory]:
        memory = self.memories.get(uid)
        return _copy(memory) if memory else None

    async def clear_user(self, uid: str) -> int:
        before = len(self.conversations) + len(self.insights) + len(self.memories)
        self.conversations = [c for c in self.conversations if c.uid != uid]
        self.insights = {k: i for k, i in self.insights.items() if i.uid != uid}
        self.memories.pop(uid, None)
        after = len(self.conversations) + len(self.insights) + len(self.memories)
        return before - after


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(_copy(event))
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return sorted(
            (e for e in self.events if e.correlation_id == correlation_id),
            key=lambda e: e.timestamp,
        )

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return sorted(
            (
                e for e in self.events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ),
            key=lambda e: e.timestamp,
        )

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
