"""
Abstract Storage Interface

DESIGN DECISION: Storage is hidden behind abstract interfaces.
This allows us to:
1. Keep Google Sheets as the hosted document store
2. Use in-memory storage for tests and local runs
3. Keep business logic decoupled from storage implementation

The interfaces are intentionally simple - we're not building an ORM.
Filtering beyond the owning user happens here, sorting too, so every
backend returns the same order.
"""

from abc import ABC, abstractmethod
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


class FinanceStorageInterface(ABC):
    """
    Abstract interface for the user-owned finance collections:
    users, transactions, budgets and todos.
    """

    # -- users ---------------------------------------------------------------

    @abstractmethod
    async def save_profile(self, profile: UserProfile) -> bool:
        """
        Save a new user profile.

        Raises:
            DuplicateError: If a profile with this uid exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        pass

    @abstractmethod
    async def update_profile(self, profile: UserProfile) -> bool:
        """
        Replace an existing profile.

        Raises:
            NotFoundError: If the profile doesn't exist
        """
        pass

    # -- transactions --------------------------------------------------------

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        pass

    @abstractmethod
    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> bool:
        """
        Replace an existing transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """Returns False when there was nothing to delete."""
        pass

    @abstractmethod
    async def list_transactions(
        self,
        uid: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        """
        List a user's transactions, newest first.

        Args:
            uid: Owner of the transactions
            date_from: Only transactions on or after this date
            date_to: Only transactions on or before this date
            transaction_type: Only income or only expenses
            category: Case-insensitive category match
            limit: Maximum number of results (None for all)
        """
        pass

    # -- budgets -------------------------------------------------------------

    @abstractmethod
    async def save_budget(self, budget: Budget) -> bool:
        pass

    @abstractmethod
    async def get_budget(self, budget_id: str) -> Optional[Budget]:
        pass

    @abstractmethod
    async def find_budget(
        self,
        uid: str,
        category: str,
        month: int,
        year: int,
    ) -> Optional[Budget]:
        """Find the budget for (uid, category, month, year). Category is case-insensitive."""
        pass

    @abstractmethod
    async def update_budget(self, budget: Budget) -> bool:
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: str) -> bool:
        pass

    @abstractmethod
    async def list_budgets(
        self,
        uid: str,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[Budget]:
        """List a user's budgets, optionally for one month, sorted by category."""
        pass

    # -- todos ---------------------------------------------------------------

    @abstractmethod
    async def save_todo(self, todo: Todo) -> bool:
        pass

    @abstractmethod
    async def get_todo(self, todo_id: str) -> Optional[Todo]:
        pass

    @abstractmethod
    async def update_todo(self, todo: Todo) -> bool:
        pass

    @abstractmethod
    async def delete_todo(self, todo_id: str) -> bool:
        pass

    @abstractmethod
    async def list_todos(self, uid: str) -> list[Todo]:
        """Open todos first (by due date), then completed ones."""
        pass


class AssistantMemoryStorageInterface(ABC):
    """
    Abstract interface for what the assistant remembers per user:
    conversations, insights and long-term preferences.
    """

    @abstractmethod
    async def save_conversation(self, conversation: Conversation) -> bool:
        pass

    @abstractmethod
    async def list_conversations(
        self,
        uid: str,
        limit: Optional[int] = None,
    ) -> list[Conversation]:
        """Most recent conversations first."""
        pass

    @abstractmethod
    async def save_insight(self, insight: Insight) -> bool:
        pass

    @abstractmethod
    async def get_insight(self, insight_id: str) -> Optional[Insight]:
        pass

    @abstractmethod
    async def update_insight(self, insight: Insight) -> bool:
        pass

    @abstractmethod
    async def list_insights(self, uid: str) -> list[Insight]:
        """Newest first."""
        pass

    @abstractmethod
    async def save_memory(self, memory: AssistantMemory) -> bool:
        """Insert or replace the memory document for memory.uid."""
        pass

    @abstractmethod
    async def get_memory(self, uid: str) -> Optional[AssistantMemory]:
        pass

    @abstractmethod
    async def clear_user(self, uid: str) -> int:
        """
        Remove every conversation, insight and memory document for a user.

        Returns:
            Number of records removed
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one chat turn).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
