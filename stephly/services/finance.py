"""
Finance Service

Typed reads and writes for everything a user owns: profile,
transactions, budgets and planned expenses (todos).

DESIGN DECISION: All writes go through this service, whether they
come from a form or from the assistant. That keeps validation,
derived fields (budget "spent") and audit logging in one place.

There are no cross-document transactions. Completing a todo is two
independent writes (add the expense, then mark the todo); a failure in
the second is logged and re-raised, never rolled back.
"""

import calendar
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from stephly.audit import AuditLogger
from stephly.config import get_settings
from stephly.models.audit import AuditEventType
from stephly.models.finance import (
    Budget,
    FinancialSummary,
    Todo,
    TodoDraft,
    Transaction,
    TransactionDraft,
    TransactionType,
    UserProfile,
    ValidationIssue,
    ValidationResult,
)
from stephly.services.storage import FinanceStorageInterface, NotFoundError
from stephly.validation import TransactionValidator


logger = structlog.get_logger(__name__)

PROFILE_FIELDS = {"name", "email", "preferred_currency", "monthly_income"}
TRANSACTION_FIELDS = {"type", "title", "amount", "category", "date", "note"}


class FinanceError(Exception):
    """Base exception for finance operations."""
    pass


class DraftRejectedError(FinanceError):
    """Input failed validation. `result` carries the issues."""

    def __init__(self, message: str, result: ValidationResult):
        super().__init__(message)
        self.result = result


class TransactionRejectedError(DraftRejectedError):
    pass


class TodoRejectedError(DraftRejectedError):
    pass


class TodoAlreadyCompletedError(FinanceError):
    pass


def month_bounds(month: int, year: int) -> tuple[date, date]:
    """First and last day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def _result_from_pydantic(error: ValidationError) -> ValidationResult:
    issues = [
        ValidationIssue(
            field=".".join(str(part) for part in err["loc"]) or "input",
            issue_type=err["type"],
            message=err["msg"],
            severity="error",
        )
        for err in error.errors()
    ]
    return ValidationResult(schema_valid=False, semantic_valid=False, issues=issues)


def _rejection_message(result: ValidationResult) -> str:
    errors = [i.message for i in result.issues if i.severity == "error"]
    return "; ".join(errors) or "Invalid input"


class FinanceService:
    """
    Service-layer wrapper around finance storage.

    All methods are async and scoped by user id.
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or TransactionValidator(storage)
        self._audit_logger = audit_logger
        self._settings = get_settings().app

    @property
    def validator(self) -> TransactionValidator:
        return self._validator

    # =========================================================================
    # PROFILES
    # =========================================================================

    async def create_profile(
        self,
        uid: str,
        name: str,
        email: str,
        preferred_currency: Optional[str] = None,
    ) -> UserProfile:
        """
        Create a profile with defaults.

        Signing in again with the same provider account is not an error:
        the existing profile is returned untouched.
        """
        existing = await self._storage.get_profile(uid)
        if existing is not None:
            return existing

        profile = UserProfile(
            uid=uid,
            name=name,
            email=email,
            preferred_currency=preferred_currency or self._settings.default_currency,
        )
        await self._storage.save_profile(profile)
        logger.info("profile_created", uid=uid)

        if self._audit_logger:
            await self._audit_logger.log_profile_created(uid)

        return profile

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        return await self._storage.get_profile(uid)

    async def update_profile(self, uid: str, **updates: Any) -> UserProfile:
        """
        Update profile fields and bump updated_at.

        Raises:
            NotFoundError: If the profile doesn't exist
            ValueError: If an unknown field is passed
        """
        unknown = set(updates) - PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update profile fields: {sorted(unknown)}")

        profile = await self._storage.get_profile(uid)
        if profile is None:
            raise NotFoundError(f"Profile not found: {uid}")

        updated = UserProfile.model_validate({
            **profile.model_dump(),
            **updates,
            "updated_at": datetime.utcnow(),
        })
        await self._storage.update_profile(updated)

        if self._audit_logger:
            await self._audit_logger.log_profile_updated(uid, sorted(updates))

        return updated

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
        by_assistant: bool = False,
    ) -> Transaction:
        """
        Validate and persist a new transaction.

        Raises:
            TransactionRejectedError: If validation finds errors
                (missing title, non-positive amount, bad type)
        """
        result = await self._validator.validate(draft)
        transaction = None
        if not result.has_errors:
            try:
                transaction = draft.to_transaction()
            except ValidationError as e:
                # Length limits only the model knows about
                result = _result_from_pydantic(e)

        if transaction is None:
            if self._audit_logger:
                await self._audit_logger.log_transaction_rejected(
                    uid=draft.uid,
                    issues=[i.model_dump() for i in result.issues],
                    correlation_id=correlation_id,
                )
            raise TransactionRejectedError(_rejection_message(result), result)

        for warning in result.warnings:
            logger.info("transaction_warning", uid=draft.uid, warning=warning)

        await self._storage.save_transaction(transaction)

        if self._audit_logger:
            await self._audit_logger.log_transaction_added(
                uid=transaction.uid,
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=str(transaction.amount),
                category=transaction.category,
                correlation_id=correlation_id,
                by_assistant=by_assistant,
            )

        return transaction

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return await self._storage.get_transaction(transaction_id)

    async def list_transactions(
        self,
        uid: str,
        limit: Optional[int] = 50,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> list[Transaction]:
        """List a user's transactions, newest first. limit=None returns all."""
        return await self._storage.list_transactions(
            uid,
            date_from=date_from,
            date_to=date_to,
            transaction_type=transaction_type,
            category=category,
            limit=limit,
        )

    async def update_transaction(
        self,
        transaction_id: str,
        **updates: Any,
    ) -> Transaction:
        """
        Update fields on a transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
            TransactionRejectedError: If the updated values are invalid
        """
        unknown = set(updates) - TRANSACTION_FIELDS
        if unknown:
            raise ValueError(f"Cannot update transaction fields: {sorted(unknown)}")

        existing = await self._storage.get_transaction(transaction_id)
        if existing is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        try:
            updated = Transaction.model_validate({
                **existing.model_dump(),
                **updates,
                "updated_at": datetime.utcnow(),
            })
        except ValidationError as e:
            result = _result_from_pydantic(e)
            raise TransactionRejectedError(_rejection_message(result), result)

        await self._storage.update_transaction(updated)

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.TRANSACTION_UPDATED,
                uid=updated.uid,
                entity_type="transaction",
                entity_id=updated.id,
                description=f"Transaction updated: {', '.join(sorted(updates))}",
                details={k: str(v) for k, v in updates.items()},
            )

        return updated

    async def delete_transaction(self, transaction_id: str) -> bool:
        existing = await self._storage.get_transaction(transaction_id)
        deleted = await self._storage.delete_transaction(transaction_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.TRANSACTION_DELETED,
                uid=existing.uid if existing else None,
                entity_type="transaction",
                entity_id=transaction_id,
                description="Transaction deleted",
            )

        return deleted

    async def get_summary(self, uid: str) -> FinancialSummary:
        """Income, expenses and balance over all of a user's transactions."""
        transactions = await self._storage.list_transactions(uid)
        return FinancialSummary.from_transactions(transactions)

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def _spent_by_category(self, uid: str, month: int, year: int) -> dict[str, Decimal]:
        """Expense totals for one month keyed by lower-cased category."""
        start, end = month_bounds(month, year)
        expenses = await self._storage.list_transactions(
            uid,
            date_from=start,
            date_to=end,
            transaction_type=TransactionType.EXPENSE,
        )
        totals: dict[str, Decimal] = {}
        for txn in expenses:
            key = txn.category.strip().lower()
            totals[key] = totals.get(key, Decimal("0.00")) + txn.amount
        return totals

    @staticmethod
    def _with_spent(budget: Budget, spent: dict[str, Decimal]) -> Budget:
        return budget.model_copy(update={
            "spent": spent.get(budget.category.strip().lower(), Decimal("0.00")),
        })

    async def set_budget(
        self,
        uid: str,
        category: str,
        limit: Any,
        month: Optional[int] = None,
        year: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Budget:
        """
        Create or update the budget for (uid, category, month, year).

        Month and year default to today. An existing budget keeps its id
        and only its limit changes.
        """
        today = date.today()
        month = month or today.month
        year = year or today.year

        existing = await self._storage.find_budget(uid, category, month, year)
        if existing is not None:
            budget = Budget.model_validate({**existing.model_dump(), "limit": limit})
            await self._storage.update_budget(budget)
        else:
            budget = Budget(
                uid=uid,
                category=category,
                limit=limit,
                month=month,
                year=year,
            )
            await self._storage.save_budget(budget)

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.BUDGET_SET,
                uid=uid,
                entity_type="budget",
                entity_id=budget.id,
                description=f"Budget set: {budget.category} {budget.limit} for {month}/{year}",
                details={
                    "category": budget.category,
                    "limit": str(budget.limit),
                    "month": month,
                    "year": year,
                    "updated_existing": existing is not None,
                },
                correlation_id=correlation_id,
            )

        spent = await self._spent_by_category(uid, month, year)
        return self._with_spent(budget, spent)

    async def get_budget(
        self,
        uid: str,
        category: str,
        month: int,
        year: int,
    ) -> Optional[Budget]:
        budget = await self._storage.find_budget(uid, category, month, year)
        if budget is None:
            return None
        spent = await self._spent_by_category(uid, month, year)
        return self._with_spent(budget, spent)

    async def get_budgets(
        self,
        uid: str,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[Budget]:
        """
        A user's budgets for one month (default: current), each with
        `spent` derived from that month's expenses in the same category.
        """
        today = date.today()
        month = month or today.month
        year = year or today.year

        budgets = await self._storage.list_budgets(uid, month=month, year=year)
        if not budgets:
            return []
        spent = await self._spent_by_category(uid, month, year)
        return [self._with_spent(b, spent) for b in budgets]

    async def delete_budget(self, budget_id: str) -> bool:
        existing = await self._storage.get_budget(budget_id)
        deleted = await self._storage.delete_budget(budget_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.BUDGET_DELETED,
                uid=existing.uid if existing else None,
                entity_type="budget",
                entity_id=budget_id,
                description="Budget deleted",
            )

        return deleted

    # =========================================================================
    # TODOS
    # =========================================================================

    async def add_todo(
        self,
        draft: TodoDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Todo:
        """
        Raises:
            TodoRejectedError: If the title is missing or the amount isn't positive
        """
        result = self._validator.validate_todo(draft)
        if result.has_errors:
            raise TodoRejectedError(_rejection_message(result), result)

        try:
            todo = draft.to_todo()
        except ValidationError as e:
            result = _result_from_pydantic(e)
            raise TodoRejectedError(_rejection_message(result), result)

        await self._storage.save_todo(todo)

        if self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.TODO_ADDED,
                uid=todo.uid,
                entity_type="todo",
                entity_id=todo.id,
                description=f"Planned expense added: {todo.title} ({todo.amount})",
                details={"amount": str(todo.amount), "category": todo.category},
                correlation_id=correlation_id,
            )

        return todo

    async def list_todos(self, uid: str) -> list[Todo]:
        return await self._storage.list_todos(uid)

    async def delete_todo(self, todo_id: str) -> bool:
        existing = await self._storage.get_todo(todo_id)
        deleted = await self._storage.delete_todo(todo_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_entity_changed(
                event_type=AuditEventType.TODO_DELETED,
                uid=existing.uid if existing else None,
                entity_type="todo",
                entity_id=todo_id,
                description="Planned expense deleted",
            )

        return deleted

    async def complete_todo(
        self,
        todo_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Todo, Transaction]:
        """
        Turn a planned expense into a real one.

        Writes an expense transaction dated today, then marks the todo
        completed with the new transaction's id.

        Raises:
            NotFoundError: If the todo doesn't exist
            TodoAlreadyCompletedError: If it was completed before
        """
        todo = await self._storage.get_todo(todo_id)
        if todo is None:
            raise NotFoundError(f"Todo not found: {todo_id}")
        if todo.completed:
            raise TodoAlreadyCompletedError(
                f"Todo already completed: {todo_id} (transaction {todo.transaction_id})"
            )

        # add_todo only stores positive amounts, so this always validates
        transaction = Transaction(
            uid=todo.uid,
            type=TransactionType.EXPENSE,
            title=todo.title,
            amount=todo.amount,
            category=todo.category,
            date=date.today(),
            note=todo.note,
        )
        await self._storage.save_transaction(transaction)

        completed = todo.model_copy(update={
            "completed": True,
            "completed_at": datetime.utcnow(),
            "transaction_id": transaction.id,
        })
        try:
            await self._storage.update_todo(completed)
        except Exception as e:
            logger.error(
                "todo_completion_partial",
                todo_id=todo_id,
                transaction_id=transaction.id,
                error=str(e),
            )
            raise

        if self._audit_logger:
            await self._audit_logger.log_todo_completed(
                uid=todo.uid,
                todo_id=todo.id,
                transaction_id=transaction.id,
                amount=str(transaction.amount),
                correlation_id=correlation_id,
            )

        return completed, transaction
