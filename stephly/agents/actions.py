"""
Action Execution

Carries out an AIAction the intent detector recognised.

Every write goes through FinanceService, so assistant-created records
get exactly the same validation and audit trail as form input.
Nothing here raises: the chat always gets a message back, and
`success` tells the UI whether anything changed.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

import structlog

from stephly.analysis import build_monthly_report, format_report
from stephly.audit import AuditLogger
from stephly.models.assistant import ActionResult, ActionType, AIAction, ExtractedFields
from stephly.models.finance import TodoDraft, TransactionDraft, TransactionType
from stephly.services.currency import format_currency
from stephly.services.finance import FinanceService
from stephly.services.memory import MemoryService


logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")

GENERIC_FAILURE = "Sorry, I couldn't complete that action. Please try again."
UNSUPPORTED = "I'm not sure how to help with that action yet."

MISSING_TRANSACTION_AMOUNT = (
    "I can add that for you, but I need the amount. "
    "For example: 'Spent 50 on lunch'"
)
MISSING_TODO_AMOUNT = (
    "I'd love to add that to your TODOs! 📝 But I need the amount. "
    "For example: 'Create a todo for apple and banana 200'"
)

GUIDANCE = {
    ActionType.DELETE_TRANSACTION: (
        "To delete a specific transaction, go to the Transactions page and use "
        "the delete button next to the transaction you want to remove. "
        "I can't identify specific transactions from your description alone."
    ),
    ActionType.EDIT_TRANSACTION: (
        "To edit a transaction, go to the Transactions page and open the "
        "transaction you want to change. You can modify the amount, category, "
        "or details there."
    ),
    ActionType.DELETE_TODO: (
        "To delete a planned expense, go to the Planned Expenses page and use "
        "the delete button next to the item you want to remove."
    ),
}


def _parse_date(value: Optional[str]) -> date:
    """ISO date from the LLM, or today if it's missing or unreadable."""
    if value:
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            pass
    return date.today()


class ActionExecutor:
    """
    Runs detected actions against the finance service.

    Args:
        finance: Service all writes go through
        memory: Assistant memory, needed for set_goal
        audit_logger: Optional audit trail for executed actions
    """

    def __init__(
        self,
        finance: FinanceService,
        memory: Optional[MemoryService] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._finance = finance
        self._memory = memory
        self._audit_logger = audit_logger

    async def execute(
        self,
        action: AIAction,
        uid: str,
        correlation_id: Optional[UUID] = None,
    ) -> ActionResult:
        handlers = {
            ActionType.CREATE_BUDGET: self._create_budget,
            ActionType.ADD_TRANSACTION: self._add_transaction,
            ActionType.CREATE_TODO: self._create_todo,
            ActionType.VIEW_REPORT: self._view_report,
            ActionType.SET_GOAL: self._set_goal,
        }

        try:
            if action.type in GUIDANCE:
                result = ActionResult(
                    message=GUIDANCE[action.type],
                    success=False,
                    action=action.type,
                )
            elif action.type in handlers:
                result = await handlers[action.type](action.data, uid, correlation_id)
            else:
                result = ActionResult(message=UNSUPPORTED, success=False, action=action.type)
        except Exception as e:
            logger.error(
                "action_failed",
                uid=uid,
                action=action.type.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"action": action.type.value, "uid": uid},
                    correlation_id=correlation_id,
                )
            result = ActionResult(message=GENERIC_FAILURE, success=False, action=action.type)

        if self._audit_logger:
            await self._audit_logger.log_action_executed(
                uid=uid,
                action_type=action.type.value,
                success=result.success,
                entity_id=result.entity_id,
                correlation_id=correlation_id,
            )

        return result

    # =========================================================================
    # HANDLERS
    # =========================================================================

    async def _create_budget(
        self,
        data: ExtractedFields,
        uid: str,
        correlation_id: Optional[UUID],
    ) -> ActionResult:
        today = date.today()
        month = data.month or today.month
        year = data.year or today.year

        budget = await self._finance.set_budget(
            uid=uid,
            category=data.category or "General",
            limit=data.amount if data.amount is not None and data.amount > 0 else ZERO,
            month=month,
            year=year,
            correlation_id=correlation_id,
        )

        return ActionResult(
            message=(
                "✅ Budget created successfully!\n\n"
                f"📊 Category: {budget.category}\n"
                f"💰 Limit: {format_currency(budget.limit)}\n"
                f"📅 Period: {month}/{year}\n\n"
                "I'll help you track your spending against this budget!"
            ),
            success=True,
            action=ActionType.CREATE_BUDGET,
            entity_id=budget.id,
        )

    async def _add_transaction(
        self,
        data: ExtractedFields,
        uid: str,
        correlation_id: Optional[UUID],
    ) -> ActionResult:
        if data.amount is None or data.amount <= 0:
            return ActionResult(
                message=MISSING_TRANSACTION_AMOUNT,
                success=False,
                action=ActionType.ADD_TRANSACTION,
            )

        draft = TransactionDraft(
            uid=uid,
            type=(data.type or TransactionType.EXPENSE).value,
            title=data.title or data.description or "Transaction",
            amount=data.amount,
            category=data.category or "Other",
            date=_parse_date(data.date),
            note=data.note,
        )
        transaction = await self._finance.add_transaction(
            draft,
            correlation_id=correlation_id,
            by_assistant=True,
        )

        is_income = transaction.type == TransactionType.INCOME
        return ActionResult(
            message=(
                f"{'💰' if is_income else '💸'} Transaction added successfully!\n\n"
                f"{'📈' if is_income else '📉'} Type: {transaction.type.value.capitalize()}\n"
                f"💵 Amount: {format_currency(transaction.amount)}\n"
                f"📁 Category: {transaction.category}\n"
                f"📝 Title: {transaction.title}\n"
                f"📅 Date: {transaction.date.strftime('%d/%m/%Y')}\n\n"
                "Your balance has been updated!"
            ),
            success=True,
            action=ActionType.ADD_TRANSACTION,
            entity_id=transaction.id,
        )

    async def _create_todo(
        self,
        data: ExtractedFields,
        uid: str,
        correlation_id: Optional[UUID],
    ) -> ActionResult:
        if data.amount is None or data.amount <= 0:
            return ActionResult(
                message=MISSING_TODO_AMOUNT,
                success=False,
                action=ActionType.CREATE_TODO,
            )

        todo = await self._finance.add_todo(
            TodoDraft(
                uid=uid,
                title=data.title or data.description or "Planned expense",
                amount=data.amount,
                category=data.category or "Other",
                note=data.note,
            ),
            correlation_id=correlation_id,
        )

        return ActionResult(
            message=(
                "📝 Added to your planned expenses!\n\n"
                f"✅ TODO: {todo.title}\n"
                f"💰 Amount: {format_currency(todo.amount)}\n"
                f"📁 Category: {todo.category}\n\n"
                "Check it off when paid, and it'll be added to your expenses "
                "automatically! 🎯"
            ),
            success=True,
            action=ActionType.CREATE_TODO,
            entity_id=todo.id,
        )

    async def _view_report(
        self,
        data: ExtractedFields,
        uid: str,
        correlation_id: Optional[UUID],
    ) -> ActionResult:
        today = date.today()
        month = data.month or today.month
        year = data.year or today.year

        transactions = await self._finance.list_transactions(uid, limit=None)
        budgets = await self._finance.get_budgets(uid, month=month, year=year)
        profile = await self._finance.get_profile(uid)
        currency = profile.preferred_currency if profile else "GHS"

        report = build_monthly_report(transactions, budgets, month, year)
        return ActionResult(
            message=format_report(report, currency),
            success=True,
            action=ActionType.VIEW_REPORT,
        )

    async def _set_goal(
        self,
        data: ExtractedFields,
        uid: str,
        correlation_id: Optional[UUID],
    ) -> ActionResult:
        goal = data.goal or data.title
        if not goal:
            return ActionResult(
                message="What goal would you like me to remember?",
                success=False,
                action=ActionType.SET_GOAL,
            )
        if self._memory is None:
            return ActionResult(message=UNSUPPORTED, success=False, action=ActionType.SET_GOAL)

        await self._memory.add_goal(uid, goal)
        return ActionResult(
            message=(
                f"Great! I've noted your goal: {goal}. "
                "I'll help you track progress towards it!"
            ),
            success=True,
            action=ActionType.SET_GOAL,
        )
