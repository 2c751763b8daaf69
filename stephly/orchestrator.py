"""
Main Orchestrator for Stephly

Ties the components together and defines the end-to-end chat flow:

    message → intent → (action | assistant) → reply

DESIGN DECISION: The orchestrator enforces the boundaries:
- Actions only ever write through FinanceService (validated, audited)
- The assistant only sees numbers computed from storage
- Every step of a chat turn is audited under one correlation id

This is the "glue" that keeps the system behaving even when the LLM
doesn't.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from stephly.agents import ActionExecutor, AssistantAgent, ChatContext, IntentDetector
from stephly.audit import AuditLogger, create_correlation_id
from stephly.config import get_settings
from stephly.models.assistant import ActionResult, AIAction, ChatReply
from stephly.services.currency import ExchangeRateService
from stephly.services.finance import FinanceService
from stephly.services.memory import MemoryService
from stephly.services.search import SearchService
from stephly.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    GoogleSheetsMemoryStorage,
    InMemoryAssistantMemoryStorage,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    StorageError,
)


logger = structlog.get_logger(__name__)


class ChatFlow:
    """
    Orchestrates one chat turn.

    Flow:
    1. Load the user's financial snapshot
    2. Detect intent (keywords, then one LLM extraction call)
    3a. Action → execute through FinanceService, reply with its message
    3b. No action → ask the assistant, reply with its answer

    Storage errors while loading the snapshot propagate to the caller.
    LLM and search failures never do; they degrade to fallback replies.
    """

    def __init__(
        self,
        finance: FinanceService,
        intent_detector: Optional[IntentDetector] = None,
        executor: Optional[ActionExecutor] = None,
        assistant: Optional[AssistantAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._finance = finance
        self._intent_detector = intent_detector or IntentDetector()
        self._executor = executor or ActionExecutor(finance, audit_logger=audit_logger)
        self._assistant = assistant or AssistantAgent()
        self._audit_logger = audit_logger
        self._settings = get_settings().app

    @property
    def assistant(self) -> AssistantAgent:
        return self._assistant

    async def load_context(self, uid: str, page: str = "Chat") -> ChatContext:
        """The snapshot the assistant answers against."""
        profile = await self._finance.get_profile(uid)
        transactions = await self._finance.list_transactions(
            uid, limit=self._settings.recent_transaction_limit
        )
        today = date.today()
        budgets = await self._finance.get_budgets(uid, month=today.month, year=today.year)
        summary = await self._finance.get_summary(uid)

        return ChatContext(
            uid=uid,
            user_name=profile.name if profile else None,
            page=page,
            balance=summary.balance,
            income=summary.income,
            expenses=summary.expenses,
            transactions=transactions,
            budgets=budgets,
        )

    async def handle_message(
        self,
        uid: str,
        message: str,
        page: str = "Chat",
        auto_confirm: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> ChatReply:
        """
        Answer one chat message.

        Args:
            uid: User the message belongs to
            message: Raw chat text
            page: Page the user was on (kept in conversation memory)
            auto_confirm: Run actions that ask for confirmation straight
                away. When False, such actions come back unexecuted and
                the caller runs them with confirm_action().
        """
        correlation_id = correlation_id or create_correlation_id()
        context = await self.load_context(uid, page)

        action = await self._intent_detector.detect_intent(message)
        if self._audit_logger:
            await self._audit_logger.log_intent_detected(
                uid=uid,
                action_type=action.type.value,
                correlation_id=correlation_id,
            )

        if action.is_actionable:
            if action.needs_confirmation and not auto_confirm:
                return ChatReply(
                    kind="action",
                    message=f"{action.confirmation}? Please confirm and I'll do it.",
                    action=action,
                    details={"awaiting_confirmation": True},
                )
            return await self.confirm_action(uid, action, correlation_id)

        response = await self._assistant.chat(message, context)
        if self._audit_logger:
            await self._audit_logger.log_chat_responded(
                uid=uid,
                search_used=response.search_used,
                correlation_id=correlation_id,
            )

        return ChatReply(
            kind="chat",
            message=response.message,
            response=response,
            details={"balance": str(context.balance)},
        )

    async def confirm_action(
        self,
        uid: str,
        action: AIAction,
        correlation_id: Optional[UUID] = None,
    ) -> ChatReply:
        """Execute a detected action and report the refreshed balance."""
        correlation_id = correlation_id or create_correlation_id()

        result: ActionResult = await self._executor.execute(action, uid, correlation_id)

        details = {}
        if result.success:
            summary = await self._finance.get_summary(uid)
            details["balance"] = str(summary.balance)

        return ChatReply(
            kind="action",
            message=result.message,
            action=action,
            action_result=result,
            details=details,
        )


@dataclass
class AppComponents:
    """Everything the frontend needs, wired together."""

    finance: FinanceService
    memory: MemoryService
    chat_flow: ChatFlow
    exchange_rates: ExchangeRateService
    audit_logger: AuditLogger
    sheets_client: Optional[GoogleSheetsClient] = None

    @property
    def assistant(self) -> AssistantAgent:
        return self.chat_flow.assistant

    @property
    def uses_sheets(self) -> bool:
        return self.sheets_client is not None


def create_app_components(use_storage: bool = True) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets storage. When False,
                    or when Sheets isn't configured/reachable, everything
                    lives in memory for the life of the process.
    """
    sheets_client = None
    finance_storage = None
    memory_storage = None
    audit_storage = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.get_spreadsheet()
            finance_storage = GoogleSheetsFinanceStorage(sheets_client)
            memory_storage = GoogleSheetsMemoryStorage(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except (ValidationError, StorageError) as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None

    if sheets_client is None:
        finance_storage = InMemoryFinanceStorage()
        memory_storage = InMemoryAssistantMemoryStorage()
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)
    finance = FinanceService(finance_storage, audit_logger=audit_logger)
    memory = MemoryService(memory_storage)
    assistant = AssistantAgent(search=SearchService(), memory=memory, audit_logger=audit_logger)

    chat_flow = ChatFlow(
        finance=finance,
        intent_detector=IntentDetector(),
        executor=ActionExecutor(finance, memory=memory, audit_logger=audit_logger),
        assistant=assistant,
        audit_logger=audit_logger,
    )

    return AppComponents(
        finance=finance,
        memory=memory,
        chat_flow=chat_flow,
        exchange_rates=ExchangeRateService(),
        audit_logger=audit_logger,
        sheets_client=sheets_client,
    )
