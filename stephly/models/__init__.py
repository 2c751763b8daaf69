"""
Data Models Package

This package contains all Pydantic models used in Stephly.
All data flowing through the system must conform to these schemas.
"""

from stephly.models.finance import (
    DEFAULT_CATEGORIES,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
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
from stephly.models.assistant import (
    ActionResult,
    ActionType,
    AIAction,
    AssistantMemory,
    AssistantResponse,
    BudgetSuggestion,
    ChatReply,
    Conversation,
    ConversationContext,
    ExtractedFields,
    FinancialAdvice,
    Insight,
    InsightType,
    UserPreferences,
)
from stephly.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "DEFAULT_CATEGORIES",
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "Budget",
    "FinancialSummary",
    "Todo",
    "TodoDraft",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "UserProfile",
    "ValidationIssue",
    "ValidationResult",
    # Assistant models
    "ActionResult",
    "ActionType",
    "AIAction",
    "AssistantMemory",
    "AssistantResponse",
    "BudgetSuggestion",
    "ChatReply",
    "Conversation",
    "ConversationContext",
    "ExtractedFields",
    "FinancialAdvice",
    "Insight",
    "InsightType",
    "UserPreferences",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
