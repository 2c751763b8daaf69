"""
Assistant Models for Stephly

Schemas for everything the chat assistant produces or remembers:
- Detected actions and their results (intent layer)
- Conversation history, insights and long-term preferences (memory)
- Structured LLM outputs (advice, suggestions, chat replies)
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stephly.models.finance import TransactionType, new_id, to_amount


# =============================================================================
# INTENT LAYER
# =============================================================================

class ActionType(str, Enum):
    """Every in-app action the assistant can recognise."""
    CREATE_BUDGET = "create_budget"
    ADD_TRANSACTION = "add_transaction"
    DELETE_TRANSACTION = "delete_transaction"
    EDIT_TRANSACTION = "edit_transaction"
    DELETE_BUDGET = "delete_budget"
    EDIT_BUDGET = "edit_budget"
    VIEW_REPORT = "view_report"
    SET_GOAL = "set_goal"
    CREATE_TODO = "create_todo"
    DELETE_TODO = "delete_todo"
    EDIT_TODO = "edit_todo"
    NONE = "none"


class ExtractedFields(BaseModel):
    """
    Structured fields the LLM pulled out of a chat message.

    Everything is optional - the LLM may find nothing. Unknown keys
    the model adds are ignored.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    amount: Optional[Decimal] = None
    category: Optional[str] = None
    type: Optional[TransactionType] = None
    title: Optional[str] = None
    description: Optional[str] = None
    note: Optional[str] = None
    date: Optional[str] = None
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = None
    goal: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v):
        if isinstance(v, str):
            v = v.replace(",", "").replace("₵", "").strip()
            if not v:
                return None
        amount = to_amount(v)
        return amount if isinstance(amount, Decimal) else None

    @field_validator("type", mode="before")
    @classmethod
    def normalise_type(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if v in ("income", "expense"):
                return v
            return None
        return v

    @field_validator("month", "year", mode="before")
    @classmethod
    def int_or_none(cls, v):
        if v in (None, ""):
            return None
        try:
            return int(v)
        except (TypeError, ValueError):
            return None


class AIAction(BaseModel):
    """An action detected in a chat message."""

    type: ActionType
    data: ExtractedFields = Field(default_factory=ExtractedFields)
    raw_message: Optional[str] = None
    confirmation: Optional[str] = None
    needs_confirmation: bool = False

    @property
    def is_actionable(self) -> bool:
        return self.type != ActionType.NONE


class ActionResult(BaseModel):
    """What happened when an action was executed."""

    message: str
    success: bool
    action: Optional[ActionType] = None
    entity_id: Optional[str] = None


# =============================================================================
# MEMORY
# =============================================================================

class ConversationContext(BaseModel):
    """Snapshot of where the user was when they chatted."""

    page: str = "Chat"
    balance: Decimal = Decimal("0.00")
    recent_transactions: int = 0


class Conversation(BaseModel):
    """One user message and the assistant's reply."""

    id: str = Field(default_factory=new_id)
    uid: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    user_message: str
    ai_response: str
    context: ConversationContext = Field(default_factory=ConversationContext)


class InsightType(str, Enum):
    WARNING = "warning"
    TIP = "tip"
    ACHIEVEMENT = "achievement"
    SUGGESTION = "suggestion"


class Insight(BaseModel):
    """A short observation the assistant wants the user to see."""

    id: str = Field(default_factory=new_id)
    uid: str
    type: InsightType = InsightType.TIP
    message: str = Field(..., min_length=1)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    acknowledged: bool = False


class UserPreferences(BaseModel):
    financial_goals: list[str] = Field(default_factory=list)
    risk_tolerance: Optional[str] = Field(
        default=None,
        pattern="^(low|medium|high)$"
    )
    savings_target: Optional[Decimal] = None


class AssistantMemory(BaseModel):
    """Long-lived preferences the assistant keeps per user."""

    uid: str
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    last_updated: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# LLM OUTPUTS
# =============================================================================

class AssistantResponse(BaseModel):
    """A conversational reply from the assistant."""

    message: str
    suggestions: list[str] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
    sources: list[str] = Field(default_factory=list)
    search_used: bool = False
    action_required: bool = False


class FinancialAdvice(BaseModel):
    advice: str
    insights: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    risk_level: str = Field(default="medium", pattern="^(low|medium|high)$")


class BudgetSuggestion(BaseModel):
    category: str
    suggested_amount: Decimal = Field(ge=0)
    reason: str = ""

    @field_validator("suggested_amount", mode="before")
    @classmethod
    def quantize(cls, v):
        return to_amount(v)


class ChatReply(BaseModel):
    """What the chat flow hands back to the UI for one user message."""

    kind: str = Field(..., pattern="^(action|chat)$")
    message: str
    action: Optional[AIAction] = None
    action_result: Optional[ActionResult] = None
    response: Optional[AssistantResponse] = None
    details: dict[str, Any] = Field(default_factory=dict)
