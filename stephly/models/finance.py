"""
Core Data Models for Stephly

These models define the schemas for everything the app stores:
user profiles, transactions, budgets and planned expenses (TODOs).
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging

Amounts are Decimals quantized to two places on the way in, so values
coming from forms, spreadsheets or the LLM (floats, strings) all end
up in the same shape.
"""

import datetime as dt
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


CENTS = Decimal("0.01")


def to_amount(value: Any) -> Any:
    """Coerce a number-like value to a Decimal with two decimal places."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float, str, Decimal)):
        try:
            return Decimal(str(value).strip()).quantize(CENTS)
        except (InvalidOperation, ValueError):
            return value  # let pydantic report it
    return value


def new_id() -> str:
    return uuid4().hex


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money for a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


# Suggested categories. Categories are free text - users (and the
# assistant) may use anything, e.g. "Gym" or "Netflix".
INCOME_CATEGORIES = ["Salary", "Freelance", "Investment", "Gift", "Other"]
EXPENSE_CATEGORIES = [
    "Food",
    "Transport",
    "Entertainment",
    "Shopping",
    "Bills",
    "Healthcare",
    "Education",
    "Other",
]
DEFAULT_CATEGORIES = {
    TransactionType.INCOME: INCOME_CATEGORIES,
    TransactionType.EXPENSE: EXPENSE_CATEGORIES,
}


# =============================================================================
# USER
# =============================================================================

class UserProfile(BaseModel):
    """Identity and preferences for a single user."""
    model_config = ConfigDict(str_strip_whitespace=True)

    uid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    preferred_currency: str = Field(
        default="GHS",
        min_length=3,
        max_length=3,
        description="ISO 4217 code"
    )
    monthly_income: Decimal = Field(default=Decimal("0.00"), ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("monthly_income", mode="before")
    @classmethod
    def quantize_income(cls, v):
        return to_amount(v)

    @field_validator("preferred_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense record.

    Amounts are always positive; the direction lives in `type`.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    uid: str = Field(..., min_length=1)
    type: TransactionType
    title: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., gt=0, description="Positive amount")
    category: str = Field(default="Other", min_length=1, max_length=100)
    date: dt.date = Field(default_factory=dt.date.today)
    note: Optional[str] = Field(default=None, max_length=1000)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("amount", mode="before")
    @classmethod
    def quantize_amount(cls, v):
        return to_amount(v)

    @field_validator("note")
    @classmethod
    def empty_note_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def signed_amount(self) -> Decimal:
        """Amount with expenses negative."""
        return self.amount if self.type == TransactionType.INCOME else -self.amount


class TransactionDraft(BaseModel):
    """
    Unvalidated user input for a new transaction.

    Everything is optional so the validator can report what is
    missing instead of pydantic raising on the first problem.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    uid: str
    type: Optional[str] = None
    title: Optional[str] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    date: Optional[dt.date] = None
    note: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def quantize_amount(cls, v):
        if v == "":
            return None
        return to_amount(v)

    def to_transaction(self) -> Transaction:
        return Transaction(
            uid=self.uid,
            type=TransactionType(self.type),
            title=self.title,
            amount=self.amount,
            category=self.category or "Other",
            date=self.date or date.today(),
            note=self.note,
        )


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(BaseModel):
    """
    A monthly spending ceiling for one category.

    `spent` is derived from expense transactions at read time and is
    never trusted from storage.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    uid: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    limit: Decimal = Field(..., ge=0)
    spent: Decimal = Field(default=Decimal("0.00"), ge=0)
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1970, le=9999)

    @field_validator("limit", "spent", mode="before")
    @classmethod
    def quantize_amounts(cls, v):
        return to_amount(v)

    @property
    def remaining(self) -> Decimal:
        return self.limit - self.spent

    @property
    def percent_used(self) -> float:
        if self.limit <= 0:
            return 0.0
        return float(self.spent / self.limit * 100)

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.limit


# =============================================================================
# TODOS (planned expenses)
# =============================================================================

class Todo(BaseModel):
    """
    A planned future expense.

    Completing a TODO writes an expense transaction and records its id
    here. The two writes are independent - there is no rollback.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id)
    uid: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0)
    category: str = Field(default="Other", min_length=1, max_length=100)
    due_date: Optional[date] = None
    note: Optional[str] = Field(default=None, max_length=1000)
    completed: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    transaction_id: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def quantize_amount(cls, v):
        return to_amount(v)

    @field_validator("note")
    @classmethod
    def empty_note_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class TodoDraft(BaseModel):
    """Unvalidated user input for a new planned expense."""
    model_config = ConfigDict(str_strip_whitespace=True)

    uid: str
    title: Optional[str] = None
    amount: Optional[Decimal] = None
    category: Optional[str] = None
    due_date: Optional[date] = None
    note: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def quantize_amount(cls, v):
        if v == "":
            return None
        return to_amount(v)

    def to_todo(self) -> Todo:
        return Todo(
            uid=self.uid,
            title=self.title,
            amount=self.amount,
            category=self.category or "Other",
            due_date=self.due_date,
            note=self.note,
        )


# =============================================================================
# SUMMARIES
# =============================================================================

class FinancialSummary(BaseModel):
    """Totals over a set of transactions."""

    income: Decimal = Decimal("0.00")
    expenses: Decimal = Decimal("0.00")
    transaction_count: int = 0

    @property
    def balance(self) -> Decimal:
        return self.income - self.expenses

    @classmethod
    def from_transactions(cls, transactions: list[Transaction]) -> "FinancialSummary":
        income = sum(
            (t.amount for t in transactions if t.type == TransactionType.INCOME),
            Decimal("0.00"),
        )
        expenses = sum(
            (t.amount for t in transactions if t.type == TransactionType.EXPENSE),
            Decimal("0.00"),
        )
        return cls(
            income=income,
            expenses=expenses,
            transaction_count=len(transactions),
        )


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required fields, ranges)
    Stage 2: Semantic validation (dates, suspicious amounts, categories)
    """

    schema_valid: bool
    semantic_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        return [i.message for i in self.issues if i.severity == "warning"]
