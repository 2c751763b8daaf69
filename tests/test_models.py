"""
Tests for Stephly

Test strategy:
1. Unit tests for individual components (models, validators, analysis)
2. Integration tests for flows (in-memory storage, fake Gemini model)
3. No real API calls in tests
"""

import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from stephly.models.assistant import ActionType, AIAction, ExtractedFields
from stephly.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from stephly.models.finance import (
    Budget,
    FinancialSummary,
    TodoDraft,
    Transaction,
    TransactionDraft,
    TransactionType,
    UserProfile,
    ValidationIssue,
    ValidationResult,
)

from conftest import UID, make_transaction


class TestFinanceModels:
    """Tests for finance Pydantic models."""

    def test_profile_defaults(self):
        """New profiles use GHS and zero income."""
        profile = UserProfile(uid=UID, name="Ama", email="ama@example.com")
        assert profile.preferred_currency == "GHS"
        assert profile.monthly_income == Decimal("0.00")

    def test_profile_currency_is_uppercased(self):
        profile = UserProfile(uid=UID, name="Ama", email="ama@example.com", preferred_currency="usd")
        assert profile.preferred_currency == "USD"

    def test_transaction_amount_quantized(self):
        """Floats and strings become two-place Decimals."""
        txn = Transaction(uid=UID, type="expense", title="Taxi", amount=12.5)
        assert txn.amount == Decimal("12.50")
        txn = Transaction(uid=UID, type="expense", title="Taxi", amount="7")
        assert txn.amount == Decimal("7.00")

    def test_transaction_rejects_non_positive_amount(self):
        with pytest.raises(ValueError):
            Transaction(uid=UID, type="expense", title="Taxi", amount=0)
        with pytest.raises(ValueError):
            Transaction(uid=UID, type="expense", title="Taxi", amount=-5)

    def test_transaction_explicit_date(self):
        txn = Transaction(uid=UID, type="expense", title="Taxi", amount=5, date=date(2025, 3, 14))
        assert txn.date == date(2025, 3, 14)
        assert TransactionDraft(uid=UID, date="2025-03-14").date == date(2025, 3, 14)

    def test_transaction_date_defaults_to_today(self):
        assert Transaction(uid=UID, type="expense", title="Taxi", amount=5).date == date.today()

    def test_transaction_strips_whitespace(self):
        txn = Transaction(uid=UID, type="income", title="  Salary  ", amount=100)
        assert txn.title == "Salary"

    def test_transaction_empty_note_is_none(self):
        txn = Transaction(uid=UID, type="income", title="Salary", amount=100, note="")
        assert txn.note is None

    def test_signed_amount(self):
        assert make_transaction("20", TransactionType.EXPENSE).signed_amount == Decimal("-20.00")
        assert make_transaction("20", TransactionType.INCOME).signed_amount == Decimal("20.00")

    def test_draft_to_transaction_defaults(self):
        """Missing category and date fall back to Other and today."""
        draft = TransactionDraft(uid=UID, type="expense", title="Snacks", amount="3.5")
        txn = draft.to_transaction()
        assert txn.category == "Other"
        assert txn.date == date.today()
        assert txn.amount == Decimal("3.50")

    def test_draft_blank_amount_is_none(self):
        assert TransactionDraft(uid=UID, amount="").amount is None

    def test_todo_draft_to_todo(self):
        todo = TodoDraft(uid=UID, title="Rent", amount=800).to_todo()
        assert todo.completed is False
        assert todo.category == "Other"
        assert todo.transaction_id is None

    def test_budget_derived_properties(self):
        budget = Budget(uid=UID, category="Food", limit=200, spent=250, month=5, year=2025)
        assert budget.remaining == Decimal("-50.00")
        assert budget.percent_used == 125.0
        assert budget.is_over_budget

    def test_budget_zero_limit_percent(self):
        budget = Budget(uid=UID, category="Food", limit=0, month=5, year=2025)
        assert budget.percent_used == 0.0

    def test_budget_month_bounds(self):
        with pytest.raises(ValueError):
            Budget(uid=UID, category="Food", limit=10, month=13, year=2025)

    def test_financial_summary_from_transactions(self):
        summary = FinancialSummary.from_transactions([
            make_transaction("1000", TransactionType.INCOME, "Salary"),
            make_transaction("250", TransactionType.EXPENSE, "Food"),
            make_transaction("50", TransactionType.EXPENSE, "Transport"),
        ])
        assert summary.income == Decimal("1000.00")
        assert summary.expenses == Decimal("300.00")
        assert summary.balance == Decimal("700.00")
        assert summary.transaction_count == 3


class TestAssistantModels:
    """Tests for intent and assistant models."""

    def test_extracted_fields_parse_amount_strings(self):
        fields = ExtractedFields(amount="₵1,200.50", type="Expense")
        assert fields.amount == Decimal("1200.50")
        assert fields.type == TransactionType.EXPENSE

    def test_extracted_fields_unknown_type_dropped(self):
        assert ExtractedFields(type="transfer").type is None

    def test_extracted_fields_ignore_extra_keys(self):
        fields = ExtractedFields.model_validate({"amount": 5, "confidence": 0.9})
        assert fields.amount == Decimal("5.00")

    def test_extracted_fields_bad_month_is_none(self):
        assert ExtractedFields(month="soon").month is None

    def test_action_is_actionable(self):
        assert AIAction(type=ActionType.ADD_TRANSACTION).is_actionable
        assert not AIAction(type=ActionType.NONE).is_actionable


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Expense added",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.BUDGET_SET,
            uid=UID,
            description="Budget set",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "budget_set"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_to_sheets_row(self):
        event = AuditEvent(
            event_type=AuditEventType.TODO_ADDED,
            description="Todo added",
            details={"amount": "20.00"},
        )
        row = event.to_sheets_row()
        assert len(row) == 12
        assert row[2] == "todo_added"
        assert json.loads(row[9]) == {"amount": "20.00"}

    def test_builder_transaction_added_by_assistant(self):
        """Assistant writes are not user actions."""
        event = AuditEventBuilder.transaction_added(
            uid=UID,
            transaction_id="t1",
            transaction_type="expense",
            amount="12.50",
            category="Food",
            by_assistant=True,
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.entity_id == "t1"
        assert event.is_user_action is False

    def test_builder_action_failed(self):
        event = AuditEventBuilder.action_executed(UID, "create_todo", success=False)
        assert event.event_type == AuditEventType.ACTION_FAILED
        assert event.severity == AuditSeverity.WARNING


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            issues=[
                ValidationIssue(field="amount", issue_type="missing", message="Amount is required", severity="error"),
                ValidationIssue(field="date", issue_type="future_date", message="Future", severity="warning"),
            ],
        )
        assert result.has_errors
        assert result.error_count == 1
        assert result.warnings == ["Future"]
        assert not result.is_valid

    def test_validation_result_warnings_only(self):
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            issues=[
                ValidationIssue(field="amount", issue_type="suspicious_value", message="High", severity="warning"),
            ],
        )
        assert result.is_valid
        assert not result.has_errors
