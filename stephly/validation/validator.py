"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation of user and assistant input happens in
two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (amount, title)
- Positive amounts
- Transaction type is income or expense

STAGE 2 - SEMANTIC VALIDATION:
- Future date detection
- Absurd amount detection
- Unknown categories
- Duplicate detection (same title, amount and date already stored)

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the service decides whether errors block the write.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional, Union

import structlog

from stephly.config import get_settings
from stephly.models.finance import (
    DEFAULT_CATEGORIES,
    TodoDraft,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)
from stephly.services.storage import FinanceStorageInterface, StorageError


logger = structlog.get_logger(__name__)


class TransactionValidator:
    """
    Validates transaction and todo drafts through a two-stage pipeline.

    Stage 1: Schema validation (can run without storage)
    Stage 2: Semantic validation (uses storage for duplicate checks)
    """

    def __init__(
        self,
        storage: Optional[FinanceStorageInterface] = None,
    ):
        """
        Initialize validator.

        Args:
            storage: Storage interface for duplicate checking.
                     If None, duplicate checking is skipped.
        """
        self._storage = storage
        self._settings = get_settings().app

    def _validate_amount_and_title(
        self,
        draft: Union[TransactionDraft, TodoDraft],
    ) -> list[ValidationIssue]:
        issues = []

        if draft.amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing",
                message="Amount is required",
                severity="error",
            ))
        elif draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

        if not draft.title:
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="Title is required",
                severity="error",
            ))

        return issues

    def _validate_schema(
        self,
        draft: TransactionDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = self._validate_amount_and_title(draft)

        if draft.type not in (TransactionType.INCOME.value, TransactionType.EXPENSE.value):
            issues.append(ValidationIssue(
                field="type",
                issue_type="invalid_value",
                message="Type must be 'income' or 'expense'",
                severity="error",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _check_amount_ceiling(self, amount: Optional[Decimal]) -> list[ValidationIssue]:
        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if amount and amount > max_amount:
            return [ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
            )]
        return []

    def _validate_semantic(
        self,
        draft: TransactionDraft,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Only warnings and info come out of this stage today, so it
        never blocks a write on its own.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        today = date.today()

        max_future_date = today + timedelta(
            days=self._settings.future_date_tolerance_days
        )
        if draft.date and draft.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({draft.date}) is in the future",
                severity="warning",
            ))

        issues.extend(self._check_amount_ceiling(draft.amount))

        if draft.category:
            known = DEFAULT_CATEGORIES[TransactionType(draft.type)]
            if draft.category.lower() not in (c.lower() for c in known):
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="custom_category",
                    message=f"'{draft.category}' is a custom category",
                    severity="info",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    async def _check_duplicates(
        self,
        draft: TransactionDraft,
    ) -> list[ValidationIssue]:
        """Warn when an identical transaction was already logged that day."""
        if self._storage is None:
            return []

        txn_date = draft.date or date.today()
        try:
            same_day = await self._storage.list_transactions(
                draft.uid,
                date_from=txn_date,
                date_to=txn_date,
            )
        except StorageError as e:
            # Don't fail validation due to storage errors
            logger.warning("duplicate_check_failed", uid=draft.uid, error=str(e))
            return []

        for txn in same_day:
            if txn.amount == draft.amount and txn.title.lower() == draft.title.lower():
                return [ValidationIssue(
                    field="duplicate",
                    issue_type="potential_duplicate",
                    message=(
                        f"'{txn.title}' for {txn.amount} on {txn_date} "
                        "may already be logged"
                    ),
                    severity="warning",
                )]
        return []

    async def validate(
        self,
        draft: TransactionDraft,
        check_duplicates: bool = True,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline on a transaction draft.

        Stage 2 only runs if stage 1 passes.
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(draft)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(draft)
            all_issues.extend(semantic_issues)

            if check_duplicates:
                all_issues.extend(await self._check_duplicates(draft))

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=all_issues,
        )

    def validate_todo(self, draft: TodoDraft) -> ValidationResult:
        """Validate a planned expense. Past due dates are reported as info."""
        issues = self._validate_amount_and_title(draft)
        schema_valid = not any(issue.severity == "error" for issue in issues)

        semantic_valid = False
        if schema_valid:
            semantic_issues = self._check_amount_ceiling(draft.amount)
            if draft.due_date and draft.due_date < date.today():
                semantic_issues.append(ValidationIssue(
                    field="due_date",
                    issue_type="past_date",
                    message=f"Due date ({draft.due_date}) has already passed",
                    severity="info",
                ))
            issues.extend(semantic_issues)
            semantic_valid = True

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=issues,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the forms show next to the submit button.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
