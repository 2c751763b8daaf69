"""
Monthly Report

DESIGN DECISION: The report is computed from stored transactions and
budgets only. When the assistant is asked to "show my report", it
returns this text verbatim instead of letting the LLM describe
numbers it can't see.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from stephly.models.finance import Budget, Transaction, TransactionType
from stephly.services.currency import format_currency


ZERO = Decimal("0.00")


class CategoryBreakdown(BaseModel):
    category: str
    amount: Decimal
    percentage: float
    budget_limit: Optional[Decimal] = None

    @property
    def over_budget(self) -> bool:
        return self.budget_limit is not None and self.amount > self.budget_limit


class MonthlyReport(BaseModel):
    month: int = Field(..., ge=1, le=12)
    year: int
    income: Decimal = ZERO
    expenses: Decimal = ZERO
    transaction_count: int = 0
    by_category: list[CategoryBreakdown] = Field(default_factory=list)

    @property
    def balance(self) -> Decimal:
        return self.income - self.expenses

    @property
    def period_label(self) -> str:
        return date(self.year, self.month, 1).strftime("%B %Y")


def group_expenses(transactions: list[Transaction]) -> dict[str, Decimal]:
    """Sum expenses per category. The first spelling seen names the group."""
    groups: dict[str, Decimal] = {}
    names: dict[str, str] = {}
    for txn in transactions:
        if txn.type != TransactionType.EXPENSE:
            continue
        key = txn.category.strip().lower()
        names.setdefault(key, txn.category)
        groups[names[key]] = groups.get(names[key], ZERO) + txn.amount
    return groups


def build_monthly_report(
    transactions: list[Transaction],
    budgets: list[Budget],
    month: int,
    year: int,
) -> MonthlyReport:
    """Totals and a per-category breakdown for one calendar month."""
    in_month = [t for t in transactions if t.date.month == month and t.date.year == year]

    income = sum(
        (t.amount for t in in_month if t.type == TransactionType.INCOME), ZERO
    )
    groups = group_expenses(in_month)
    expenses = sum(groups.values(), ZERO)

    limits = {
        b.category.strip().lower(): b.limit
        for b in budgets
        if b.month == month and b.year == year
    }

    breakdown = [
        CategoryBreakdown(
            category=category,
            amount=amount,
            percentage=float(amount / expenses * 100) if expenses > 0 else 0.0,
            budget_limit=limits.get(category.strip().lower()),
        )
        for category, amount in groups.items()
    ]
    breakdown.sort(key=lambda b: b.amount, reverse=True)

    return MonthlyReport(
        month=month,
        year=year,
        income=income,
        expenses=expenses,
        transaction_count=len(in_month),
        by_category=breakdown,
    )


def format_report(report: MonthlyReport, currency: str = "GHS") -> str:
    """Plain-text report for chat replies."""
    lines = [
        f"📊 Report for {report.period_label}",
        f"Income: {format_currency(report.income, currency)}",
        f"Expenses: {format_currency(report.expenses, currency)}",
        f"Balance: {format_currency(report.balance, currency)}",
        f"Transactions: {report.transaction_count}",
    ]

    if not report.by_category:
        lines.append("")
        lines.append("No expenses recorded this month.")
        return "\n".join(lines)

    lines.append("")
    lines.append("Spending by category:")
    for item in report.by_category:
        line = (
            f"• {item.category}: {format_currency(item.amount, currency)} "
            f"({item.percentage:.0f}%)"
        )
        if item.budget_limit is not None:
            line += f" of {format_currency(item.budget_limit, currency)} budget"
            if item.over_budget:
                line += " ⚠️ over budget"
        lines.append(line)

    return "\n".join(lines)
