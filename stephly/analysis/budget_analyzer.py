"""
Budget Analysis

DESIGN DECISION: These checks are DETERMINISTIC - plain arithmetic
over stored data, no LLM involved. The assistant may phrase the
results, but the numbers always come from here.

Covers:
- Can the user afford a proposed budget?
- Where is the money going (spending patterns)?
- An overall 0-100 financial health score
- The 50/30/20 allocation rule
- Will a budget be exceeded at the current spending pace?
"""

from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, Field

from stephly.analysis.report import group_expenses
from stephly.models.finance import CENTS, Budget, Transaction
from stephly.services.currency import format_currency


ZERO = Decimal("0.00")

# Budget-to-income thresholds (percent)
DANGER_RATIO = 80
WARNING_RATIO = 60


class BudgetAnalysis(BaseModel):
    can_afford: bool
    severity: str = Field(..., pattern="^(safe|warning|danger)$")
    recommendation: str
    reasoning: str
    suggested_amount: Decimal
    tips: list[str] = Field(default_factory=list)


class SpendingPattern(BaseModel):
    category: str
    amount: Decimal
    percentage: float
    trend: str = "stable"
    is_over_budget: bool = False


class FinancialHealth(BaseModel):
    score: int = Field(..., ge=0, le=100)
    status: str = Field(..., pattern="^(excellent|good|fair|poor|critical)$")
    savings_rate: float
    expense_ratio: float
    recommendations: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class ExceedancePrediction(BaseModel):
    will_exceed: bool
    projected_amount: Decimal
    confidence: float


def _total_limits(budgets: Iterable[Budget]) -> Decimal:
    return sum((b.limit for b in budgets), ZERO)


def analyze_budget_affordability(
    proposed: Decimal,
    balance: Decimal,
    monthly_income: Decimal,
    existing_budgets: list[Budget],
    recent_transactions: list[Transaction],
) -> BudgetAnalysis:
    """
    Judge a proposed budget against balance and income.

    danger:  budgets would exceed 80% of income, or the balance goes negative
    warning: budgets above 60% of income, or less than 20% of the balance left
    safe:    otherwise

    recent_transactions is accepted for future trend checks; the
    verdict only depends on balance, income and existing budgets today.
    """
    existing_total = _total_limits(existing_budgets)
    proposed_total = existing_total + proposed
    remaining = balance - proposed
    ratio = float(proposed_total / monthly_income * 100) if monthly_income > 0 else 0.0

    can_afford = remaining >= 0 and ratio <= DANGER_RATIO

    if ratio > DANGER_RATIO or remaining < 0:
        severity = "danger"
    elif ratio > WARNING_RATIO or remaining < balance * Decimal("0.2"):
        severity = "warning"
    else:
        severity = "safe"

    if severity == "danger":
        left = "negative" if remaining < 0 else "only"
        recommendation = (
            f"This budget is too high! You'll have {left} "
            f"{format_currency(abs(remaining))} left."
        )
        reasoning = (
            f"Your total budgets ({format_currency(proposed_total)}) would be "
            f"{ratio:.0f}% of your income. Financial experts recommend keeping "
            "it under 80%."
        )
        tips = [
            "Consider reducing this budget amount",
            "Review and cut unnecessary expenses",
            "Look for ways to increase your income",
        ]
        suggested = max(ZERO, balance * Decimal("0.6") - existing_total).quantize(CENTS)
    elif severity == "warning":
        recommendation = (
            "This budget is manageable but tight. You'll have "
            f"{format_currency(remaining)} remaining."
        )
        reasoning = (
            f"Your budgets will be {ratio:.0f}% of your income. This leaves "
            "little room for savings or emergencies."
        )
        tips = [
            "Try to save at least 20% of your income",
            "Build an emergency fund",
            "Track your spending closely",
        ]
        suggested = proposed
    else:
        recommendation = (
            f"This budget looks good! You'll have {format_currency(remaining)} "
            "for savings and emergencies."
        )
        reasoning = (
            f"Your total budgets ({ratio:.0f}% of income) leave room for "
            "savings and unexpected expenses."
        )
        tips = [
            "Great job budgeting responsibly!",
            "Consider investing your savings",
            "Keep tracking your expenses",
        ]
        suggested = proposed

    return BudgetAnalysis(
        can_afford=can_afford,
        severity=severity,
        recommendation=recommendation,
        reasoning=reasoning,
        suggested_amount=suggested,
        tips=tips,
    )


def analyze_spending_patterns(
    transactions: list[Transaction],
    budgets: list[Budget],
) -> list[SpendingPattern]:
    """Expense totals per category, biggest first."""
    by_category = group_expenses(transactions)

    total = sum(by_category.values(), ZERO)
    limits = {b.category.strip().lower(): b.limit for b in budgets}

    patterns = []
    for category, amount in by_category.items():
        limit = limits.get(category.strip().lower())
        patterns.append(SpendingPattern(
            category=category,
            amount=amount,
            percentage=float(amount / total * 100) if total > 0 else 0.0,
            is_over_budget=limit is not None and amount > limit,
        ))

    patterns.sort(key=lambda p: p.amount, reverse=True)
    return patterns


def _health_status(score: int) -> str:
    if score >= 80:
        return "excellent"
    if score >= 60:
        return "good"
    if score >= 40:
        return "fair"
    if score >= 20:
        return "poor"
    return "critical"


def calculate_financial_health(
    balance: Decimal,
    income: Decimal,
    expenses: Decimal,
    budgets: list[Budget],
) -> FinancialHealth:
    """
    Score starts at 100:
    - negative balance: -30
    - savings rate under 10%: -20 (20% or more: +10)
    - spending over 90% of income: -25
    - spending over 90% of total budgets: -15
    Clamped to 0..100.
    """
    score = 100
    recommendations: list[str] = []
    warnings: list[str] = []

    savings_rate = float((income - expenses) / income * 100) if income > 0 else 0.0
    expense_ratio = float(expenses / income * 100) if income > 0 else 0.0
    total_budgets = _total_limits(budgets)
    budget_utilization = float(expenses / total_budgets * 100) if total_budgets > 0 else 0.0

    if balance < 0:
        score -= 30
        warnings.append("⚠️ Negative balance - immediate action required")
        recommendations.append("Stop all non-essential spending")
        recommendations.append("Find ways to increase income urgently")

    if savings_rate < 10:
        score -= 20
        warnings.append("⚠️ Low savings rate")
        recommendations.append("Aim to save at least 20% of your income")
    elif savings_rate >= 20:
        score += 10
        recommendations.append("✓ Excellent savings rate! Keep it up")

    if expense_ratio > 90:
        score -= 25
        warnings.append("⚠️ Spending almost all your income")
        recommendations.append("Reduce expenses or increase income")

    if budget_utilization > 90:
        score -= 15
        warnings.append("⚠️ Exceeding budget limits")
        recommendations.append("Review and adjust your budgets")

    score = max(0, min(100, score))
    status = _health_status(score)

    if status in ("excellent", "good"):
        recommendations.append("Consider investing your savings")
        recommendations.append("Build a 6-month emergency fund")

    return FinancialHealth(
        score=score,
        status=status,
        savings_rate=savings_rate,
        expense_ratio=expense_ratio,
        recommendations=recommendations,
        warnings=warnings,
    )


def suggest_budget_allocation(monthly_income: Decimal) -> dict[str, Decimal]:
    """The 50/30/20 rule."""
    return {
        "Needs (Housing, Food, Transport)": (monthly_income * Decimal("0.50")).quantize(CENTS),
        "Wants (Entertainment, Dining)": (monthly_income * Decimal("0.30")).quantize(CENTS),
        "Savings & Debt": (monthly_income * Decimal("0.20")).quantize(CENTS),
    }


def predict_budget_exceedance(
    budget: Budget,
    current_spending: Decimal,
    days_elapsed: int,
    days_in_month: int,
) -> ExceedancePrediction:
    """Project this month's spending linearly from the pace so far."""
    daily_rate = current_spending / days_elapsed if days_elapsed > 0 else ZERO
    projected = (daily_rate * days_in_month).quantize(CENTS)
    confidence = min(95.0, days_elapsed / days_in_month * 100) if days_in_month > 0 else 0.0

    return ExceedancePrediction(
        will_exceed=projected > budget.limit,
        projected_amount=projected,
        confidence=confidence,
    )
