"""Tests for the deterministic budget analysis and monthly reports."""

from datetime import date
from decimal import Decimal

import pytest

from stephly.analysis import (
    analyze_budget_affordability,
    analyze_spending_patterns,
    build_monthly_report,
    calculate_financial_health,
    format_report,
    predict_budget_exceedance,
    suggest_budget_allocation,
)
from stephly.models.finance import Budget, TransactionType

from conftest import UID, make_transaction


def budget(category, limit, month=1, year=2025):
    return Budget(uid=UID, category=category, limit=limit, month=month, year=year)


class TestAffordability:

    def test_safe(self):
        result = analyze_budget_affordability(
            Decimal("200"), Decimal("1000"), Decimal("2000"), [], [],
        )
        assert result.can_afford
        assert result.severity == "safe"
        assert result.suggested_amount == Decimal("200")
        assert "₵800.00" in result.recommendation

    def test_warning_when_budgets_pass_sixty_percent(self):
        result = analyze_budget_affordability(
            Decimal("900"), Decimal("1000"), Decimal("2000"), [budget("Rent", 400)], [],
        )
        assert result.can_afford
        assert result.severity == "warning"
        assert "65%" in result.reasoning

    def test_danger_when_balance_goes_negative(self):
        result = analyze_budget_affordability(
            Decimal("1200"), Decimal("1000"), Decimal("5000"), [], [],
        )
        assert not result.can_afford
        assert result.severity == "danger"
        assert "negative ₵200.00" in result.recommendation
        assert result.suggested_amount == Decimal("600.00")

    def test_danger_suggestion_never_negative(self):
        result = analyze_budget_affordability(
            Decimal("100"), Decimal("100"), Decimal("1000"), [budget("Rent", 900)], [],
        )
        assert result.severity == "danger"
        assert result.suggested_amount == Decimal("0.00")

    def test_no_income(self):
        result = analyze_budget_affordability(
            Decimal("100"), Decimal("1000"), Decimal("0"), [], [],
        )
        assert result.severity == "safe"


class TestFinancialHealth:

    def test_excellent(self):
        health = calculate_financial_health(
            Decimal("500"), Decimal("1000"), Decimal("500"), [],
        )
        assert health.score == 100
        assert health.status == "excellent"
        assert health.savings_rate == pytest.approx(50.0)
        assert "Consider investing your savings" in health.recommendations
        assert health.warnings == []

    def test_critical(self):
        health = calculate_financial_health(
            Decimal("-50"), Decimal("1000"), Decimal("1050"), [budget("Food", 500)],
        )
        assert health.score == 10
        assert health.status == "critical"
        assert len(health.warnings) == 4

    def test_low_savings_only(self):
        health = calculate_financial_health(
            Decimal("50"), Decimal("1000"), Decimal("950"), [],
        )
        # -20 for savings, -25 for spending over 90% of income
        assert health.score == 55
        assert health.status == "fair"


class TestSpendingPatterns:

    def test_grouped_and_sorted(self):
        transactions = [
            make_transaction("30", category="Transport"),
            make_transaction("100", category="Food"),
            make_transaction("50", category="Food"),
            make_transaction("900", TransactionType.INCOME, "Salary"),
        ]
        patterns = analyze_spending_patterns(transactions, [budget("food", 120)])

        assert [p.category for p in patterns] == ["Food", "Transport"]
        assert patterns[0].amount == Decimal("150.00")
        assert patterns[0].percentage == pytest.approx(83.33, rel=1e-3)
        assert patterns[0].is_over_budget
        assert not patterns[1].is_over_budget

    def test_category_case_folded(self):
        transactions = [
            make_transaction("40", category="Food"),
            make_transaction("60", category=" food"),
        ]
        patterns = analyze_spending_patterns(transactions, [])

        assert [(p.category, p.amount) for p in patterns] == [("Food", Decimal("100.00"))]
        assert patterns[0].percentage == 100.0


class TestAllocationAndPrediction:

    def test_fifty_thirty_twenty(self):
        allocation = suggest_budget_allocation(Decimal("1000"))
        assert list(allocation.values()) == [
            Decimal("500.00"),
            Decimal("300.00"),
            Decimal("200.00"),
        ]

    def test_projected_overspend(self):
        prediction = predict_budget_exceedance(budget("Food", 300), Decimal("150"), 10, 30)
        assert prediction.will_exceed
        assert prediction.projected_amount == Decimal("450.00")
        assert prediction.confidence == pytest.approx(33.33, rel=1e-3)

    def test_no_days_elapsed(self):
        prediction = predict_budget_exceedance(budget("Food", 300), Decimal("0"), 0, 30)
        assert not prediction.will_exceed
        assert prediction.projected_amount == Decimal("0.00")

    def test_confidence_capped(self):
        prediction = predict_budget_exceedance(budget("Food", 300), Decimal("100"), 30, 30)
        assert prediction.confidence == 95.0


class TestMonthlyReport:

    def transactions(self):
        return [
            make_transaction("1000", TransactionType.INCOME, "Salary", txn_date=date(2025, 1, 2)),
            make_transaction("200", category="Food", txn_date=date(2025, 1, 5)),
            make_transaction("50", category="food", txn_date=date(2025, 1, 9)),
            make_transaction("100", category="Transport", txn_date=date(2025, 1, 12)),
            make_transaction("999", category="Food", txn_date=date(2025, 2, 1)),
        ]

    def test_totals_for_month(self):
        report = build_monthly_report(self.transactions(), [], month=1, year=2025)
        assert report.income == Decimal("1000.00")
        assert report.expenses == Decimal("350.00")
        assert report.balance == Decimal("650.00")
        assert report.transaction_count == 4
        assert report.period_label == "January 2025"

    def test_categories_merge_case_insensitively(self):
        report = build_monthly_report(self.transactions(), [], month=1, year=2025)
        assert [(c.category, c.amount) for c in report.by_category] == [
            ("Food", Decimal("250.00")),
            ("Transport", Decimal("100.00")),
        ]

    def test_budget_limits_only_from_same_month(self):
        budgets = [budget("Food", 200), budget("Transport", 50, month=2)]
        report = build_monthly_report(self.transactions(), budgets, month=1, year=2025)
        food, transport = report.by_category
        assert food.over_budget
        assert transport.budget_limit is None

    def test_format(self):
        report = build_monthly_report(
            self.transactions(), [budget("Food", 200)], month=1, year=2025,
        )
        text = format_report(report)
        assert text.startswith("📊 Report for January 2025")
        assert "• Food: ₵250.00 (71%) of ₵200.00 budget ⚠️ over budget" in text
        assert "• Transport: ₵100.00 (29%)" in text

    def test_format_empty_month(self):
        report = build_monthly_report([], [], month=3, year=2025)
        text = format_report(report, "USD")
        assert "Income: USD 0.00" in text
        assert text.endswith("No expenses recorded this month.")
