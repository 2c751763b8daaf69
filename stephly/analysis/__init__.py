"""Deterministic budget analysis and reporting."""

from stephly.analysis.budget_analyzer import (
    BudgetAnalysis,
    ExceedancePrediction,
    FinancialHealth,
    SpendingPattern,
    analyze_budget_affordability,
    analyze_spending_patterns,
    calculate_financial_health,
    predict_budget_exceedance,
    suggest_budget_allocation,
)
from stephly.analysis.report import (
    CategoryBreakdown,
    MonthlyReport,
    build_monthly_report,
    format_report,
)

__all__ = [
    "BudgetAnalysis",
    "CategoryBreakdown",
    "ExceedancePrediction",
    "FinancialHealth",
    "MonthlyReport",
    "SpendingPattern",
    "analyze_budget_affordability",
    "analyze_spending_patterns",
    "build_monthly_report",
    "calculate_financial_health",
    "format_report",
    "predict_budget_exceedance",
    "suggest_budget_allocation",
]
