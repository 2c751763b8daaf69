"""
Filtering and ordering shared by every storage backend.

Neither Google Sheets nor the in-memory store can query, so both load
rows and hand them to these functions.
"""

from datetime import date
from typing import Iterable, Optional

from stephly.models.finance import Budget, Todo, Transaction, TransactionType


def same_category(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def filter_transactions(
    transactions: Iterable[Transaction],
    uid: str,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    transaction_type: Optional[TransactionType] = None,
    category: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[Transaction]:
    results = []
    for txn in transactions:
        if txn.uid != uid:
            continue
        if date_from and txn.date < date_from:
            continue
        if date_to and txn.date > date_to:
            continue
        if transaction_type and txn.type != transaction_type:
            continue
        if category and not same_category(txn.category, category):
            continue
        results.append(txn)

    # Newest first; created_at breaks ties within a day
    results.sort(key=lambda t: (t.date, t.created_at), reverse=True)

    if limit is not None:
        return results[:limit]
    return results


def filter_budgets(
    budgets: Iterable[Budget],
    uid: str,
    month: Optional[int] = None,
    year: Optional[int] = None,
) -> list[Budget]:
    results = [
        b for b in budgets
        if b.uid == uid
        and (month is None or b.month == month)
        and (year is None or b.year == year)
    ]
    results.sort(key=lambda b: (b.year, b.month, b.category.lower()))
    return results


def sort_todos(todos: Iterable[Todo]) -> list[Todo]:
    """Open todos by due date (undated last), then completed ones."""
    return sorted(
        todos,
        key=lambda t: (
            t.completed,
            t.due_date is None,
            t.due_date or date.max,
            t.created_at,
        ),
    )
