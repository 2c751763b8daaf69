"""
Tests for the storage backends.

The Google Sheets storages run against FakeSheetsClient, which keeps
worksheets as lists of string rows the way gspread returns them.
"""

from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import gspread
import pytest

from stephly.models.assistant import AssistantMemory, Conversation, Insight, UserPreferences
from stephly.models.audit import AuditEventBuilder
from stephly.models.finance import Budget, Todo, TransactionType, UserProfile
from stephly.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    GoogleSheetsMemoryStorage,
    NotFoundError,
    StorageConnectionError,
)
from stephly.services.storage.google_sheets import TODO_COLUMNS, TRANSACTION_COLUMNS

from conftest import UID, make_transaction, run


class FakeWorksheet:
    def __init__(self, columns):
        self.rows = [list(columns)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(cell) for cell in row])

    def update(self, range_name, values, value_input_option=None):
        self.rows[int(range_name[1:]) - 1] = [str(cell) for cell in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    settings = SimpleNamespace(
        users_sheet_name="Users",
        transactions_sheet_name="Transactions",
        budgets_sheet_name="Budgets",
        todos_sheet_name="Todos",
        conversations_sheet_name="Conversations",
        insights_sheet_name="Insights",
        memory_sheet_name="Memory",
        audit_sheet_name="AuditLog",
    )

    def __init__(self):
        self.sheets = {}

    def get_sheet(self, title, columns, rows=1000):
        return self.sheets.setdefault(title, FakeWorksheet(columns))


@pytest.fixture
def sheets():
    return FakeSheetsClient()


def profile(uid=UID):
    return UserProfile(uid=uid, name="Ama", email="ama@example.com", monthly_income=2500)


class TestInMemoryFinanceStorage:

    def test_duplicate_profile(self, finance_storage):
        run(finance_storage.save_profile(profile()))
        with pytest.raises(DuplicateError):
            run(finance_storage.save_profile(profile()))

    def test_update_missing(self, finance_storage):
        with pytest.raises(NotFoundError):
            run(finance_storage.update_transaction(make_transaction()))

    def test_returned_models_are_copies(self, finance_storage):
        txn = make_transaction()
        run(finance_storage.save_transaction(txn))
        fetched = run(finance_storage.get_transaction(txn.id))
        fetched.title = "changed"
        assert run(finance_storage.get_transaction(txn.id)).title == "Lunch"

    def test_delete_missing_is_false(self, finance_storage):
        assert run(finance_storage.delete_budget("nope")) is False

    def test_find_budget_ignores_case(self, finance_storage):
        budget = Budget(uid=UID, category="Food", limit=300, month=5, year=2025)
        run(finance_storage.save_budget(budget))
        assert run(finance_storage.find_budget(UID, " food ", 5, 2025)).id == budget.id
        assert run(finance_storage.find_budget(UID, "food", 6, 2025)) is None

    def test_transaction_filters(self, finance_storage):
        for txn in (
            make_transaction("5", txn_date=date(2025, 1, 1)),
            make_transaction("6", category="Rent", txn_date=date(2025, 1, 15)),
            make_transaction("700", TransactionType.INCOME, "Salary", txn_date=date(2025, 1, 31)),
            make_transaction("8", txn_date=date(2025, 2, 3)),
            make_transaction("9", uid="other", txn_date=date(2025, 1, 5)),
        ):
            run(finance_storage.save_transaction(txn))

        january = run(finance_storage.list_transactions(
            UID, date_from=date(2025, 1, 1), date_to=date(2025, 1, 31),
        ))
        assert [t.amount for t in january] == [Decimal("700.00"), Decimal("6.00"), Decimal("5.00")]

        expenses = run(finance_storage.list_transactions(UID, transaction_type=TransactionType.EXPENSE))
        assert len(expenses) == 3
        assert len(run(finance_storage.list_transactions(UID, category="FOOD"))) == 2
        assert len(run(finance_storage.list_transactions(UID, limit=2))) == 2

    def test_todo_order(self, finance_storage):
        todos = [
            Todo(uid=UID, title="done", amount=1, completed=True, due_date=date(2025, 1, 1)),
            Todo(uid=UID, title="undated", amount=1),
            Todo(uid=UID, title="later", amount=1, due_date=date(2025, 3, 1)),
            Todo(uid=UID, title="soon", amount=1, due_date=date(2025, 2, 1)),
        ]
        for todo in todos:
            run(finance_storage.save_todo(todo))
        titles = [t.title for t in run(finance_storage.list_todos(UID))]
        assert titles == ["soon", "later", "undated", "done"]


class TestGoogleSheetsFinanceStorage:

    def test_profile_round_trip(self, sheets):
        storage = GoogleSheetsFinanceStorage(sheets)
        run(storage.save_profile(profile()))

        loaded = run(storage.get_profile(UID))
        assert loaded.name == "Ama"
        assert loaded.monthly_income == Decimal("2500.00")
        assert sheets.sheets["Users"].rows[0][0] == "uid"

    def test_duplicate_profile(self, sheets):
        storage = GoogleSheetsFinanceStorage(sheets)
        run(storage.save_profile(profile()))
        with pytest.raises(DuplicateError):
            run(storage.save_profile(profile()))

    def test_transaction_lifecycle(self, sheets):
        storage = GoogleSheetsFinanceStorage(sheets)
        txn = make_transaction("42.50", txn_date=date(2025, 4, 2))
        run(storage.save_transaction(txn))
        run(storage.save_transaction(make_transaction("1", uid="other")))

        listed = run(storage.list_transactions(UID))
        assert [t.id for t in listed] == [txn.id]
        assert listed[0].amount == Decimal("42.50")
        assert listed[0].date == date(2025, 4, 2)

        run(storage.update_transaction(txn.model_copy(update={"title": "Dinner"})))
        assert run(storage.get_transaction(txn.id)).title == "Dinner"

        assert run(storage.delete_transaction(txn.id)) is True
        assert run(storage.get_transaction(txn.id)) is None

    def test_update_missing(self, sheets):
        with pytest.raises(NotFoundError):
            run(GoogleSheetsFinanceStorage(sheets).update_todo(Todo(uid=UID, title="x", amount=1)))

    def test_malformed_rows_are_skipped(self, sheets):
        storage = GoogleSheetsFinanceStorage(sheets)
        run(storage.save_transaction(make_transaction()))
        sheet = sheets.get_sheet("Transactions", TRANSACTION_COLUMNS)
        sheet.rows.append(["bad-id", UID, "expense", "Broken", "5", "Food", "31/01/2025"])
        stamp = datetime(2025, 1, 31).isoformat()
        sheet.rows.append(["bad-amount", UID, "expense", "Typed in", "1,200.00", "Food", "2025-01-31", "", stamp, stamp])
        sheet.rows.append(["no-amount", UID, "expense", "Typed in", "", "Food", "2025-01-31", "", stamp, stamp])

        assert len(run(storage.list_transactions(UID))) == 1

    def test_short_todo_rows(self, sheets):
        storage = GoogleSheetsFinanceStorage(sheets)
        sheet = sheets.get_sheet("Todos", TODO_COLUMNS)
        # Sheets drops trailing empty cells
        sheet.rows.append([
            "todo-1", UID, "Rent", "400.00", "Bills", "", "", "False",
            datetime(2025, 1, 1).isoformat(),
        ])

        todo = run(storage.get_todo("todo-1"))
        assert todo.amount == Decimal("400.00")
        assert todo.completed is False
        assert todo.completed_at is None
        assert todo.transaction_id is None

    def test_budgets_filtered_by_month(self, sheets):
        storage = GoogleSheetsFinanceStorage(sheets)
        run(storage.save_budget(Budget(uid=UID, category="Food", limit=100, month=1, year=2025)))
        run(storage.save_budget(Budget(uid=UID, category="Food", limit=200, month=2, year=2025)))

        february = run(storage.list_budgets(UID, month=2, year=2025))
        assert [b.limit for b in february] == [Decimal("200.00")]
        assert run(storage.find_budget(UID, "FOOD", 1, 2025)).limit == Decimal("100.00")


class TestGoogleSheetsMemoryStorage:

    def test_memory_upsert(self, sheets):
        storage = GoogleSheetsMemoryStorage(sheets)
        run(storage.save_memory(AssistantMemory(uid=UID)))
        run(storage.save_memory(AssistantMemory(
            uid=UID, preferences=UserPreferences(financial_goals=["Car"]),
        )))

        assert len(sheets.sheets["Memory"].rows) == 2
        assert run(storage.get_memory(UID)).preferences.financial_goals == ["Car"]

    def test_conversations_newest_first(self, sheets):
        storage = GoogleSheetsMemoryStorage(sheets)
        for minute in (1, 3, 2):
            run(storage.save_conversation(Conversation(
                uid=UID,
                timestamp=datetime(2025, 1, 1, 9, minute),
                user_message=f"m{minute}",
                ai_response="ok",
            )))
        assert [c.user_message for c in run(storage.list_conversations(UID, limit=2))] == ["m3", "m2"]

    def test_clear_user(self, sheets):
        storage = GoogleSheetsMemoryStorage(sheets)
        run(storage.save_conversation(Conversation(uid=UID, user_message="a", ai_response="b")))
        run(storage.save_conversation(Conversation(uid="other", user_message="a", ai_response="b")))
        run(storage.save_insight(Insight(uid=UID, message="tip")))
        run(storage.save_memory(AssistantMemory(uid=UID)))

        assert run(storage.clear_user(UID)) == 3
        assert len(run(storage.list_conversations("other"))) == 1
        assert run(storage.list_insights(UID)) == []


class TestGoogleSheetsAuditStorage:

    def test_events_round_trip(self, sheets):
        storage = GoogleSheetsAuditStorage(sheets)
        event = AuditEventBuilder.transaction_added(UID, "txn-1", "expense", "9.99", "Food")
        assert run(storage.append_event(event))

        loaded = run(storage.get_events_by_entity("transaction", "txn-1"))
        assert loaded[0].event_id == event.event_id
        assert loaded[0].details["amount"] == "9.99"
        assert loaded[0].is_user_action is True


class TestGoogleSheetsClient:

    def test_missing_spreadsheet(self, monkeypatch, tmp_path):
        credentials = tmp_path / "credentials.json"
        credentials.write_text("{}")
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", str(credentials))
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "missing-sheet")

        class NoSpreadsheets:
            def open_by_key(self, key):
                raise gspread.SpreadsheetNotFound(key)

        client = GoogleSheetsClient()
        client._client = NoSpreadsheets()
        with pytest.raises(StorageConnectionError):
            client.get_spreadsheet()
