"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the hosted document store because:
1. Users can view their own data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal tracker)
- No transactions (completing a todo is two independent writes)
- Limited query capabilities (we filter in Python)

Every collection is one worksheet, created with a header row on first
use. Nested fields (conversation context, memory preferences, audit
details) are JSON-serialized into a single cell.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from stephly.config import get_settings
from stephly.models.assistant import (
    AssistantMemory,
    Conversation,
    ConversationContext,
    Insight,
    InsightType,
    UserPreferences,
)
from stephly.models.audit import AuditEvent, AuditEventType, AuditSeverity
from stephly.models.finance import (
    Budget,
    Todo,
    Transaction,
    TransactionType,
    UserProfile,
)
from stephly.services.storage.interface import (
    AssistantMemoryStorageInterface,
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from stephly.services.storage.query import (
    filter_budgets,
    filter_transactions,
    same_category,
    sort_todos,
)


logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Column layouts, one per worksheet
USER_COLUMNS = [
    "uid",
    "name",
    "email",
    "preferred_currency",
    "monthly_income",
    "created_at",
    "updated_at",
]

TRANSACTION_COLUMNS = [
    "id",
    "uid",
    "type",
    "title",
    "amount",
    "category",
    "date",
    "note",
    "created_at",
    "updated_at",
]

# "spent" is derived from transactions and never stored
BUDGET_COLUMNS = ["id", "uid", "category", "limit", "month", "year"]

TODO_COLUMNS = [
    "id",
    "uid",
    "title",
    "amount",
    "category",
    "due_date",
    "note",
    "completed",
    "created_at",
    "completed_at",
    "transaction_id",
]

CONVERSATION_COLUMNS = [
    "id",
    "uid",
    "timestamp",
    "user_message",
    "ai_response",
    "context_json",
]

INSIGHT_COLUMNS = ["id", "uid", "type", "message", "timestamp", "acknowledged"]

MEMORY_COLUMNS = ["uid", "preferences_json", "last_updated"]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "uid",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_getter(row: list) -> Callable[..., str]:
    """Handle short rows (Sheets drops trailing empty cells)."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


def _opt_date(value: str) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _opt_datetime(value: str) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication, worksheet creation and retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._sheets: dict[str, gspread.Worksheet] = {}
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
            except gspread.exceptions.APIError as e:
                raise StorageConnectionError(f"Cannot open spreadsheet: {e}")
        return self._spreadsheet

    def get_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """Get or create a worksheet, writing the header row on creation."""
        if title in self._sheets:
            return self._sheets[title]

        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            logger.info("creating_worksheet", title=title)
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)

        self._sheets[title] = sheet
        return sheet


class _SheetsRepository:
    """Row plumbing shared by the Sheets-backed storages."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _sheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        return self._client.get_sheet(title, columns, rows=rows)

    @staticmethod
    def _data_rows(sheet: gspread.Worksheet) -> list[list]:
        # Row 1 is the header
        return [row for row in sheet.get_all_values()[1:] if row and row[0]]

    @staticmethod
    def _parse_rows(rows: list[list], parse: Callable[[list], T], kind: str) -> list[T]:
        items = []
        for row in rows:
            try:
                items.append(parse(row))
            except (ValueError, ArithmeticError) as e:
                # Decimal raises InvalidOperation, an ArithmeticError
                logger.warning("skipping_malformed_row", kind=kind, key=row[0], error=str(e))
        return items

    @staticmethod
    def _find_row(sheet: gspread.Worksheet, key: str, column: int = 0) -> Optional[tuple[int, list]]:
        """Return (sheet row number, row) for the first row whose key column matches."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and len(row) > column and row[column] == key:
                return idx, row
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _append(self, sheet: gspread.Worksheet, row: list) -> None:
        sheet.append_row(row, value_input_option="RAW")

    def _replace(self, sheet: gspread.Worksheet, key: str, row: list, kind: str) -> bool:
        found = self._find_row(sheet, key)
        if found is None:
            raise NotFoundError(f"{kind} not found: {key}")
        idx, _ = found
        sheet.update(range_name=f"A{idx}", values=[row], value_input_option="RAW")
        return True

    def _delete(self, sheet: gspread.Worksheet, key: str) -> bool:
        found = self._find_row(sheet, key)
        if found is None:
            return False
        sheet.delete_rows(found[0])
        return True


class GoogleSheetsFinanceStorage(_SheetsRepository, FinanceStorageInterface):
    """
    Google Sheets implementation of the finance collections.

    One row per document; the first column is the document key.
    """

    # -- worksheets ----------------------------------------------------------

    def _users(self):
        return self._sheet(self._client.settings.users_sheet_name, USER_COLUMNS)

    def _transactions(self):
        return self._sheet(
            self._client.settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=5000,
        )

    def _budgets(self):
        return self._sheet(self._client.settings.budgets_sheet_name, BUDGET_COLUMNS)

    def _todos(self):
        return self._sheet(self._client.settings.todos_sheet_name, TODO_COLUMNS)

    # -- row conversion ------------------------------------------------------

    def _profile_to_row(self, profile: UserProfile) -> list:
        return [
            profile.uid,
            profile.name,
            profile.email,
            profile.preferred_currency,
            str(profile.monthly_income),
            profile.created_at.isoformat(),
            profile.updated_at.isoformat(),
        ]

    def _row_to_profile(self, row: list) -> UserProfile:
        safe_get = _safe_getter(row)
        return UserProfile(
            uid=safe_get(0),
            name=safe_get(1),
            email=safe_get(2),
            preferred_currency=safe_get(3, "GHS"),
            monthly_income=Decimal(safe_get(4, "0")),
            created_at=datetime.fromisoformat(safe_get(5)),
            updated_at=datetime.fromisoformat(safe_get(6)),
        )

    def _transaction_to_row(self, txn: Transaction) -> list:
        return [
            txn.id,
            txn.uid,
            txn.type.value,
            txn.title,
            str(txn.amount),
            txn.category,
            txn.date.isoformat(),
            txn.note or "",
            txn.created_at.isoformat(),
            txn.updated_at.isoformat(),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        safe_get = _safe_getter(row)
        return Transaction(
            id=safe_get(0),
            uid=safe_get(1),
            type=TransactionType(safe_get(2)),
            title=safe_get(3),
            amount=Decimal(safe_get(4)),
            category=safe_get(5, "Other"),
            date=date.fromisoformat(safe_get(6)),
            note=safe_get(7) or None,
            created_at=datetime.fromisoformat(safe_get(8)),
            updated_at=datetime.fromisoformat(safe_get(9)),
        )

    def _budget_to_row(self, budget: Budget) -> list:
        return [
            budget.id,
            budget.uid,
            budget.category,
            str(budget.limit),
            str(budget.month),
            str(budget.year),
        ]

    def _row_to_budget(self, row: list) -> Budget:
        safe_get = _safe_getter(row)
        return Budget(
            id=safe_get(0),
            uid=safe_get(1),
            category=safe_get(2),
            limit=Decimal(safe_get(3, "0")),
            month=int(safe_get(4)),
            year=int(safe_get(5)),
        )

    def _todo_to_row(self, todo: Todo) -> list:
        return [
            todo.id,
            todo.uid,
            todo.title,
            str(todo.amount),
            todo.category,
            todo.due_date.isoformat() if todo.due_date else "",
            todo.note or "",
            str(todo.completed),
            todo.created_at.isoformat(),
            todo.completed_at.isoformat() if todo.completed_at else "",
            todo.transaction_id or "",
        ]

    def _row_to_todo(self, row: list) -> Todo:
        safe_get = _safe_getter(row)
        return Todo(
            id=safe_get(0),
            uid=safe_get(1),
            title=safe_get(2),
            amount=Decimal(safe_get(3, "0")),
            category=safe_get(4, "Other"),
            due_date=_opt_date(safe_get(5)),
            note=safe_get(6) or None,
            completed=safe_get(7).lower() == "true",
            created_at=datetime.fromisoformat(safe_get(8)),
            completed_at=_opt_datetime(safe_get(9)),
            transaction_id=safe_get(10) or None,
        )

    # -- users ---------------------------------------------------------------

    async def save_profile(self, profile: UserProfile) -> bool:
        try:
            sheet = self._users()
            if self._find_row(sheet, profile.uid) is not None:
                raise DuplicateError(f"Profile already exists: {profile.uid}")
            self._append(sheet, self._profile_to_row(profile))
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save profile: {e}")

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        try:
            found = self._find_row(self._users(), uid)
            return self._row_to_profile(found[1]) if found else None
        except Exception as e:
            raise StorageError(f"Failed to get profile: {e}")

    async def update_profile(self, profile: UserProfile) -> bool:
        try:
            return self._replace(
                self._users(), profile.uid, self._profile_to_row(profile), "Profile"
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update profile: {e}")

    # -- transactions --------------------------------------------------------

    async def save_transaction(self, transaction: Transaction) -> bool:
        try:
            self._append(self._transactions(), self._transaction_to_row(transaction))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        try:
            found = self._find_row(self._transactions(), transaction_id)
            return self._row_to_transaction(found[1]) if found else None
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

    async def update_transaction(self, transaction: Transaction) -> bool:
        try:
            return self._replace(
                self._transactions(),
                transaction.id,
                self._transaction_to_row(transaction),
                "Transaction",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    async def delete_transaction(self, transaction_id: str) -> bool:
        try:
            return self._delete(self._transactions(), transaction_id)
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    async def list_transactions(
        self,
        uid: str,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[Transaction]:
        try:
            # Cheap uid pre-filter before parsing
            rows = [
                row for row in self._data_rows(self._transactions())
                if len(row) > 1 and row[1] == uid
            ]
            transactions = self._parse_rows(rows, self._row_to_transaction, "transaction")
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        return filter_transactions(
            transactions,
            uid,
            date_from=date_from,
            date_to=date_to,
            transaction_type=transaction_type,
            category=category,
            limit=limit,
        )

    # -- budgets -------------------------------------------------------------

    async def save_budget(self, budget: Budget) -> bool:
        try:
            self._append(self._budgets(), self._budget_to_row(budget))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}")

    async def get_budget(self, budget_id: str) -> Optional[Budget]:
        try:
            found = self._find_row(self._budgets(), budget_id)
            return self._row_to_budget(found[1]) if found else None
        except Exception as e:
            raise StorageError(f"Failed to get budget: {e}")

    async def find_budget(
        self,
        uid: str,
        category: str,
        month: int,
        year: int,
    ) -> Optional[Budget]:
        for budget in await self.list_budgets(uid, month=month, year=year):
            if same_category(budget.category, category):
                return budget
        return None

    async def update_budget(self, budget: Budget) -> bool:
        try:
            return self._replace(
                self._budgets(), budget.id, self._budget_to_row(budget), "Budget"
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update budget: {e}")

    async def delete_budget(self, budget_id: str) -> bool:
        try:
            return self._delete(self._budgets(), budget_id)
        except Exception as e:
            raise StorageError(f"Failed to delete budget: {e}")

    async def list_budgets(
        self,
        uid: str,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[Budget]:
        try:
            budgets = self._parse_rows(
                self._data_rows(self._budgets()), self._row_to_budget, "budget"
            )
        except Exception as e:
            raise StorageError(f"Failed to list budgets: {e}")
        return filter_budgets(budgets, uid, month=month, year=year)

    # -- todos ---------------------------------------------------------------

    async def save_todo(self, todo: Todo) -> bool:
        try:
            self._append(self._todos(), self._todo_to_row(todo))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save todo: {e}")

    async def get_todo(self, todo_id: str) -> Optional[Todo]:
        try:
            found = self._find_row(self._todos(), todo_id)
            return self._row_to_todo(found[1]) if found else None
        except Exception as e:
            raise StorageError(f"Failed to get todo: {e}")

    async def update_todo(self, todo: Todo) -> bool:
        try:
            return self._replace(self._todos(), todo.id, self._todo_to_row(todo), "Todo")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update todo: {e}")

    async def delete_todo(self, todo_id: str) -> bool:
        try:
            return self._delete(self._todos(), todo_id)
        except Exception as e:
            raise StorageError(f"Failed to delete todo: {e}")

    async def list_todos(self, uid: str) -> list[Todo]:
        try:
            todos = self._parse_rows(
                self._data_rows(self._todos()), self._row_to_todo, "todo"
            )
        except Exception as e:
            raise StorageError(f"Failed to list todos: {e}")
        return sort_todos(t for t in todos if t.uid == uid)


class GoogleSheetsMemoryStorage(_SheetsRepository, AssistantMemoryStorageInterface):
    """Google Sheets implementation of assistant memory."""

    def _conversations(self):
        return self._sheet(
            self._client.settings.conversations_sheet_name,
            CONVERSATION_COLUMNS,
            rows=5000,
        )

    def _insights(self):
        return self._sheet(self._client.settings.insights_sheet_name, INSIGHT_COLUMNS)

    def _memory(self):
        return self._sheet(self._client.settings.memory_sheet_name, MEMORY_COLUMNS)

    def _conversation_to_row(self, conversation: Conversation) -> list:
        return [
            conversation.id,
            conversation.uid,
            conversation.timestamp.isoformat(),
            conversation.user_message,
            conversation.ai_response,
            conversation.context.model_dump_json(),
        ]

    def _row_to_conversation(self, row: list) -> Conversation:
        safe_get = _safe_getter(row)
        context_json = safe_get(5)
        return Conversation(
            id=safe_get(0),
            uid=safe_get(1),
            timestamp=datetime.fromisoformat(safe_get(2)),
            user_message=safe_get(3),
            ai_response=safe_get(4),
            context=(
                ConversationContext.model_validate_json(context_json)
                if context_json
                else ConversationContext()
            ),
        )

    def _insight_to_row(self, insight: Insight) -> list:
        return [
            insight.id,
            insight.uid,
            insight.type.value,
            insight.message,
            insight.timestamp.isoformat(),
            str(insight.acknowledged),
        ]

    def _row_to_insight(self, row: list) -> Insight:
        safe_get = _safe_getter(row)
        return Insight(
            id=safe_get(0),
            uid=safe_get(1),
            type=InsightType(safe_get(2, "tip")),
            message=safe_get(3),
            timestamp=datetime.fromisoformat(safe_get(4)),
            acknowledged=safe_get(5).lower() == "true",
        )

    def _memory_to_row(self, memory: AssistantMemory) -> list:
        return [
            memory.uid,
            memory.preferences.model_dump_json(),
            memory.last_updated.isoformat(),
        ]

    def _row_to_memory(self, row: list) -> AssistantMemory:
        safe_get = _safe_getter(row)
        preferences_json = safe_get(1)
        return AssistantMemory(
            uid=safe_get(0),
            preferences=(
                UserPreferences.model_validate_json(preferences_json)
                if preferences_json
                else UserPreferences()
            ),
            last_updated=datetime.fromisoformat(safe_get(2)),
        )

    async def save_conversation(self, conversation: Conversation) -> bool:
        try:
            self._append(self._conversations(), self._conversation_to_row(conversation))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save conversation: {e}")

    async def list_conversations(
        self,
        uid: str,
        limit: Optional[int] = None,
    ) -> list[Conversation]:
        try:
            rows = [
                row for row in self._data_rows(self._conversations())
                if len(row) > 1 and row[1] == uid
            ]
            conversations = self._parse_rows(rows, self._row_to_conversation, "conversation")
        except Exception as e:
            raise StorageError(f"Failed to list conversations: {e}")

        conversations.sort(key=lambda c: c.timestamp, reverse=True)
        return conversations[:limit] if limit is not None else conversations

    async def save_insight(self, insight: Insight) -> bool:
        try:
            self._append(self._insights(), self._insight_to_row(insight))
            return True
        except Exception as e:
            raise StorageError(f"Failed to save insight: {e}")

    async def get_insight(self, insight_id: str) -> Optional[Insight]:
        try:
            found = self._find_row(self._insights(), insight_id)
            return self._row_to_insight(found[1]) if found else None
        except Exception as e:
            raise StorageError(f"Failed to get insight: {e}")

    async def update_insight(self, insight: Insight) -> bool:
        try:
            return self._replace(
                self._insights(), insight.id, self._insight_to_row(insight), "Insight"
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update insight: {e}")

    async def list_insights(self, uid: str) -> list[Insight]:
        try:
            rows = [
                row for row in self._data_rows(self._insights())
                if len(row) > 1 and row[1] == uid
            ]
            insights = self._parse_rows(rows, self._row_to_insight, "insight")
        except Exception as e:
            raise StorageError(f"Failed to list insights: {e}")

        insights.sort(key=lambda i: i.timestamp, reverse=True)
        return insights

    async def save_memory(self, memory: AssistantMemory) -> bool:
        try:
            sheet = self._memory()
            row = self._memory_to_row(memory)
            if self._find_row(sheet, memory.uid) is None:
                self._append(sheet, row)
                return True
            return self._replace(sheet, memory.uid, row, "Memory")
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save memory: {e}")

    async def get_memory(self, uid: str) -> Optional[AssistantMemory]:
        try:
            found = self._find_row(self._memory(), uid)
            return self._row_to_memory(found[1]) if found else None
        except Exception as e:
            raise StorageError(f"Failed to get memory: {e}")

    async def clear_user(self, uid: str) -> int:
        """Delete the user's rows bottom-up so row numbers stay valid."""
        removed = 0
        try:
            for sheet, uid_column in (
                (self._conversations(), 1),
                (self._insights(), 1),
                (self._memory(), 0),
            ):
                matches = [
                    idx
                    for idx, row in enumerate(sheet.get_all_values()[1:], start=2)
                    if len(row) > uid_column and row[uid_column] == uid
                ]
                for idx in reversed(matches):
                    sheet.delete_rows(idx)
                removed += len(matches)
        except Exception as e:
            raise StorageError(f"Failed to clear assistant memory: {e}")
        return removed


class GoogleSheetsAuditStorage(_SheetsRepository, AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def _audit(self):
        return self._sheet(
            self._client.settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )

    def _row_to_event(self, row: list) -> AuditEvent:
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            uid=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            self._append(self._audit(), event.to_sheets_row())
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.warning(
                "audit_write_failed",
                event_id=str(event.event_id),
                error=str(e),
            )
            return False

    async def _load_events(self) -> list[AuditEvent]:
        try:
            rows = self._data_rows(self._audit())
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        return self._parse_rows(rows, self._row_to_event, "audit_event")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in await self._load_events()
            if e.correlation_id == correlation_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in await self._load_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = await self._load_events()
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
