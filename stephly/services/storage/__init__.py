"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend serves tests
and local runs.
"""

from stephly.services.storage.interface import (
    AssistantMemoryStorageInterface,
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from stephly.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    GoogleSheetsMemoryStorage,
)
from stephly.services.storage.memory import (
    InMemoryAssistantMemoryStorage,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
)

__all__ = [
    # Interfaces
    "AssistantMemoryStorageInterface",
    "AuditStorageInterface",
    "FinanceStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStorage",
    "GoogleSheetsMemoryStorage",
    # In-memory implementation
    "InMemoryAssistantMemoryStorage",
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
]
