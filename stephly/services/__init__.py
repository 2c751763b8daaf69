"""
Services package.

The finance service sits above validation and audit, so it is imported
from stephly.services.finance directly rather than re-exported here.
"""

from stephly.services.currency import (
    ExchangeRateService,
    UnknownCurrencyError,
    convert_currency,
    format_currency,
    parse_currency,
)
from stephly.services.memory import MemoryService
from stephly.services.search import (
    SearchError,
    SearchResult,
    SearchService,
    format_search_results,
    needs_web_search,
)
from stephly.services.storage import (
    AssistantMemoryStorageInterface,
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Currency
    "ExchangeRateService",
    "UnknownCurrencyError",
    "convert_currency",
    "format_currency",
    "parse_currency",
    # Assistant memory
    "MemoryService",
    # Search
    "SearchError",
    "SearchResult",
    "SearchService",
    "format_search_results",
    "needs_web_search",
    # Storage
    "AssistantMemoryStorageInterface",
    "AuditStorageInterface",
    "DuplicateError",
    "FinanceStorageInterface",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
]
