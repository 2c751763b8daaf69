"""
Shared fixtures.

No test talks to Google, Gemini or the web: storage is in-memory and
the model is a FakeModel that replays canned replies.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from stephly.audit import AuditLogger
from stephly.models.finance import Transaction, TransactionType
from stephly.services.finance import FinanceService
from stephly.services.memory import MemoryService
from stephly.services.storage import (
    InMemoryAssistantMemoryStorage,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
)


UID = "user-1"


class FakeResponse:
    def __init__(self, text):
        self.text = text


class FakeModel:
    """
    Stands in for genai.GenerativeModel.

    Replies are consumed in order; the last one repeats. An Exception
    instance as a reply is raised instead.
    """

    def __init__(self, *replies):
        self.replies = list(replies) or [""]
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return FakeResponse(reply)


def run(coro):
    return asyncio.run(coro)


def make_transaction(
    amount="10.00",
    txn_type=TransactionType.EXPENSE,
    category="Food",
    title="Lunch",
    txn_date=None,
    uid=UID,
):
    return Transaction(
        uid=uid,
        type=txn_type,
        title=title,
        amount=Decimal(amount),
        category=category,
        date=txn_date or date.today(),
    )


@pytest.fixture
def finance_storage():
    return InMemoryFinanceStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def finance(finance_storage, audit_logger):
    return FinanceService(finance_storage, audit_logger=audit_logger)


@pytest.fixture
def memory_storage():
    return InMemoryAssistantMemoryStorage()


@pytest.fixture
def memory(memory_storage):
    return MemoryService(memory_storage)
