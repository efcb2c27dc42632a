"""Shared fixtures."""

import pytest

from src.audit import AuditLogger
from src.models.records import BankBalanceAudit, LeadSource, TransactionStatusHistory
from src.services.storage import InMemoryAuditStorage, InMemoryCollectionClient


def _balance_row(id, created_at, change="100", account="acc-1", **overrides):
    row = {
        "id": id,
        "bank_account_id": account,
        "transaction_id": "",
        "user_id": "u-1",
        "operation": "UPDATE",
        "old_balance": "1000",
        "new_balance": str(1000 + int(change)),
        "balance_change": change,
        "description": "",
        "created_at": created_at,
    }
    row.update(overrides)
    return row


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def client():
    """In-memory store seeded with a little of every collection."""
    return InMemoryCollectionClient({
        BankBalanceAudit.COLLECTION: [
            _balance_row("b-1", "2024-03-01T10:00:00+00:00", change="100"),
            _balance_row("b-2", "2024-03-03T10:00:00+00:00", change="-50"),
            _balance_row("b-3", "2024-03-02T10:00:00+00:00", change="25"),
            _balance_row("b-4", "2024-03-04T10:00:00+00:00", change="10", account="acc-2"),
        ],
        TransactionStatusHistory.COLLECTION: [
            {
                "id": "h-1",
                "transaction_id": "t-1",
                "user_id": "u-1",
                "old_status": "",
                "new_status": "pending",
                "created_at": "2024-03-01T09:00:00+00:00",
            },
            {
                "id": "h-2",
                "transaction_id": "t-1",
                "user_id": "u-1",
                "old_status": "pending",
                "new_status": "paid",
                "created_at": "2024-03-05T09:00:00+00:00",
                "created_by_name": "Ana",
            },
            {
                "id": "h-3",
                "transaction_id": "t-2",
                "user_id": "u-1",
                "old_status": "",
                "new_status": "pending",
                "created_at": "2024-03-02T09:00:00+00:00",
            },
        ],
        LeadSource.COLLECTION: [
            {"id": "s-1", "user_id": "u-1", "name": "Website", "is_active": True,
             "created_at": "2024-01-01T00:00:00+00:00"},
            {"id": "s-2", "user_id": "u-1", "name": "Instagram", "is_active": True,
             "created_at": "2024-01-02T00:00:00+00:00"},
            {"id": "s-3", "user_id": "u-1", "name": "Cold call", "is_active": False,
             "created_at": "2024-01-03T00:00:00+00:00"},
            {"id": "s-4", "user_id": "u-1", "name": "Referral", "is_active": True,
             "created_at": "2024-01-04T00:00:00+00:00"},
        ],
    })
