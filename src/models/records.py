"""
Collection Record Models

Typed rows for the collections the back office reads:
- bank_balance_audit: every balance change of a bank account
- transaction_status_history: status transitions of a transaction
- lead_sources: where CRM leads come from

The audit and history rows are written by the store itself;
this code only ever reads them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CollectionRecord(BaseModel):
    """
    Base for rows read from a collection.

    Spreadsheet-backed stores return blank cells as empty strings;
    those read as "no value".
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def blank_cells_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: (None if v == "" else v) for k, v in data.items()}
        return data


class BalanceOperation(str, Enum):
    """What changed a bank account balance."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    TRANSFER = "TRANSFER"
    MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"


class BankBalanceAudit(CollectionRecord):
    """One entry of a bank account's balance audit trail."""

    COLLECTION: ClassVar[str] = "bank_balance_audit"

    id: str
    bank_account_id: str
    transaction_id: Optional[str] = None
    user_id: str
    operation: BalanceOperation
    old_balance: Optional[Decimal] = None
    new_balance: Decimal
    balance_change: Decimal
    description: Optional[str] = None
    created_at: datetime

    @property
    def is_credit(self) -> bool:
        return self.balance_change > 0


class TransactionStatusHistory(CollectionRecord):
    """One status transition of a transaction (e.g. pending -> paid)."""

    COLLECTION: ClassVar[str] = "transaction_status_history"

    id: str
    transaction_id: str
    user_id: str
    old_status: Optional[str] = None
    new_status: str
    observation: Optional[str] = None
    created_at: datetime
    created_by_name: Optional[str] = None


class LeadSource(CollectionRecord):
    """A named origin of CRM leads. Deleting one only deactivates it."""

    COLLECTION: ClassVar[str] = "lead_sources"

    id: str
    user_id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=200)
    is_active: bool = True
    created_at: datetime
