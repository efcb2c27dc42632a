"""
Data Models Package

This package contains all Pydantic models used in the Finance Desk system.
All data flowing through the system must conform to these schemas.
"""

from src.models.assistant import (
    AssistantReply,
    AssistantRequest,
    AssistantResult,
    ConversationTurn,
    ReplyType,
    SystemDataSnapshot,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.collection import (
    CollectionQuery,
    ErrorKind,
    QueryResult,
)
from src.models.records import (
    BalanceOperation,
    BankBalanceAudit,
    CollectionRecord,
    LeadSource,
    TransactionStatusHistory,
)
from src.models.sorting import (
    SortDirection,
    SortIndicator,
    SortState,
    current_indicator,
    toggle_sort,
)

__all__ = [
    # Assistant models
    "AssistantReply",
    "AssistantRequest",
    "AssistantResult",
    "ConversationTurn",
    "ReplyType",
    "SystemDataSnapshot",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Collection models
    "CollectionQuery",
    "ErrorKind",
    "QueryResult",
    # Records
    "BalanceOperation",
    "BankBalanceAudit",
    "CollectionRecord",
    "LeadSource",
    "TransactionStatusHistory",
    # Sorting
    "SortDirection",
    "SortIndicator",
    "SortState",
    "current_indicator",
    "toggle_sort",
]
