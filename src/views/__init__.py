"""Tabular views package."""

from src.views.collections import (
    LeadSourceService,
    bank_balance_audit_view,
    transaction_status_history_view,
)
from src.views.sortable import SortableRemoteView, build_query

__all__ = [
    "LeadSourceService",
    "SortableRemoteView",
    "bank_balance_audit_view",
    "build_query",
    "transaction_status_history_view",
]
