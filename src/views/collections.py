"""
Views and services for the back office collections.

- Bank balance audit trail (read only, newest first)
- Transaction status history (read only, newest first)
- Lead sources (active list by name, create, soft delete)
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import ValidationError

from src.audit import AuditLogger
from src.models.collection import ErrorKind, QueryResult
from src.models.records import BankBalanceAudit, LeadSource, TransactionStatusHistory
from src.services.storage import RemoteCollectionClient
from src.views.sortable import SortableRemoteView


def _sort_initially(view: SortableRemoteView, column_key: str, descending: bool = False) -> SortableRemoteView:
    view.toggle_sort(column_key)
    if descending:
        view.toggle_sort(column_key)
    return view


def bank_balance_audit_view(
    client: RemoteCollectionClient,
    bank_account_id: Optional[str] = None,
    limit: int = 100,
    audit_logger: Optional[AuditLogger] = None,
) -> SortableRemoteView[BankBalanceAudit]:
    """Balance changes of one account (or all accounts), newest first."""
    filters = {"bank_account_id": bank_account_id} if bank_account_id else {}
    view = SortableRemoteView(
        client,
        BankBalanceAudit.COLLECTION,
        base_filters=filters,
        limit=limit,
        row_model=BankBalanceAudit,
        audit_logger=audit_logger,
    )
    return _sort_initially(view, "created_at", descending=True)


def transaction_status_history_view(
    client: RemoteCollectionClient,
    transaction_id: Optional[str],
    audit_logger: Optional[AuditLogger] = None,
) -> SortableRemoteView[TransactionStatusHistory]:
    """Status transitions of one transaction, newest first. Disabled without a transaction."""
    view = SortableRemoteView(
        client,
        TransactionStatusHistory.COLLECTION,
        base_filters={"transaction_id": transaction_id} if transaction_id else {},
        row_model=TransactionStatusHistory,
        audit_logger=audit_logger,
        enabled=bool(transaction_id),
    )
    return _sort_initially(view, "created_at", descending=True)


class LeadSourceService:
    """
    Lead sources of the CRM.

    Deleting a source only deactivates it, so leads that reference
    it keep a readable origin.
    """

    def __init__(
        self,
        client: RemoteCollectionClient,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._client = client
        self._audit_logger = audit_logger

    def active_sources_view(self, limit: Optional[int] = None) -> SortableRemoteView[LeadSource]:
        view = SortableRemoteView(
            self._client,
            LeadSource.COLLECTION,
            base_filters={"is_active": True},
            limit=limit,
            row_model=LeadSource,
            audit_logger=self._audit_logger,
        )
        return _sort_initially(view, "name")

    async def create(
        self,
        name: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> QueryResult:
        """Insert a new active source. Invalid names are rejected without contacting the store."""
        name = (name or "").strip()
        if not name:
            return QueryResult.failure(ErrorKind.INVALID_INPUT, "Source name is required")

        try:
            source = LeadSource(
                id=str(uuid4()),
                user_id=user_id,
                name=name,
                is_active=True,
                created_at=datetime.now(timezone.utc),
            )
        except ValidationError as e:
            return QueryResult.failure(
                ErrorKind.INVALID_INPUT,
                f"Invalid lead source: {e.errors()[0]['msg']}",
            )

        result = await self._client.insert(LeadSource.COLLECTION, source.model_dump(mode="json"))

        if result.error is not None:
            await self._log_write_failure(result, correlation_id)
            return result

        if self._audit_logger:
            await self._audit_logger.log_record_created(
                collection_name=LeadSource.COLLECTION,
                record_id=source.id,
                correlation_id=correlation_id,
            )
        return QueryResult(rows=[source])

    async def deactivate(
        self,
        source_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> QueryResult:
        """Soft-delete a source. NOT_FOUND when no source has this id."""
        if not source_id:
            return QueryResult.failure(ErrorKind.INVALID_INPUT, "Source id is required")

        changes = {"is_active": False}
        result = await self._client.update(
            LeadSource.COLLECTION,
            changes,
            {"id": source_id},
        )

        if result.error is not None:
            await self._log_write_failure(result, correlation_id)
            return result
        if not result.rows:
            return QueryResult.failure(ErrorKind.NOT_FOUND, f"Lead source not found: {source_id}")

        if self._audit_logger:
            await self._audit_logger.log_record_updated(
                collection_name=LeadSource.COLLECTION,
                record_id=source_id,
                changes=changes,
                correlation_id=correlation_id,
            )
        return result

    async def _log_write_failure(self, result: QueryResult, correlation_id: Optional[UUID]) -> None:
        if self._audit_logger:
            await self._audit_logger.log_record_write_failed(
                collection_name=LeadSource.COLLECTION,
                error_kind=result.error.value,
                error_message=result.error_message,
                correlation_id=correlation_id,
            )
