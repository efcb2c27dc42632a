"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability
2. Debugging capability
3. A history of what each view fetched and what the assistant answered

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route the structured log to stderr at `level`."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=numeric_level)
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(numeric_level)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_collection_fetched(
        self,
        collection_name: str,
        statement: str,
        row_count: int,
        sequence: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful collection read."""
        event = AuditEventBuilder.collection_fetched(
            collection_name=collection_name,
            statement=statement,
            row_count=row_count,
            sequence=sequence,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_collection_fetch_failed(
        self,
        collection_name: str,
        error_kind: str,
        error_message: Optional[str],
        sequence: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed collection read."""
        event = AuditEventBuilder.collection_fetch_failed(
            collection_name=collection_name,
            error_kind=error_kind,
            error_message=error_message,
            sequence=sequence,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_stale_result_discarded(
        self,
        collection_name: str,
        stale_sequence: int,
        latest_sequence: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log that a superseded fetch result was dropped."""
        event = AuditEventBuilder.stale_result_discarded(
            collection_name=collection_name,
            stale_sequence=stale_sequence,
            latest_sequence=latest_sequence,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_created(
        self,
        collection_name: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a row insert."""
        event = AuditEventBuilder.record_created(
            collection_name=collection_name,
            record_id=record_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_updated(
        self,
        collection_name: str,
        record_id: str,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a row update."""
        event = AuditEventBuilder.record_updated(
            collection_name=collection_name,
            record_id=record_id,
            changes=changes,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_write_failed(
        self,
        collection_name: str,
        error_kind: str,
        error_message: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed insert or update."""
        event = AuditEventBuilder.record_write_failed(
            collection_name=collection_name,
            error_kind=error_kind,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_assistant_replied(
        self,
        reply_type: str,
        tokens_used: int,
        credits_used: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a completed assistant reply."""
        event = AuditEventBuilder.assistant_replied(
            reply_type=reply_type,
            tokens_used=tokens_used,
            credits_used=credits_used,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_assistant_request_rejected(
        self,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an assistant request rejected before reaching the model."""
        event = AuditEventBuilder.assistant_request_rejected(
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_assistant_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an upstream model failure."""
        event = AuditEventBuilder.assistant_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., opening a view).
    Pass it through all subsequent operations.
    """
    return uuid4()
