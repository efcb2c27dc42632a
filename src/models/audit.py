"""
Audit Models for Finance Desk

Every significant action in the system is logged for audit purposes:
collection reads and writes, discarded stale results, and every
assistant request with its outcome.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Collection reads
    COLLECTION_FETCHED = "collection_fetched"
    COLLECTION_FETCH_FAILED = "collection_fetch_failed"
    STALE_RESULT_DISCARDED = "stale_result_discarded"

    # Collection writes
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_WRITE_FAILED = "record_write_failed"

    # Assistant
    ASSISTANT_REPLIED = "assistant_replied"
    ASSISTANT_REQUEST_REJECTED = "assistant_request_rejected"
    ASSISTANT_FAILED = "assistant_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., a collection name, 'assistant')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all fetches of one view)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_code, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_code or "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.collection_fetched(query_text, 12, sequence=3)
        event = AuditEventBuilder.assistant_failed(message, correlation_id)
    """

    @staticmethod
    def collection_fetched(
        collection_name: str,
        statement: str,
        row_count: int,
        sequence: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_FETCHED,
            severity=AuditSeverity.DEBUG,
            entity_type=collection_name,
            correlation_id=correlation_id,
            description=f"Fetched {row_count} rows from {collection_name}",
            details={
                "statement": statement,
                "row_count": row_count,
                "sequence": sequence,
            },
        )

    @staticmethod
    def collection_fetch_failed(
        collection_name: str,
        error_kind: str,
        error_message: Optional[str],
        sequence: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_FETCH_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=collection_name,
            correlation_id=correlation_id,
            description=f"Fetch from {collection_name} failed: {error_kind}",
            error_code=error_kind,
            error_message=error_message,
            details={"sequence": sequence},
        )

    @staticmethod
    def stale_result_discarded(
        collection_name: str,
        stale_sequence: int,
        latest_sequence: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESULT_DISCARDED,
            severity=AuditSeverity.DEBUG,
            entity_type=collection_name,
            correlation_id=correlation_id,
            description=(
                f"Discarded result #{stale_sequence} from {collection_name}; "
                f"#{latest_sequence} is newer"
            ),
            details={
                "stale_sequence": stale_sequence,
                "latest_sequence": latest_sequence,
            },
        )

    @staticmethod
    def record_created(
        collection_name: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type=collection_name,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Created record in {collection_name}",
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        collection_name: str,
        record_id: str,
        changes: dict[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type=collection_name,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Updated record in {collection_name}",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def record_write_failed(
        collection_name: str,
        error_kind: str,
        error_message: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=collection_name,
            correlation_id=correlation_id,
            description=f"Write to {collection_name} failed: {error_kind}",
            error_code=error_kind,
            error_message=error_message,
        )

    @staticmethod
    def assistant_replied(
        reply_type: str,
        tokens_used: int,
        credits_used: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_REPLIED,
            entity_type="assistant",
            correlation_id=correlation_id,
            description=f"Assistant replied ({reply_type}, {tokens_used} tokens)",
            details={
                "reply_type": reply_type,
                "tokens_used": tokens_used,
                "credits_used": credits_used,
            },
            is_user_action=True,
        )

    @staticmethod
    def assistant_request_rejected(
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_REQUEST_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="assistant",
            correlation_id=correlation_id,
            description=f"Assistant request rejected: {reason}",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def assistant_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="assistant",
            correlation_id=correlation_id,
            description="Assistant upstream call failed",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
