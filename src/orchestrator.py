"""
Component wiring for Finance Desk.

Builds the collection client, the assistant gateway and the audit
logger from settings. Each external service is optional: when one is
not configured the rest of the system still starts, and the missing
piece is reported once in the log.

- Google Sheets missing -> no collection client, audit is local only
- Gemini missing -> no assistant gateway (POST /assistant answers 500)
"""

from typing import Optional

import structlog
from pydantic import ValidationError

from src.agents import AssistantGateway
from src.audit import AuditLogger, configure_logging
from src.config import get_settings
from src.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsCollectionClient,
    RemoteCollectionClient,
    StorageError,
)
from src.views import LeadSourceService


logger = structlog.get_logger(__name__)


def create_app_components(
    use_storage: bool = True,
    use_assistant: bool = True,
) -> tuple[Optional[RemoteCollectionClient], Optional[AssistantGateway], AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect to Google Sheets.
                    Set to False to run without a backend.
        use_assistant: Whether to configure the Gemini gateway.

    Returns:
        (collection_client, assistant_gateway, audit_logger)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    collection_client = None
    audit_logger = AuditLogger()  # Local-only logging

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            collection_client = GoogleSheetsCollectionClient(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except (ValidationError, StorageError) as e:
            logger.warning("storage_not_configured", error=str(e))
            collection_client = None

    gateway = None
    if use_assistant:
        try:
            gateway = AssistantGateway(audit_logger=audit_logger)
        except ValidationError as e:
            logger.warning("assistant_not_configured", error=str(e))

    return collection_client, gateway, audit_logger


def create_lead_source_service(
    collection_client: Optional[RemoteCollectionClient],
    audit_logger: Optional[AuditLogger] = None,
) -> Optional[LeadSourceService]:
    """Lead source service over the configured backend, if there is one."""
    if collection_client is None:
        return None
    return LeadSourceService(collection_client, audit_logger=audit_logger)
