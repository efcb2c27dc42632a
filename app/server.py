"""
HTTP entry point for the assistant endpoint.

Run with:
    uvicorn app.server:app --port 8000
"""

from src.api import create_app
from src.orchestrator import create_app_components


_, gateway, audit_logger = create_app_components(use_storage=True)

app = create_app(gateway=gateway, audit_logger=audit_logger)
