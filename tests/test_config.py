"""
Tests for settings and component wiring.
"""

import pytest
from pydantic import ValidationError

from src.audit import AuditLogger
from src.config import AppSettings, get_settings, validate_all_settings
from src.orchestrator import create_app_components, create_lead_source_service
from src.services.storage import InMemoryCollectionClient
from src.views import LeadSourceService


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No .env file and no service variables."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "GEMINI_API_KEY",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "LOG_LEVEL",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self, clean_env):
        settings = AppSettings()
        assert settings.default_page_size == 100
        assert settings.chat_base_credits == 10
        assert settings.credits_per_1k_tokens == 10
        assert settings.cors_origins_list == ["*"]

    def test_log_level_normalized(self, clean_env):
        assert AppSettings(log_level=" debug ").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            AppSettings(log_level="LOUD")

    def test_cors_origins_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000, https://app.example.com")
        assert AppSettings().cors_origins_list == [
            "http://localhost:3000",
            "https://app.example.com",
        ]


class TestValidateAllSettings:
    def test_reports_missing_services(self, clean_env):
        status = validate_all_settings()
        assert status["app"] is True
        assert status["gemini"] is False
        assert status["google_sheets"] is False
        assert "api_key" in status["gemini_error"]

    def test_gemini_configured(self, clean_env, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "test-key")
        status = validate_all_settings()
        assert status["gemini"] is True
        assert get_settings().gemini.model_name == "gemini-2.5-flash"


class TestComponentWiring:
    """Tests for create_app_components."""

    def test_without_services(self, clean_env):
        client, gateway, audit_logger = create_app_components(use_storage=False, use_assistant=False)
        assert client is None
        assert gateway is None
        assert isinstance(audit_logger, AuditLogger)

    def test_unconfigured_services_degrade(self, clean_env):
        """Missing credentials leave the pieces out instead of failing startup."""
        client, gateway, audit_logger = create_app_components()
        assert client is None
        assert gateway is None
        assert isinstance(audit_logger, AuditLogger)

    def test_lead_source_service(self):
        assert create_lead_source_service(None) is None
        service = create_lead_source_service(InMemoryCollectionClient())
        assert isinstance(service, LeadSourceService)
