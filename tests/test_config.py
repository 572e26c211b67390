"""Unit tests for configuration, startup validation, the Supabase client,
the /health endpoint and logging setup.
"""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from onboardflow.core.errors import ConfigurationError


def _settings(**overrides: object):
    from onboardflow.core.config import Settings

    env = {
        "SUPABASE_URL": "https://test.supabase.co",
        "SUPABASE_KEY": "test-key",
    }
    with patch.dict("os.environ", env, clear=False):
        s = Settings()  # type: ignore[call-arg]
    for key, value in overrides.items():
        setattr(s, key, value)
    return s


class TestSettings:
    """Settings loading via pydantic-settings."""

    def test_settings_loads_required_fields(self) -> None:
        """Given env vars are set, settings loads without error."""
        env_overrides = {
            "SUPABASE_URL": "https://test.supabase.co",
            "SUPABASE_KEY": "test-key-123",
            "MAIL_RELAY_TOKEN": "relay-secret",
            "DOCUMENT_CONFIG_VERSION": "v1",
        }
        with patch.dict("os.environ", env_overrides, clear=False):
            from onboardflow.core.config import Settings

            s = Settings()  # type: ignore[call-arg]
            assert s.SUPABASE_KEY == "test-key-123"
            assert s.MAIL_RELAY_TOKEN == "relay-secret"
            assert s.DOCUMENT_CONFIG_VERSION == "v1"

    def test_settings_defaults(self) -> None:
        """Given minimal env vars, defaults are applied correctly."""
        with patch.dict(
            "os.environ",
            {"SUPABASE_URL": "https://test.supabase.co", "SUPABASE_KEY": "k"},
            clear=False,
        ):
            from onboardflow.core.config import Settings

            s = Settings()  # type: ignore[call-arg]
            assert s.STORAGE_BUCKET == "onboarding-documents"
            assert s.TICK_INTERVAL_MINUTES == 240
            assert s.REMINDER_RETRY_HOURS == 24.0
            assert s.ALLOWED_ORIGINS == "*"
            assert s.LOG_LEVEL == "INFO"


class TestValidateConfiguration:
    """Startup checks that stop the process on bad configuration."""

    def test_defaults_are_valid(self) -> None:
        from onboardflow.core.validation import validate_configuration

        validate_configuration(_settings())

    def test_unknown_document_version(self) -> None:
        from onboardflow.core.validation import validate_configuration

        with pytest.raises(ConfigurationError):
            validate_configuration(_settings(DOCUMENT_CONFIG_VERSION="v9"))

    def test_non_positive_interval(self) -> None:
        from onboardflow.core.validation import validate_configuration

        with pytest.raises(ConfigurationError, match="TICK_INTERVAL_MINUTES"):
            validate_configuration(_settings(TICK_INTERVAL_MINUTES=0))

    def test_non_positive_retry(self) -> None:
        from onboardflow.core.validation import validate_configuration

        with pytest.raises(ConfigurationError, match="REMINDER_RETRY_HOURS"):
            validate_configuration(_settings(REMINDER_RETRY_HOURS=-1))

    def test_document_without_keywords(self) -> None:
        from onboardflow.core.validation import validate_configuration

        broken = {"v2": {"aadhaar": {"display_name": "Aadhaar", "keywords": []}}}
        with patch.dict("onboardflow.core.constants.DOCUMENT_CONFIG_VERSIONS", broken):
            with pytest.raises(ConfigurationError, match="aadhaar"):
                validate_configuration(_settings())


class TestSupabaseClient:
    """Supabase singleton client."""

    def test_get_supabase_returns_client(self) -> None:
        """Given valid settings, get_supabase returns a Client."""
        mock_client = MagicMock()
        with patch("onboardflow.db.supabase.create_client", return_value=mock_client):
            import onboardflow.db.supabase as supa_mod

            supa_mod._client = None
            client = supa_mod.get_supabase()
            assert client is mock_client
            supa_mod._client = None

    def test_get_supabase_is_singleton(self) -> None:
        """Given multiple calls, get_supabase returns the same instance."""
        mock_client = MagicMock()
        with patch(
            "onboardflow.db.supabase.create_client", return_value=mock_client
        ) as mock_create:
            import onboardflow.db.supabase as supa_mod

            supa_mod._client = None
            first = supa_mod.get_supabase()
            second = supa_mod.get_supabase()
            assert first is second
            mock_create.assert_called_once()
            supa_mod._client = None


class TestHealthEndpoint:
    """GET /health reports database and scheduler state."""

    def test_health_connected(
        self, test_client: TestClient, mock_supabase_module: MagicMock
    ) -> None:
        """Given Supabase is reachable, /health returns database=connected."""
        response = test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["database"] == "connected"
        assert body["candidates_in_progress"] == 0

    def test_health_disconnected(
        self, test_client: TestClient, mock_supabase_disconnected: MagicMock
    ) -> None:
        """Given Supabase is unreachable, /health returns 503."""
        response = test_client.get("/health")
        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "degraded"
        assert body["database"] == "disconnected"


class TestLogging:
    """Structured logging configuration."""

    def test_setup_logging_configures_root_logger(self) -> None:
        """Given setup_logging is called, root logger has one handler."""
        import logging

        from onboardflow.core.logging import setup_logging

        setup_logging()
        setup_logging()
        root = logging.getLogger()
        assert len(root.handlers) == 1
        fmt = root.handlers[0].formatter._fmt
        assert "%(levelname)" in fmt
        assert "%(asctime)" in fmt
        assert "%(name)" in fmt
        assert logging.getLogger("apscheduler").level == logging.WARNING
