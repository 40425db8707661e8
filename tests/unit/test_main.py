"""Tests for the FastAPI application factory module."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from evote_api.core.config import Settings
from evote_api.main import create_app, lifespan


def _settings(**overrides) -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key="test-secret-key-not-for-production",
        **overrides,
    )


class TestCreateApp:
    """Tests for create_app."""

    @pytest.fixture
    def app(self):
        with patch("evote_api.main.get_settings", return_value=_settings(cors_origins="https://vote.example.org")):
            return create_app()

    def test_app_is_created(self, app) -> None:
        assert app.title == "eVote API"

    def test_routes_are_mounted_under_prefix(self, app) -> None:
        paths = {route.path for route in app.routes}
        assert "/api/v1/voters/register" in paths
        assert "/api/v1/votes" in paths
        assert "/api/v1/changes" in paths

    def test_security_headers(self, app) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"

    def test_cors_allows_configured_origin_only(self, app) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        allowed = client.get("/api/v1/health", headers={"Origin": "https://vote.example.org"})
        assert allowed.headers["access-control-allow-origin"] == "https://vote.example.org"
        denied = client.get("/api/v1/health", headers={"Origin": "https://evil.example.com"})
        assert "access-control-allow-origin" not in denied.headers

    def test_value_error_handler_registered(self, app) -> None:
        assert app.exception_handlers.get(ValueError) is not None


class TestAppLifespan:
    """Tests for lifespan management."""

    async def test_lifespan_init_and_dispose(self) -> None:
        with (
            patch("evote_api.main.get_settings", return_value=_settings()),
            patch("evote_api.main.setup_logging") as mock_setup_logging,
            patch("evote_api.main.init_engine") as mock_init_engine,
            patch("evote_api.main.dispose_engine", new_callable=AsyncMock) as mock_dispose,
        ):
            async with lifespan(MagicMock()):
                mock_setup_logging.assert_called_once()
                mock_init_engine.assert_called_once()

            mock_dispose.assert_awaited_once()

    async def test_lifespan_starts_and_cancels_status_loop(self) -> None:
        loop = AsyncMock()
        with (
            patch("evote_api.main.get_settings", return_value=_settings(election_status_refresh_enabled=True)),
            patch("evote_api.main.setup_logging"),
            patch("evote_api.main.init_engine"),
            patch("evote_api.main.dispose_engine", new_callable=AsyncMock),
            patch("evote_api.services.election_service.election_status_loop", loop),
        ):
            async with lifespan(MagicMock()):
                pass

        loop.assert_called_once()
