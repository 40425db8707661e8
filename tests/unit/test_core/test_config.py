"""Tests for application settings."""

import pytest
from pydantic import ValidationError

from evote_api.core.config import Settings

SECRET = "test-secret-key-not-for-production"


def _settings(**overrides: object) -> Settings:
    return Settings(database_url="sqlite+aiosqlite:///:memory:", jwt_secret_key=SECRET, **overrides)


class TestSettings:
    def test_defaults(self) -> None:
        settings = _settings()
        assert settings.face_match_threshold == 10.0
        assert settings.face_confidence_scale == 20.0
        assert settings.liveness_min_frames == 3
        assert settings.minimum_voter_age == 18
        assert settings.fraud_violation_threshold == 3
        assert settings.api_v1_prefix == "/api/v1"

    def test_short_secret_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(database_url="sqlite+aiosqlite:///:memory:", jwt_secret_key="short")

    def test_log_level_normalized(self) -> None:
        assert _settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            _settings(log_level="chatty")

    def test_threshold_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            _settings(face_match_threshold=0)

    def test_cors_origin_list(self) -> None:
        settings = _settings(cors_origins="https://a.example, https://b.example,")
        assert settings.cors_origin_list == ["https://a.example", "https://b.example"]

    def test_cors_empty_by_default(self) -> None:
        assert _settings().cors_origin_list == []

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///env.db")
        monkeypatch.setenv("JWT_SECRET_KEY", SECRET)
        monkeypatch.setenv("FACE_MATCH_THRESHOLD", "0.6")
        settings = Settings()  # type: ignore[call-arg]
        assert settings.database_url == "sqlite+aiosqlite:///env.db"
        assert settings.face_match_threshold == 0.6
