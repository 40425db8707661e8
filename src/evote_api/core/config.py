"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
Biometric and matching thresholds are tuning knobs, not constants: the defaults
reproduce the reference behaviour and must be calibrated against labelled data
before production use.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="Async SQLAlchemy connection string (postgresql+asyncpg://...)",
    )

    # JWT
    jwt_secret_key: str = Field(min_length=32, description="Secret key for signing JWTs (minimum 32 characters)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_access_token_expire_minutes: int = Field(
        default=30,
        description="Access token expiration in minutes",
        gt=0,
    )

    # Biometrics
    face_match_threshold: float = Field(
        default=10.0,
        description="Euclidean embedding distance below which two faces are considered a match",
        gt=0,
    )
    face_confidence_scale: float = Field(
        default=20.0,
        description="Distance at which the linear confidence heuristic reaches zero",
        gt=0,
    )
    liveness_min_frames: int = Field(
        default=3,
        description="Minimum number of captured frames accepted by the liveness gate",
        ge=2,
    )

    # DeepFace embedding service
    deepface_url: str = Field(
        default="http://localhost:5000",
        description="Base URL of the DeepFace HTTP microservice",
    )
    deepface_model: str = Field(default="Facenet", description="DeepFace model_name")
    deepface_detector: str = Field(default="opencv", description="DeepFace detector_backend")
    deepface_timeout: float = Field(
        default=15.0,
        description="Embedding extraction timeout in seconds",
        gt=0,
    )

    # Gemini document extraction
    gemini_api_key: str | None = Field(
        default=None,
        description="Google Gemini API key for ID document OCR",
    )
    gemini_model: str = Field(default="gemini-2.5-flash", description="Gemini model name")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST API base URL",
    )
    gemini_timeout: float = Field(
        default=30.0,
        description="Document extraction timeout in seconds",
        gt=0,
    )

    # Electoral roll matching
    roll_name_similarity_threshold: float = Field(
        default=0.8,
        description="Minimum normalized similarity for two names to be considered the same",
        gt=0,
        le=1,
    )
    roll_address_match_ratio: float = Field(
        default=0.66,
        description="Fraction of comparable address fields that must agree",
        gt=0,
        le=1,
    )

    # Registration
    minimum_voter_age: int = Field(
        default=18,
        description="Minimum age in years to register as a voter",
        ge=0,
    )

    # Fraud signals
    fraud_violation_threshold: int = Field(
        default=3,
        description="Session violations tolerated before further vote attempts are refused",
        ge=0,
    )

    # Election status refresh
    election_status_refresh_enabled: bool = Field(
        default=True,
        description="Enable background election status recomputation loop",
    )
    election_status_interval: int = Field(
        default=60,
        description="Seconds between election status recomputation cycles",
        ge=5,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            msg = f"log_level must be one of {sorted(allowed)}"
            raise ValueError(msg)
        return v.upper()

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
