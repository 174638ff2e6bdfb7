"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"
DEFAULT_SIGNING_SECRET = "dev-signing-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: Optional[str] = None
    postgres_user: str = "sentinel"
    postgres_password: str = "sentinel_dev_password"
    postgres_db: str = "sentinel"
    postgres_port: int = 5432

    # Redis (rate limiting + Celery broker)
    redis_url: str = "redis://localhost:6379/0"

    # API
    api_port: int = 8000
    secret_key: str = DEFAULT_SECRET_KEY
    environment: str = "development"
    api_host: str = "0.0.0.0"

    # Logging
    log_level: str = "INFO"

    # Evidence signing
    signing_key_provider: str = "local_hmac"  # local_hmac, local_rsa, aws_kms
    signing_secret: str = DEFAULT_SIGNING_SECRET
    signing_key_path: str = "./secrets/sentinel_signing_key.pem"
    signing_key_id: Optional[str] = None  # KMS HMAC key id / local key label

    # AWS (for KMS)
    aws_region: Optional[str] = None

    # Sequence allocation
    sequence_max_attempts: int = 5
    sequence_retry_backoff_ms: int = 25

    # Public status OTP
    otp_length: int = 6
    otp_ttl_minutes: int = 10
    otp_max_attempts: int = 5
    access_token_ttl_hours: int = 24

    # Chain defaults
    challan_due_days: int = 30
    hearing_default_days: int = 30
    legal_sound_limit_dba: float = 85.0
    duplicate_reading_window_minutes: int = 5

    # Rate Limiting (public status endpoints)
    rate_limit_enabled: bool = True
    rate_limit_requests_per_minute: int = 20
    rate_limit_ttl_seconds: int = 600

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    @property
    def database_url_computed(self) -> str:
        """Compute database URL if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@localhost:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment.lower() == "development"

    def validate_production_settings(self):
        """Validate settings for production environment."""
        env = self.environment.lower()
        if env not in ("development", "test", "dev"):
            if self.secret_key == DEFAULT_SECRET_KEY:
                raise ValueError(
                    "SECRET_KEY must be set in production. Do not use the development default."
                )
            if self.signing_key_provider.startswith("local") and self.signing_secret == DEFAULT_SIGNING_SECRET:
                raise ValueError(
                    "SIGNING_SECRET must be set when a local signing provider is used outside development."
                )
            if self.signing_key_provider == "local_hmac":
                raise ValueError(
                    "SIGNING_KEY_PROVIDER=local_hmac is not allowed in production. "
                    "Use SIGNING_KEY_PROVIDER=aws_kms or local_rsa."
                )
        if self.sequence_max_attempts < 1:
            raise ValueError("SEQUENCE_MAX_ATTEMPTS must be at least 1")
        if not 4 <= self.otp_length <= 10:
            raise ValueError("OTP_LENGTH must be between 4 and 10 digits")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
