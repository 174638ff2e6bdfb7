"""Worker settings - consistent with API settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Worker settings."""

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

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # Environment
    environment: str = "development"

    # Email (SendGrid)
    sendgrid_api_key: Optional[str] = None
    from_email: str = "no-reply@noisesentinel.local"
    from_name: str = "NoiseSentinel"

    # Integrity sweep
    integrity_sweep_batch_size: int = 500
    integrity_sweep_hour_utc: int = 2

    @property
    def database_url_computed(self) -> str:
        """Compute database URL if not explicitly set."""
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@localhost:{self.postgres_port}/{self.postgres_db}"
        )

    def validate_production_settings(self):
        """Validate settings for production environment."""
        env = self.environment.lower()
        if env not in ("development", "test", "dev"):
            if not self.sendgrid_api_key:
                raise ValueError("SENDGRID_API_KEY is required in production.")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
