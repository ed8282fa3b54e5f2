"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Study Buddy"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Database
    # If database_url_override is set (e.g., for Neon with SSL), it takes precedence
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "studybuddy"
    postgres_password: str = ""
    postgres_db: str = "studybuddy"

    def _postgres_url(self, driver: str) -> str:
        """Override (rewritten to `driver`, query dropped) or URL built from parts."""
        if not self.database_url_override:
            return (
                f"{driver}://{self.postgres_user}:{self.postgres_password}"
                f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
            )
        _, _, rest = self.database_url_override.partition("://")
        return f"{driver}://{rest.split('?', 1)[0]}"

    @computed_field
    @property
    def database_url(self) -> str:
        """Async URL for the application engine (asyncpg)."""
        return self._postgres_url("postgresql+asyncpg")

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Sync URL for Alembic (psycopg2)."""
        return self._postgres_url("postgresql")

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        """Hosted databases (Neon and similar) ask for SSL in the URL query."""
        query = (self.database_url_override or "").partition("?")[2]
        return "sslmode=require" in query or "ssl=require" in query

    # Auth / JWT
    # Tokens are minted by the external login service; we only verify them.
    jwt_secret_key: str  # Required - no default, must be set in .env
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7  # 7 days

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # AWS S3 (for study material PDFs)
    aws_access_key_id: str
    aws_secret_access_key: str
    aws_s3_bucket: str
    aws_s3_region: str = "ap-south-1"
    aws_s3_endpoint_url: str | None = None  # Set for MinIO/LocalStack (e.g. http://localhost:9000)

    # Anthropic API
    anthropic_api_key: str

    # LLM Configuration
    llm_model: str = "claude-sonnet-4-20250514"
    # Upper bound on a single generation call; there is no retry on expiry.
    llm_timeout_seconds: float = 120.0

    # Context limits (characters)
    material_context_max_chars: int = 10000

    # PDF upload
    max_pdf_size_bytes: int = 10 * 1024 * 1024  # 10MB


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception, *, generic_message: str = "An internal error occurred.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development":
        return str(error)
    return generic_message
