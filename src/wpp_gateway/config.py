"""Centralized application configuration via environment variables."""

from enum import StrEnum
from functools import lru_cache

from pydantic import SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class StorageBackend(StrEnum):
    POSTGRES = "postgres"
    MEMORY = "memory"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every credential (provider secret, partner proxy secret, bootstrap
    admin key) uses SecretStr to prevent accidental logging.
    Database URL is assembled from individual components to match
    the official PostgreSQL Docker image environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App ---
    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "DEBUG"
    # --- CORS ---
    cors_allowed_origins: list[str] = []
    cors_allow_credentials: bool = False
    cors_allowed_methods: list[str] = ["GET", "POST", "DELETE"]
    cors_allowed_headers: list[str] = ["Content-Type", "X-Api-Key"]

    # --- Storage ---
    # "memory" keeps all state in-process; single instance, dev/testing only.
    storage_backend: StorageBackend = StorageBackend.POSTGRES

    # --- PostgreSQL ---
    postgres_user: str = "wpp_gateway"
    postgres_password: SecretStr = SecretStr("secret")
    postgres_db: str = "wpp_gateway"
    postgres_host: str = "localhost"
    postgres_port: int = 5432

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Assemble database URL from components.

        Uses psycopg v3 driver which supports both sync (create_engine)
        and async (create_async_engine) modes natively.
        """
        password = self.postgres_password.get_secret_value()
        return (
            f"postgresql+psycopg://{self.postgres_user}:{password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # --- WhatsApp provider (WPPConnect) ---
    provider_base_url: str = "http://localhost:21465"
    provider_secret_key: SecretStr = SecretStr("THISISMYSECURETOKEN")
    provider_timeout_seconds: float = 30.0

    # --- Credential schemes ---
    api_key_header: str = "X-Api-Key"
    # Partner proxy scheme is disabled while no secret is configured.
    partner_proxy_secret: SecretStr | None = None
    partner_secret_header: str = "X-RapidAPI-Proxy-Secret"
    partner_user_header: str = "X-RapidAPI-User"
    # Ensures an ADMIN account for this key exists at startup.
    bootstrap_admin_key: SecretStr | None = None

    # --- Quotas ---
    # Anti-abuse ceiling per session, kept under the provider's throttling.
    session_daily_limit: int = 450
    quota_timezone: str = "UTC"

    # --- Convenience properties ---
    @property
    def is_dev(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton.

    Usage::

        from wpp_gateway.config import get_settings
        settings = get_settings()

    Or for dependency injection in FastAPI::

        @app.get("/")
        def root(settings: Settings = Depends(get_settings)):
            ...
    """
    return Settings()


settings = get_settings()
