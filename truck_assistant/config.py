"""Configuration module for the Truck Repair Assistant API.

Every field can be overridden with an environment variable of the same
name (``env_prefix`` is empty), or from a ``.env`` file in the working
directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings
from sqlalchemy import URL

from truck_assistant import __version__

_PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"

PROVIDER_NAMES = ("azure-ai-foundry", "azure-openai", "github-models")
STORAGE_BACKENDS = ("postgres", "mongo", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Secrets (API keys, client secrets, database passwords) are only ever
    read from the environment.
    """

    model_config = {
        "env_prefix": "",
        "env_file": ".env",
        "extra": "ignore",
        "populate_by_name": True,
    }

    # -- API metadata -------------------------------------------------------
    app_name: str = "Truck Repair Assistant API"
    app_version: str = __version__
    debug_mode: bool = False
    cors_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # -- Azure OpenAI -------------------------------------------------------
    azure_openai_endpoint: Optional[str] = None
    azure_openai_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "azure_openai_key", "AZURE_OPENAI_KEY", "AZURE_OPENAI_API_KEY"
        ),
    )
    azure_openai_api_version: str = "2024-10-21"
    azure_openai_deployment: str = "gpt-4o"

    # -- Azure AI Foundry agent --------------------------------------------
    azure_projects_endpoint: Optional[str] = None
    azure_agent_id: Optional[str] = None
    azure_thread_id: Optional[str] = None
    azure_tenant_id: Optional[str] = None
    azure_client_id: Optional[str] = None
    azure_client_secret: Optional[str] = None
    foundry_poll_interval_seconds: float = 1.0

    # -- GitHub Models ------------------------------------------------------
    github_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "github_token", "NEXT_PUBLIC_GITHUB_TOKEN", "GITHUB_TOKEN"
        ),
    )
    github_models_endpoint: str = "https://models.inference.ai.azure.com"
    github_models_model: str = "gpt-4o"

    # -- provider selection -------------------------------------------------
    ai_primary_provider: str = Field(
        default="azure-ai-foundry",
        description="Provider tried first for diagnosis and chat",
    )
    ai_fallback_provider: str = Field(
        default="azure-openai",
        description="Provider tried once when the primary fails",
    )
    ai_fallback_enabled: bool = True
    ai_service_timeout_ms: int = Field(
        default=30_000,
        description="Upper bound for a single provider attempt",
    )
    ai_health_timeout_ms: int = Field(
        default=5_000,
        description="Upper bound for a single provider health probe",
    )

    # -- storage ------------------------------------------------------------
    storage_backend: Optional[str] = Field(
        default=None,
        description="'postgres', 'mongo' or 'local'; inferred when unset",
    )
    mongodb_uri: Optional[str] = None
    mongodb_db_name: str = "truck-repair-assistant"
    mongodb_timeout_ms: int = 5_000

    db_host: Optional[str] = None
    db_port: int = 5432
    db_name: str = "truck_repair_assistant"
    db_user: str = "postgres"
    db_password: str = ""
    db_pool_size: int = 20
    db_max_overflow: int = 0
    db_pool_timeout_seconds: float = 2.0
    db_pool_recycle_seconds: int = 30

    local_store_path: str = Field(
        default=".truck-repair-store.json",
        description="JSON file backing the local record store",
    )
    static_data_dir: Optional[str] = Field(
        default=None,
        description="Directory holding the static JSON/CSV datasets",
    )

    # -- external services --------------------------------------------------
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    geocode_delay_seconds: float = 1.0
    geocode_timeout_seconds: float = 10.0
    youtube_api_key: Optional[str] = None
    youtube_api_url: str = "https://www.googleapis.com/youtube/v3"

    # -- logging ------------------------------------------------------------
    log_level: str = "INFO"
    log_format: str = Field(
        default="console",
        description="Log output format: 'console' or 'json'",
    )

    @property
    def database_url(self) -> str:
        """Construct database connection URL.

        Returns:
            Database connection string for SQLAlchemy.
        """
        # URL.create escapes reserved characters in the credentials.
        return URL.create(
            "postgresql",
            username=self.db_user,
            password=self.db_password,
            host=self.db_host,
            port=self.db_port,
            database=self.db_name,
        ).render_as_string(hide_password=False)

    @property
    def data_dir(self) -> Path:
        if self.static_data_dir:
            return Path(self.static_data_dir)
        return _PACKAGE_DATA_DIR

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def resolved_storage_backend(self) -> str:
        """Pick the record store: explicit choice, then Postgres, Mongo, local."""
        if self.storage_backend:
            return self.storage_backend.lower()
        if self.db_host:
            return "postgres"
        if self.mongodb_uri:
            return "mongo"
        return "local"

    def configured_integrations(self) -> dict:
        """Map each optional non-AI integration to whether it is configured."""
        return {
            "mongodb": bool(self.mongodb_uri),
            "postgres": bool(self.db_host),
            "youtube": bool(self.youtube_api_key),
        }


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency returning the process-wide settings."""
    return settings
