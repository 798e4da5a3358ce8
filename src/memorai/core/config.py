"""Configuration management."""

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_data_dir() -> Path:
    return Path.home() / ".memorai" / "data"


class Settings(BaseSettings):
    """Process configuration, read once from ``MEMORAI_*`` env vars or ``.env``.

    The instance is frozen; components receive it through their constructors.
    """

    # Embedding / generation service (Ollama HTTP API)
    ollama_url: str = Field(default="http://localhost:11434", description="Base URL of the Ollama service")
    embed_model: str = Field(default="mxbai-embed-large", description="Model used for embeddings")
    chat_model: str = Field(default="qwen2.5:14b", description="Model used for profile generation")
    embedding_dimensions: int = Field(default=1024, gt=0, description="Vector length produced by embed_model")

    # Server
    host: str = "0.0.0.0"
    port: int = 8484

    # Storage
    data_dir: Path = Field(default_factory=_default_data_dir)
    storage_backend: Literal["sqlite", "neo4j"] = "sqlite"
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: SecretStr = SecretStr("password")

    # Timeouts and retries (per attempt / total attempts)
    embed_timeout: float = Field(default=30.0, gt=0)
    generate_timeout: float = Field(default=120.0, gt=0)
    max_retries: int = Field(default=3, ge=1, description="Total attempts for transient failures")
    retry_initial_delay: float = Field(default=0.5, ge=0)
    retry_backoff_factor: float = Field(default=2.0, ge=1)
    retry_max_delay: float = Field(default=8.0, ge=0)
    circuit_failure_threshold: int = Field(default=5, ge=1)
    circuit_recovery_timeout: float = Field(default=30.0, ge=0)

    # Input caps and limits
    max_embed_chars: int = Field(default=8_000, gt=0)
    max_prompt_chars: int = Field(default=24_000, gt=0)
    bulk_concurrency: int = Field(default=4, ge=1, description="Concurrent embedding calls during bulk import")
    search_default_limit: int = Field(default=10, ge=1)
    search_max_limit: int = Field(default=100, ge=1)
    list_default_per_page: int = Field(default=20, ge=1)
    list_max_per_page: int = Field(default=100, ge=1)
    profile_char_budget: int = Field(default=6_000, gt=0)
    profile_max_memories: int = Field(default=100, ge=1)

    # Observability / integrations
    logfire_token: SecretStr | None = None
    log_level: str = "INFO"
    enable_mcp: bool = True

    model_config = SettingsConfigDict(
        env_prefix="MEMORAI_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    @property
    def api_url(self) -> str:
        """URL the CLI uses to reach a locally running server."""
        host = "localhost" if self.host in ("0.0.0.0", "::") else self.host
        return f"http://{host}:{self.port}"

    @property
    def sqlite_path(self) -> Path:
        return self.data_dir / "memorai.sqlite3"


settings = Settings()
