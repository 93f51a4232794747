"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
A missing API key is not an error: the matching provider runs in mock mode.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LLMSettings(BaseSettings):
    """Chat completion service configuration.

    Any OpenAI-compatible endpoint works. Without an API key the
    completion provider runs in mock mode.
    """

    model_config = SettingsConfigDict(env_prefix="LLM_")

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Chat completion API base URL",
    )
    model: str = Field(
        default="gpt-4o",
        description="Model name to use for generation",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="API key (mock mode when absent)",
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Request timeout in seconds",
    )
    max_tokens: int = Field(
        default=4096,
        description="Maximum tokens in response",
    )
    temperature: float = Field(
        default=0.1,
        description="Sampling temperature (low for reproducible financial output)",
    )
    max_retries: int = Field(
        default=1,
        ge=0,
        le=1,
        description="Retries after a failed request",
    )

    @property
    def is_configured(self) -> bool:
        """Whether live credentials are present."""
        return self.api_key is not None and bool(self.api_key.get_secret_value())


class EmbeddingSettings(BaseSettings):
    """Embedding service configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Embedding service base URL",
    )
    model: str = Field(
        default="text-embedding-3-small",
        description="Embedding model name",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="API key (mock mode when absent)",
    )
    dimensions: int = Field(
        default=1536,
        ge=1,
        description="Embedding vector width",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Request timeout in seconds",
    )
    max_retries: int = Field(
        default=1,
        ge=0,
        le=1,
        description="Retries after a failed request",
    )

    @property
    def is_configured(self) -> bool:
        """Whether live credentials are present."""
        return self.api_key is not None and bool(self.api_key.get_secret_value())


class VectorStoreSettings(BaseSettings):
    """File-backed vector store configuration."""

    model_config = SettingsConfigDict(env_prefix="VECTOR_STORE_")

    store_dir: Path = Field(
        default=Path("vector_store_data"),
        description="Directory holding the corpus files",
    )
    metadata_file: str = Field(
        default="metadata.json",
        description="File name of the record metadata array",
    )
    embeddings_file: str = Field(
        default="embeddings.json",
        description="File name of the embedding matrix",
    )

    @property
    def metadata_path(self) -> Path:
        return self.store_dir / self.metadata_file

    @property
    def embeddings_path(self) -> Path:
        return self.store_dir / self.embeddings_file


class RetrievalSettings(BaseSettings):
    """Retrieval pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix="RETRIEVAL_")

    top_k: int = Field(default=5, ge=1, description="Default matches per query")
    relevance_threshold: float = Field(
        default=0.35,
        description="Best match must score strictly above this to use context",
    )
    chat_context_chars: int = Field(
        default=6000,
        ge=0,
        description="Character budget for chat context",
    )
    report_context_chars: int = Field(
        default=5000,
        ge=0,
        description="Character budget for report context",
    )
    report_top_k: int = Field(
        default=3,
        ge=1,
        description="Matches retrieved for a report",
    )
    history_limit: int = Field(
        default=10,
        ge=0,
        description="Prior conversation turns forwarded to the model",
    )


class ReportSettings(BaseSettings):
    """Report synthesis configuration."""

    model_config = SettingsConfigDict(env_prefix="REPORT_")

    analyst: str = Field(
        default="Equity Research Team",
        description="Default analyst attribution",
    )
    analyst_email: str = Field(
        default="research@example.com",
        description="Default analyst contact",
    )
    target_period: str = Field(
        default="12-18M",
        description="Default price target horizon",
    )


class Settings(BaseSettings):
    """Main application settings.

    Aggregates all configuration sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application settings
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # API settings
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host",
    )
    api_port: int = Field(
        default=8000,
        description="API server port",
    )

    # Nested settings
    llm: LLMSettings = Field(default_factory=LLMSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    vector_store: VectorStoreSettings = Field(default_factory=VectorStoreSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    report: ReportSettings = Field(default_factory=ReportSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()
