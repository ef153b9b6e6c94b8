"""
Configuration management using Pydantic Settings.

All configuration is loaded from environment variables with sensible defaults.
Use a .env file for local development.

Environment Variables:
    QDRANT_URL: Base URL of the Qdrant vector store
    QDRANT_API_KEY: Qdrant API key (optional)
    EMBEDDING_MODEL: Multilingual sentence transformer model for embeddings
    USE_LOCAL_EMBEDDINGS: Load the model in-process instead of calling an API
    CHUNK_SIZE: Window size in words for document chunks
    CHUNK_OVERLAP: Overlap in words between consecutive chunks
    LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Vector Store
    # ==========================================================================
    qdrant_url: str = Field(
        default="http://localhost:6333",
        description="Base URL of the Qdrant HTTP API",
    )
    qdrant_api_key: Optional[SecretStr] = Field(
        default=None,
        description="Qdrant API key (optional)",
    )

    # ==========================================================================
    # Embedding Model
    # ==========================================================================
    embedding_model: str = Field(
        default="sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2",
        description="Multilingual sentence transformer model for chunks and queries",
    )
    embedding_dimension: int = Field(
        default=384,
        description="Dimension of embedding vectors (must match model and collections)",
    )
    use_local_embeddings: bool = Field(
        default=True,
        description="Load the model in-process instead of calling a feature-extraction API",
    )
    embedding_api_url: str = Field(
        default="https://api-inference.huggingface.co/pipeline/feature-extraction",
        description="Feature-extraction endpoint used when use_local_embeddings is false",
    )
    hf_api_key: Optional[SecretStr] = Field(
        default=None,
        description="API key for the remote feature-extraction endpoint",
    )
    embedding_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for a single embedding call",
    )

    # ==========================================================================
    # Chunking Configuration
    # ==========================================================================
    chunk_size: int = Field(
        default=500,
        ge=50,
        le=2000,
        description="Window size in words for document chunks",
    )
    chunk_overlap: int = Field(
        default=50,
        ge=0,
        le=1999,
        description="Overlap in words between consecutive chunks",
    )

    # ==========================================================================
    # Ingestion Configuration
    # ==========================================================================
    upsert_batch_size: int = Field(
        default=10,
        ge=1,
        le=256,
        description="Points sent per upsert request",
    )
    batch_delay_seconds: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause between upsert batches",
    )
    scroll_limit: int = Field(
        default=1000,
        ge=1,
        le=10000,
        description="Hard cap for points enumerated when counting a document's chunks",
    )

    # Timeouts (seconds) per request kind
    collection_get_timeout: float = Field(default=10.0, gt=0)
    collection_create_timeout: float = Field(default=15.0, gt=0)
    upsert_timeout: float = Field(default=60.0, gt=0)
    search_timeout: float = Field(default=30.0, gt=0)
    delete_timeout: float = Field(default=30.0, gt=0)
    scroll_timeout: float = Field(default=30.0, gt=0)
    health_timeout: float = Field(default=5.0, gt=0)

    # Pre-insertion health gate: linear backoff 1s, 2s, 3s, 4s
    health_gate_attempts: int = Field(default=5, ge=1, le=20)
    health_gate_backoff_seconds: float = Field(default=1.0, ge=0.0)

    # Read-after-delete consistency window
    delete_settle_seconds: float = Field(default=2.0, ge=0.0)
    delete_check_attempts: int = Field(default=3, ge=1, le=20)
    delete_check_interval_seconds: float = Field(default=1.0, ge=0.0)

    # ==========================================================================
    # Retrieval Configuration
    # ==========================================================================
    search_default_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Number of chunks returned when the caller gives no limit",
    )
    search_max_limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Upper bound for the number of chunks per search",
    )
    page_boost_factor: float = Field(
        default=1.3,
        ge=1.0,
        le=3.0,
        description="Score multiplier for chunks whose page type matches the query intent",
    )

    # ==========================================================================
    # API Configuration
    # ==========================================================================
    api_host: str = Field(
        default="0.0.0.0",
        description="Host to bind API server",
    )
    api_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for API server",
    )

    # ==========================================================================
    # Observability Configuration
    # ==========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # ==========================================================================
    # Validators
    # ==========================================================================
    @field_validator("chunk_overlap")
    @classmethod
    def validate_chunk_overlap(cls, v: int, info) -> int:
        """Ensure overlap is less than chunk size."""
        chunk_size = info.data.get("chunk_size", 500)
        if v >= chunk_size:
            raise ValueError(f"chunk_overlap ({v}) must be less than chunk_size ({chunk_size})")
        return v

    @field_validator("qdrant_url", "embedding_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Store base URLs without a trailing slash."""
        return v.rstrip("/")

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @property
    def qdrant_api_key_value(self) -> Optional[str]:
        """Get the actual Qdrant API key value (use sparingly)."""
        if self.qdrant_api_key:
            return self.qdrant_api_key.get_secret_value()
        return None

    @property
    def hf_api_key_value(self) -> Optional[str]:
        """Get the actual feature-extraction API key value (use sparingly)."""
        if self.hf_api_key:
            return self.hf_api_key.get_secret_value()
        return None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    Call `get_settings.cache_clear()` to reload settings.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


# Convenience alias
settings = get_settings()
