"""Configuration management for ContextFlow."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CONTEXTFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Session
    owner_id: str = Field(
        default="local",
        description="User id that owns notes and insights created from the CLI",
    )

    # Ollama LLM
    ollama_host: str = Field(
        default="https://ollama.com",
        description="Ollama API host",
    )
    ollama_model: str = Field(
        default="gpt-oss:120b-cloud",
        description="Ollama model to use for insights, summaries and chat",
    )
    ollama_api_key: str = Field(
        default="",
        description="Ollama API key (default: from OLLAMA_API_KEY env var)",
    )
    ollama_require_api_key: bool = Field(
        default=True,
        description="Refuse to call the LLM without an API key (disable for a local server)",
    )

    # Remote extraction (docx, pdf, OCR)
    extraction_url: str = Field(
        default="http://localhost:3000/api/process-file",
        description="Endpoint of the remote text extraction service",
    )

    # External calls
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        le=300,
        description="Timeout in seconds for every external service call",
    )
    llm_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per LLM call before treating it as a transport failure",
    )

    # Insight generation
    insight_workers: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Concurrent insight generation requests",
    )
    insight_temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    insight_max_tokens: int = Field(default=200, ge=16, le=4096)

    # Chat and daily summary
    chat_temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    chat_max_tokens: int = Field(default=500, ge=16, le=8192)
    summary_max_tokens: int = Field(default=150, ge=16, le=4096)

    # Database
    database_path: Path = Field(
        default=Path("data/contextflow.db"),
        description="Path to SQLite database file",
    )

    @property
    def database_url(self) -> str:
        """SQLAlchemy database URL."""
        return f"sqlite:///{self.database_path}"

    @property
    def llm_configured(self) -> bool:
        """Whether the LLM credential requirement is satisfied."""
        return bool(self.ollama_api_key) or not self.ollama_require_api_key


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
