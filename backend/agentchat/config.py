"""
Configuration settings for AgentChat.

Loads environment variables from .env file and provides typed configuration.
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )

    # Security Configuration
    SECRET_KEY: str = Field(
        default="3c1f6b0e9d2a4b7f8e5c0a1d9b6e3f2a7c4d1e8b5a2f9c6e3d0b7a4f1c8e5d2b",
        description="Secret key for JWT",
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=60 * 24, description="Access token expiration time in minutes"
    )

    # Database Configuration
    DATABASE_URL: str = Field(
        default="sqlite:///./data/agentchat.db", description="SQLAlchemy database URL"
    )
    DATABASE_ECHO: bool = Field(
        default=False, description="Echo SQL queries (for debugging)"
    )

    # Response generator
    RESPONSE_GENERATOR: str = Field(
        default="mock", description="Response generator backend: 'mock' or 'ollama'"
    )
    MOCK_MIN_DELAY: float = Field(
        default=1.0, description="Minimum simulated latency of the mock generator (s)"
    )
    MOCK_MAX_DELAY: float = Field(
        default=3.0, description="Maximum simulated latency of the mock generator (s)"
    )
    GENERATOR_TIMEOUT: Optional[float] = Field(
        default=60.0,
        description="Seconds to wait for a reply before falling back (0 or unset disables)",
    )

    # LLM Configuration (Ollama)
    OLLAMA_HOST: str = Field(
        default="http://localhost:11434", description="Ollama server URL"
    )
    OLLAMA_TIMEOUT: int = Field(
        default=120, description="Ollama request timeout in seconds"
    )
    TEXT_MODEL: str = Field(
        default="llama3.1:8b", description="Ollama chat model"
    )
    SYSTEM_PROMPT: str = Field(
        default="You are a helpful AI assistant.",
        description="System prompt prepended to the conversation history",
    )

    # Chat limits
    MAX_MESSAGE_LENGTH: int = Field(
        default=10000, description="Maximum length of a user message"
    )
    MAX_TITLE_LENGTH: int = Field(
        default=200, description="Maximum length of a conversation title"
    )
    DEFAULT_PAGE_SIZE: int = Field(default=20, description="Default page size")
    MAX_PAGE_SIZE: int = Field(default=100, description="Maximum page size")

    # Logging Configuration
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )


# Global settings instance
settings = Settings()
