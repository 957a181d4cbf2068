"""Configuration settings for the developer tutor backend."""

import secrets
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    APP_NAME: str = "devtutor"
    APP_ENV: str = "development"
    DEBUG: bool = True

    # API
    API_V1_PREFIX: str = "/api/v1"

    # Security (token verification only, issuance lives in the auth service)
    SECRET_KEY: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        min_length=32,
        description="Secret key for JWT verification"
    )
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Database
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./devtutor.db")
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_AUTO_CREATE: bool = True
    STORE_TIMEOUT_SECONDS: float = 30.0

    # OpenAI-compatible completion service
    LLM_BASE_URL: str = "https://api.openai.com/v1"
    LLM_API_KEY: str = Field(default="", description="API key for the OpenAI-compatible backend")
    LLM_MODEL: str = "gpt-3.5-turbo"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 1200
    COMPLETION_TIMEOUT_SECONDS: float = 30.0

    # LangSmith tracing
    LANGSMITH_TRACING: bool = False
    LANGSMITH_API_KEY: str = Field(default="", description="LangSmith API key")
    LANGSMITH_ENDPOINT: str = "https://api.smith.langchain.com"
    LANGSMITH_PROJECT: str = "devtutor"

    # CORS - Accept comma-separated string from .env
    CORS_ORIGINS: str = "http://localhost:3000"
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_HEADERS: str = "*"

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert CORS_ORIGINS string to a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def cors_allow_headers_list(self) -> List[str]:
        """Convert CORS_ALLOW_HEADERS string to a list.

        Note: "*" is not valid for allow_headers when credentials are enabled.
        We return a list of common headers instead.
        """
        if self.CORS_ALLOW_HEADERS == "*":
            return [
                "accept",
                "accept-language",
                "content-language",
                "content-type",
                "authorization",
                "x-requested-with",
            ]
        return [header.strip() for header in self.CORS_ALLOW_HEADERS.split(",")]


def get_settings() -> Settings:
    """Get settings instance."""
    return settings


settings = Settings()
