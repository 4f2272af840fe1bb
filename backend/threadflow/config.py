from __future__ import annotations
"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """ThreadFlow application settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "ThreadFlow"
    DEBUG: bool = False

    # --- Database (MySQL 8.0+) ---
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "threadflow"
    # Full SQLAlchemy URL; overrides the DB_* fields when set
    DB_URL: str = ""
    AUTO_CREATE_TABLES: bool = False

    @property
    def DATABASE_URL(self) -> str:
        """Async connection string, asyncmy driver unless overridden."""
        if self.DB_URL:
            return self.DB_URL
        encoded_password = quote_plus(self.DB_PASSWORD)
        return (
            f"mysql+asyncmy://{self.DB_USER}:{encoded_password}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            "?charset=utf8mb4"
        )

    # --- CORS ---
    CORS_ORIGINS: str = "*"

    # --- Completion service (OpenAI-compatible) ---
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    SCRIPT_MODEL: str = "gpt-4o"
    SCRIPT_TEMPERATURE: float = 0.8
    LLM_TIMEOUT: int = 120

    # --- Generation workflow ---
    GENERATION_TIMEOUT: float = 90.0
    VIBES: str = "cinematic,minimalist,fast-paced"  # comma-separated
    DEFAULT_VIBE: str = "cinematic"
    # When set, the workflow calls the generate-script function over HTTP
    GATEWAY_URL: str = ""
    ACCOUNTING_SINK_SIZE: int = 200

    # --- Profiles ---
    DEFAULT_CREDITS: int = 3
    DEFAULT_TIER: str = "free"

    # --- Auth provider ---
    AUTH_URL: str = ""
    AUTH_API_KEY: str = ""
    AUTH_TIMEOUT: int = 10

    @property
    def vibe_list(self) -> list[str]:
        return [v.strip().lower() for v in self.VIBES.split(",") if v.strip()]

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()] or ["*"]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()
