"""Application configuration module."""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from the environment and an optional .env file."""

    # Storage settings. "memory" starts with an empty question bank and is meant
    # for tests and development; a real question bank needs STORAGE_BACKEND=sql.
    STORAGE_BACKEND: str = "memory"
    DATABASE_URL: str = "sqlite+aiosqlite:///./smartassess.db"
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: str = ""

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "SmartAssess Evaluation Engine"
    ALLOW_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])

    # External answer scorer (OpenAI-compatible chat completions endpoint)
    SCORER_API_URL: str = "http://127.0.0.1:1234/v1/chat/completions"
    SCORER_MODEL: str = "oreal-deepseek-r1-distill-qwen-7b"
    SCORER_API_KEY: str = ""
    SCORER_TIMEOUT: float = 30.0
    SCORER_BATCH_DELAY: float = 0.5
    SCORER_MAX_CONCURRENT: int = 1
    SCORER_TEMPERATURE: float = 0.3
    SCORER_MAX_TOKENS: int = 500

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        """Only in-memory and SQL storage are supported"""
        if v.lower() not in ("memory", "sql"):
            raise ValueError(f"Invalid storage backend: {v}. Must be 'memory' or 'sql'")
        return v.lower()

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @field_validator("SCORER_TIMEOUT", "SCORER_BATCH_DELAY")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Scorer timings cannot be negative")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


settings = get_settings()
