"""Application configuration from environment."""
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Lessons in the fixed curriculum
DEFAULT_CURRICULUM_SIZE = 6


class Settings(BaseSettings):
    """App settings loaded from env / .env."""

    app_name: str = "CareSim Progress Engine"
    debug: bool = False
    log_level: str = "INFO"

    # Database (raw progress documents + issued certificates)
    database_url: str = "sqlite+aiosqlite:///./caresim_progress.db"

    curriculum_size: int = DEFAULT_CURRICULUM_SIZE

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @field_validator("curriculum_size")
    @classmethod
    def _curriculum_size_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("curriculum_size must be >= 1")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
