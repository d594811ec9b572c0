"""
Application Configuration
"""
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_prefix="FLOWCANVAS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_NAME: str = "Workflow Canvas"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Layout
    DEFAULT_LAYOUT_STRATEGY: str = "hybrid"
    DEFAULT_LAYOUT_DIRECTION: str = "vertical"
    BRANCH_OFFSET: float = 300.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOG_FILE: Optional[str] = None


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance
    Using lru_cache ensures settings are loaded once and reused
    """
    return Settings()
