#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings

from .constants import (
    API_BASE_URL,
    API_TIMEOUT_SECONDS,
    TRANSLATE_TIMEOUT_SECONDS,
    CHANNEL_TIMEOUT_SECONDS,
    DOWNLOAD_DIR,
    LOG_LEVEL,
    PREPARING_MESSAGE,
)


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== Server ==========
    api_base_url: str = API_BASE_URL
    request_timeout_seconds: float = API_TIMEOUT_SECONDS
    # None lets the start request wait for the server to finish
    translate_timeout_seconds: Optional[float] = TRANSLATE_TIMEOUT_SECONDS

    # ========== Progress channel ==========
    # Upper bound on the wait for a terminal push event per file.
    # 0 or a negative value disables the deadline.
    channel_timeout_seconds: float = CHANNEL_TIMEOUT_SECONDS
    preparing_message: str = PREPARING_MESSAGE

    # ========== Files ==========
    download_dir: Path = BASE_DIR / DOWNLOAD_DIR

    # ========== Logging ==========
    log_level: str = LOG_LEVEL

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    @property
    def channel_deadline(self) -> Optional[float]:
        """Channel timeout as used by the orchestrator (None = wait forever)."""
        if self.channel_timeout_seconds and self.channel_timeout_seconds > 0:
            return float(self.channel_timeout_seconds)
        return None

    def summary(self) -> dict:
        """Configuration summary for logging."""
        return {
            "api_base_url": self.api_base_url,
            "request_timeout_seconds": self.request_timeout_seconds,
            "translate_timeout_seconds": self.translate_timeout_seconds,
            "channel_timeout_seconds": self.channel_deadline,
            "download_dir": str(self.download_dir),
            "log_level": self.log_level,
        }


# Global settings instance
settings = Settings()
