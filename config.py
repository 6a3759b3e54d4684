"""Application configuration loaded from OFFICE_BEARERS_* environment variables."""

import os
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = os.path.dirname(os.path.abspath(__file__))


class Settings(BaseSettings):
    """Runtime settings for the office bearer import service."""

    model_config = SettingsConfigDict(env_prefix="OFFICE_BEARERS_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./office_bearers.db"
    database_echo: bool = False

    # Upload limits enforced before the file reaches the validator
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_extensions: List[str] = [".xlsx", ".xls"]

    cors_origins: List[str] = ["*"]

    log_dir: str = os.path.join(BASE_DIR, "logs")
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8000


@lru_cache
def get_settings() -> Settings:
    return Settings()
