import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from ``SWAPIN_*`` variables or ``.env``."""

    model_config = SettingsConfigDict(env_prefix="SWAPIN_", env_file=".env", extra="ignore")

    project_id: str = Field(
        default_factory=lambda: os.environ.get("GOOGLE_CLOUD_PROJECT") or "swapin-dev"
    )
    database: Optional[str] = None
    emulator_host: Optional[str] = None

    # "development" exposes exception messages in 500 responses.
    environment: str = "production"
    log_level: str = "INFO"

    rate_limit_per_minute: int = 60
    rate_limit_window_seconds: float = 60.0
    rate_limit_backend: str = "memory"  # memory | firestore

    min_item_price: float = 1000
    push_enabled: bool = True
    cors_origins: List[str] = ["*"]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
