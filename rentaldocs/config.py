from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RENTALDOCS_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./rentaldocs.db"

    # Branding assets: relative paths resolve against the API first, then the local data dir
    asset_base_url: Optional[str] = None
    data_dir: str = "./data"
    image_timeout_seconds: float = 10.0

    health_check_ttl_seconds: float = 2.0

    log_level: str = "INFO"
    log_file: Optional[str] = None

    default_currency: str = "AED"


@lru_cache
def get_settings() -> Settings:
    return Settings()
