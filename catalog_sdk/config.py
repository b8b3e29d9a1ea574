# catalog_sdk/config.py
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CATALOG_",
        case_sensitive=False,
        extra="ignore"
    )

    # Catalog service
    api_url: str = Field(default="http://127.0.0.1:8085")
    api_key: Optional[str] = None
    timeout: float = Field(default=10.0, gt=0)

    # Console
    log_level: str = "WARNING"


settings = Settings()


def get_settings() -> Settings:
    return settings
