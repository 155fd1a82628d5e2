# slotbook/config.py

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite:///./slotbook.db")
    secret_key: str = Field(default="change-me-later")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=30)
    # services saved without a duration are treated as one hour
    default_service_minutes: int = Field(default=60, gt=0)
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_prefix="SLOTBOOK_", env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
