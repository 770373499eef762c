"""Application configuration via environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class AppSettings(BaseSettings):
    model_config = {"env_prefix": "XIDACH_"}

    api_title: str = "Xì Dách Score API"
    database_url: str = "sqlite:///./xidach.db"
    log_dir: str | None = None
    log_level: str = "INFO"


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
