from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Any, Optional


class Settings(BaseSettings):
    PROJECT_NAME: str = "Repository Factory"
    VERSION: str = "0.1.0"

    # Database
    DATABASE_URL: str = "sqlite:///./data/repository_factory.db"
    ASYNC_DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)
    SQL_ECHO: bool = False
    POOL_PRE_PING: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @field_validator("ASYNC_DATABASE_URL", mode="before")
    @classmethod
    def assemble_async_url(cls, v: Optional[str], info) -> Any:
        if isinstance(v, str) and v:
            return v
        data = info.data if hasattr(info, "data") else {}
        return to_async_url(data.get("DATABASE_URL") or "")

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().upper()
        return v

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


# Sync driver prefix -> async driver prefix
ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
    "postgresql+psycopg2": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
}


def to_async_url(url: str) -> str:
    """
    Derive the async driver URL from a sync one.
    URLs that already name an async driver (or an unknown one) are returned as-is.
    """
    scheme, sep, rest = url.partition("://")
    if not sep:
        return url
    async_scheme = ASYNC_DRIVERS.get(scheme)
    if async_scheme is None:
        return url
    return f"{async_scheme}://{rest}"


settings = Settings()


def get_settings() -> Settings:
    return settings
