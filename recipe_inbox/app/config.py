from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    APP_ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # shared secrets; empty means the endpoint group is locked
    FAMILY_PASSWORD: str = ""
    RECIPE_PASSWORD: str = ""
    ADMIN_TOKEN: str = ""

    ALLOWED_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:8080", "http://127.0.0.1:8080"],
    )

    INBOX_BACKEND: Literal["sql", "supabase"] = "sql"
    DATABASE_URL: str = "sqlite:///./recipes_inbox.db"
    SUPABASE_URL: Optional[str] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None

    @property
    def family_password(self) -> str:
        return self.FAMILY_PASSWORD or self.RECIPE_PASSWORD


@lru_cache
def get_settings() -> Settings:
    return Settings()
