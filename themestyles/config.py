"""Application settings for the theme stylesheet service."""

from __future__ import annotations

import json
from functools import cached_property
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration entrypoint for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Observability
    log_level: str = "INFO"

    # Theme layout
    theme_root: str = Field(
        default="theme",
        validation_alias=AliasChoices("THEME_ROOT", "STYLESHEET_DIRECTORY"),
    )
    theme_url: str = "/theme"
    source_subdir: str = "src/assets/sass"
    output_subdir: str = "css"
    entry_filename: str = "main.scss"
    output_filename: str = "main.css"
    import_subdirs: list[str] = ["bootstrap", "theme", "woocommerce"]

    # Compile once when the app starts (theme activation)
    compile_on_startup: bool = False

    # Database (SQLite only)
    database_url: str = Field(
        default="sqlite:///./data/themestyles.db",
        validation_alias=AliasChoices("DATABASE_URL"),
    )
    async_database_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ASYNC_DATABASE_URL"),
    )
    db_echo: bool = Field(
        default=False,
        validation_alias=AliasChoices("DB_ECHO", "SQL_ECHO"),
    )

    # Security
    secret_key: str = "dev-secret"
    nonce_lifetime_seconds: int = 60 * 60 * 24
    jwt_lifetime_seconds: int = 60 * 60
    auth_cookie_name: str = "themestyles-auth"
    admin_username: str = "admin@themestyles.dev"
    admin_password: str = "change-me"

    @field_validator("import_subdirs", mode="before")
    @classmethod
    def parse_import_subdirs(cls, value: str | list[str] | None) -> list[str]:
        """Normalize IMPORT_SUBDIRS env input into a list."""
        if isinstance(value, list):
            return value
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return []
            if raw.startswith("["):
                try:
                    parsed = json.loads(raw)
                    if isinstance(parsed, list):
                        return parsed
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in raw.split(",") if item.strip()]
        return []

    @property
    def is_production(self) -> bool:
        """Return True when running in production."""
        return self.environment == "production"

    @property
    def source_dir(self) -> Path:
        return Path(self.theme_root) / self.source_subdir

    @property
    def output_dir(self) -> Path:
        return Path(self.theme_root) / self.output_subdir

    @property
    def output_url(self) -> str:
        """Public URL of the compiled stylesheet."""
        base = self.theme_url.rstrip("/")
        return f"{base}/{self.output_subdir}/{self.output_filename}"

    @cached_property
    def resolved_database_url(self) -> str:
        """Return the primary sync SQLAlchemy URL."""
        return self.database_url

    @cached_property
    def resolved_async_database_url(self) -> str:
        """Return the async SQLAlchemy URL derived from the sync configuration."""
        if self.async_database_url:
            return self.async_database_url
        base_url = self.resolved_database_url
        if base_url.startswith("sqlite:///"):
            return base_url.replace("sqlite:///", "sqlite+aiosqlite:///")
        return base_url


settings = Settings()
