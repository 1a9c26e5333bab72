"""
Configuration settings for MDM Submit.

Uses Pydantic Settings to load environment variables for the resource store
connection, logging, and the submission defaults (allow-listed MDM types,
page size, transaction scoping).
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PAGE_SIZE = 100


class TransactionMode(str, Enum):
    """How submit_all scopes the read transaction of its per-type calls."""

    PER_TYPE = "per_type"
    SHARED = "shared"


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("mdm", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(0, alias="DB_STATEMENT_TIMEOUT_MS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Submission
    mdm_types_raw: str = Field("Patient,Practitioner", alias="MDM_TYPES")
    mdm_submit_page_size: int = Field(DEFAULT_PAGE_SIZE, alias="MDM_SUBMIT_PAGE_SIZE", gt=0)
    mdm_transaction_mode: TransactionMode = Field(
        TransactionMode.PER_TYPE, alias="MDM_TRANSACTION_MODE"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("mdm_types_raw")
    @classmethod
    def _types_not_empty(cls, value: str) -> str:
        if not [part for part in value.split(",") if part.strip()]:
            raise ValueError("MDM_TYPES must name at least one resource type")
        return value

    @property
    def mdm_types(self) -> Tuple[str, ...]:
        """
        Allow-listed resource types, in configured order, without duplicates.
        """
        seen: list[str] = []
        for part in self.mdm_types_raw.split(","):
            name = part.strip()
            if name and name not in seen:
                seen.append(name)
        return tuple(seen)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["DEFAULT_PAGE_SIZE", "Settings", "TransactionMode", "get_settings"]
