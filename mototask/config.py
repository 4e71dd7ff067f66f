"""
Configuration loaded from environment variables or a YAML file.

Environment variables use the `MOTOTASK_` prefix with `__` between nested
sections, e.g. `MOTOTASK_EXPORT__MAX_CONCURRENT_FETCHES=4`.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreConfig(BaseModel):
    backend: Literal["memory", "sqlite"] = "memory"
    sqlite_path: str = "./data/mototask.db"


class BlobConfig(BaseModel):
    backend: Literal["memory", "local"] = "memory"
    root: str = "./data/blobs"
    base_url: str = "http://localhost:8080/blobs"
    request_timeout_seconds: int = 30
    verify_tls: bool = True


class ExportConfig(BaseModel):
    max_concurrent_fetches: int = Field(default=8, ge=1)
    task_spreadsheet_name: str = "task_data.xlsx"
    all_tasks_spreadsheet_name: str = "tasks_data.xlsx"


class ReportConfig(BaseModel):
    week_starts_on: Literal["sunday", "monday"] = "sunday"


class LinkConfig(BaseModel):
    public_base_url: str = "http://localhost:3000"


class LoggingConfig(BaseModel):
    level: str = "info"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    """MotoTask core configuration."""

    model_config = SettingsConfigDict(
        env_prefix="MOTOTASK_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    store: StoreConfig = Field(default_factory=StoreConfig)
    blobs: BlobConfig = Field(default_factory=BlobConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    reports: ReportConfig = Field(default_factory=ReportConfig)
    links: LinkConfig = Field(default_factory=LinkConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(path: str | Path) -> Settings:
    """Load settings from a YAML file. Environment variables fill unset keys."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    return Settings(**raw)


@lru_cache
def get_settings() -> Settings:
    return Settings()
