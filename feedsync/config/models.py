"""Pydantic models describing feeds and global settings."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_FIELDS: dict[str, int] = {
    "alienvault.id": 7,
    "alienvault.reliability": 1,
    "alienvault.threat-level": 2,
    "alienvault.activity": 3,
}


class ScheduleType(str, Enum):
    """Supported refresh modes."""

    CRON = "cron"
    INTERVAL = "interval"


class ScheduleConfig(BaseModel):
    """When the periodic sync should fire."""

    type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    value: Any = Field(
        default=2 * 60 * 60,
        description="Cron expression or interval seconds / kwargs dict, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL:
            if isinstance(self.value, bool) or not isinstance(self.value, (int, float, dict)):
                raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
            if isinstance(self.value, (int, float)) and self.value <= 0:
                raise ValueError("Interval seconds must be > 0")
        return self


class FeedConfig(BaseModel):
    """Full definition of a reputation feed."""

    feed_name: str
    api_key: str | None = None
    api_key_env: str | None = None
    requires_key: bool = True
    revision_url: str = "https://reputation.alienvault.com/{key}/reputation.rev"
    data_url: str = "https://reputation.alienvault.com/{key}/reputation.data"
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    retry_delay: float = 5 * 60
    request_timeout: float = 30.0
    download_timeout: float = 300.0
    max_download_bytes: int | None = None
    delimiter: str = "#"
    min_fields: int = 8
    key_column: int = 0
    fields: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_FIELDS))
    storage_dir: Path | None = None

    @field_validator("delimiter")
    @classmethod
    def _single_char_delimiter(cls, value: str) -> str:
        if len(value) != 1:
            raise ValueError("delimiter must be a single character")
        return value

    @field_validator("fields")
    @classmethod
    def _non_negative_columns(cls, value: dict[str, int]) -> dict[str, int]:
        for name, column in value.items():
            if column < 0:
                raise ValueError(f"Column for field {name!r} must be >= 0")
        return value

    @field_validator("storage_dir", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)

    @model_validator(mode="after")
    def _validate_numbers(self) -> "FeedConfig":
        if not self.feed_name.strip():
            raise ValueError("feed_name cannot be empty")
        if self.retry_delay <= 0:
            raise ValueError("retry_delay must be > 0")
        if self.request_timeout <= 0 or self.download_timeout <= 0:
            raise ValueError("timeouts must be > 0")
        if self.min_fields < 1:
            raise ValueError("min_fields must be >= 1")
        if self.key_column < 0:
            raise ValueError("key_column must be >= 0")
        return self

    def resolved_key(self) -> str | None:
        """Return the credential, preferring the explicit value over the environment."""

        if self.api_key:
            return self.api_key
        if self.api_key_env:
            return os.environ.get(self.api_key_env) or None
        return None

    def resolved_storage_dir(self, base_dir: Path) -> Path:
        if self.storage_dir is None:
            return base_dir
        if not self.storage_dir.is_absolute():
            return (base_dir / self.storage_dir).resolve()
        return self.storage_dir


class GlobalConfig(BaseModel):
    """Settings shared across feeds."""

    user_agent: str = "feedsync/0.1"
    extra_headers: dict[str, str] = Field(default_factory=dict)

    def request_headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        headers.update(self.extra_headers)
        return headers


__all__ = [
    "DEFAULT_FIELDS",
    "FeedConfig",
    "GlobalConfig",
    "ScheduleConfig",
    "ScheduleType",
]
