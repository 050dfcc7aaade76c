"""Pydantic models used across the cs-client-map configuration flow."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_WORKERS = 10
DEFAULT_PATH_DEPTH = 1
# The activities endpoint caps ``limit`` at 1000.
DEFAULT_PAGE_LIMIT = 1000
DEFAULT_MAX_ATTEMPTS = 3


class FileConfig(BaseModel):
    """Credentials read from the YAML configuration file."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    cs_api_endpoint: str | None = Field(
        default=None,
        validation_alias=AliasChoices("cs_api_endpoint", "CS_API_ENDPOINT"),
    )
    cs_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("cs_api_key", "CS_API_KEY"),
        repr=False,
    )


class RunSettings(BaseModel):
    """Fully resolved parameters for one aggregation run."""

    model_config = ConfigDict(frozen=True)

    api_endpoint: str
    api_key: str = Field(repr=False)
    from_time: int
    to_time: int
    workers: int = Field(default=DEFAULT_WORKERS, ge=1)
    path_depth: int = Field(default=DEFAULT_PATH_DEPTH, ge=0)
    page_limit: int = Field(default=DEFAULT_PAGE_LIMIT, gt=0)
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    backoff_seconds: float = Field(default=0.5, ge=0)
    timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("api_endpoint", mode="before")
    @classmethod
    def _normalise_endpoint(cls, value: Any) -> str:
        text = str(value or "").strip()
        for scheme in ("https://", "http://"):
            if text.lower().startswith(scheme):
                text = text[len(scheme):]
        text = text.rstrip("/")
        if not text:
            raise ValueError("api_endpoint cannot be empty")
        try:
            url = httpx.URL(f"https://{text}")
        except httpx.InvalidURL as exc:
            raise ValueError(f"invalid api_endpoint {text!r}: {exc}") from exc
        if not url.host:
            raise ValueError(f"invalid api_endpoint {text!r}: no host")
        return text

    @field_validator("api_key", mode="before")
    @classmethod
    def _require_key(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("api_key cannot be empty")
        return text

    @model_validator(mode="after")
    def _validate_window(self) -> "RunSettings":
        if self.to_time <= self.from_time:
            raise ValueError("to_time must be greater than from_time")
        return self

    @property
    def activities_url(self) -> str:
        return f"https://{self.api_endpoint}/rest/v1/cloudsecure/activities"


__all__ = [
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_PAGE_LIMIT",
    "DEFAULT_PATH_DEPTH",
    "DEFAULT_WORKERS",
    "FileConfig",
    "RunSettings",
]
