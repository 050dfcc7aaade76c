"""Configuration loading helpers for cs-client-map.

Endpoint and API key are resolved with the precedence command line flag,
then environment variable, then configuration file. Everything else comes
from the command line or the model defaults.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import structlog
import yaml
from pydantic import ValidationError

from ..errors import ConfigurationError
from ..timeutils import today_midnight_ms, yesterday_midnight_ms
from .models import FileConfig, RunSettings

DEFAULT_CONFIG_PATH = Path("./config.yaml")
ENDPOINT_ENV = "CS_API_ENDPOINT"
API_KEY_ENV = "CS_API_KEY"

_FIELD_HINTS = {
    "api_endpoint": f"Missing api endpoint as argument (-e) or {ENDPOINT_ENV} env",
    "api_key": f"Missing api key as argument (-k) or {API_KEY_ENV} env",
}


def _read_file(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Cannot parse configuration file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {path}")
    return data


def load_config_file(path: Path | None, explicit: bool = False) -> FileConfig:
    """Read credentials from ``path``.

    A missing default file is fine; a missing file the user asked for is not.
    """

    logger = structlog.get_logger("cs_client_map.config")
    if path is None:
        return FileConfig()
    if not path.exists():
        if explicit:
            raise ConfigurationError(f"Configuration file not found: {path}")
        logger.debug("config_file_missing", path=str(path))
        return FileConfig()
    payload = _read_file(path)
    try:
        return FileConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration file {path}: {exc}") from exc


def _first_set(*values: str | None) -> str | None:
    for value in values:
        if value:
            return value
    return None


def _describe(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = error.get("loc") or ()
        field = str(location[0]) if location else ""
        hint = _FIELD_HINTS.get(field) if not error.get("input") else None
        messages.append(hint or f"{field or 'settings'}: {error.get('msg')}")
    return "; ".join(messages)


def resolve_settings(
    overrides: Mapping[str, Any],
    config_path: Path | None = DEFAULT_CONFIG_PATH,
    explicit_config: bool = False,
    environ: Mapping[str, str] | None = None,
) -> RunSettings:
    """Merge flags, environment and config file into validated settings."""

    env = os.environ if environ is None else environ
    file_config = load_config_file(config_path, explicit=explicit_config)
    payload = {key: value for key, value in overrides.items() if value is not None}
    payload["api_endpoint"] = _first_set(
        overrides.get("api_endpoint"), env.get(ENDPOINT_ENV), file_config.cs_api_endpoint
    )
    payload["api_key"] = _first_set(
        overrides.get("api_key"), env.get(API_KEY_ENV), file_config.cs_api_key
    )
    if not payload.get("from_time"):
        payload["from_time"] = yesterday_midnight_ms()
    if not payload.get("to_time"):
        payload["to_time"] = today_midnight_ms()
    try:
        return RunSettings.model_validate(payload)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc


__all__ = [
    "API_KEY_ENV",
    "DEFAULT_CONFIG_PATH",
    "ENDPOINT_ENV",
    "load_config_file",
    "resolve_settings",
]
