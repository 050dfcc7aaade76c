"""Configuration package exports."""

from .loader import (
    API_KEY_ENV,
    DEFAULT_CONFIG_PATH,
    ENDPOINT_ENV,
    load_config_file,
    resolve_settings,
)
from .models import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PAGE_LIMIT,
    DEFAULT_PATH_DEPTH,
    DEFAULT_WORKERS,
    FileConfig,
    RunSettings,
)

__all__ = [
    "API_KEY_ENV",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_PAGE_LIMIT",
    "DEFAULT_PATH_DEPTH",
    "DEFAULT_WORKERS",
    "ENDPOINT_ENV",
    "FileConfig",
    "RunSettings",
    "load_config_file",
    "resolve_settings",
]
