"""Error taxonomy shared by the engine and the CLI."""

from __future__ import annotations


class ClientMapError(RuntimeError):
    """Base error carrying a stable code and the process exit status."""

    exit_code = 1

    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail
        message = f"{code}:{detail}" if detail else code
        super().__init__(message)


class ConfigurationError(ClientMapError):
    """Missing or invalid settings, raised before any network activity."""

    exit_code = 1

    def __init__(self, detail: str) -> None:
        super().__init__("CONFIGURATION_ERROR", detail)


class AuthenticationError(ClientMapError):
    """The API rejected the credentials; fatal for the whole run."""

    exit_code = 2

    def __init__(self, detail: str | None = None) -> None:
        super().__init__("AUTHENTICATION_FAILED", detail)


class PageFetchError(ClientMapError):
    """A single page could not be fetched or decoded."""

    exit_code = 3

    def __init__(self, offset: int, detail: str | None = None) -> None:
        self.offset = offset
        super().__init__("PAGE_FETCH_FAILED", f"offset={offset} {detail}" if detail else f"offset={offset}")


class RunCancelled(ClientMapError):
    """Raised inside a worker once another worker hit a fatal error."""

    exit_code = 3

    def __init__(self, detail: str | None = None) -> None:
        super().__init__("RUN_CANCELLED", detail)


__all__ = [
    "AuthenticationError",
    "ClientMapError",
    "ConfigurationError",
    "PageFetchError",
    "RunCancelled",
]
