"""HTTP page fetching against the CloudSecure activities endpoint."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Event
from typing import Any

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..config import RunSettings
from ..errors import AuthenticationError, PageFetchError, RunCancelled
from ..logging_conf import component_logger
from .retry import RetryPolicy, wait

API_KEY_HEADER = "X-CloudInsights-ApiKey"


@dataclass(slots=True, frozen=True)
class PageRequest:
    """One (offset, limit) slice of the activity window."""

    from_time: int
    to_time: int
    offset: int
    limit: int

    def params(self) -> dict[str, int]:
        return {
            "from": self.from_time,
            "to": self.to_time,
            "offset": self.offset,
            "limit": self.limit,
        }


class Activity(BaseModel):
    """Raw activity record; only the fields the aggregation needs are kept."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    access_location: str = Field(default="", alias="accessLocation")
    entity_path: str = Field(default="", alias="entityPath")

    @field_validator("access_location", "entity_path", mode="before")
    @classmethod
    def _coerce_null(cls, value: Any) -> Any:
        return "" if value is None else value


class ActivityPage(BaseModel):
    """Decoded response body of the activities endpoint."""

    model_config = ConfigDict(extra="ignore")

    count: int
    limit: int = 0
    offset: int = 0
    results: list[Activity] = Field(default_factory=list)

    @field_validator("results", mode="before")
    @classmethod
    def _coerce_results(cls, value: Any) -> Any:
        return [] if value is None else value


class PageFetcher:
    """Issue page requests with bounded retry and classify failures.

    Transport errors (connection problems, timeouts) are retried with backoff.
    A 401 raises :class:`AuthenticationError`; any other non-2xx status or an
    undecodable body raises :class:`PageFetchError` without retrying.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        retry_policy: RetryPolicy | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.url = url
        self.retry_policy = retry_policy or RetryPolicy()
        self.logger = logger or component_logger("fetcher")
        self._client = httpx.Client(
            timeout=timeout,
            headers={API_KEY_HEADER: api_key},
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: RunSettings, transport: httpx.BaseTransport | None = None
    ) -> "PageFetcher":
        return cls(
            settings.activities_url,
            settings.api_key,
            retry_policy=RetryPolicy(
                max_attempts=settings.max_attempts, base_delay=settings.backoff_seconds
            ),
            timeout=settings.timeout_seconds,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "PageFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def fetch(self, request: PageRequest, cancel_event: Event | None = None) -> ActivityPage:
        context = self.retry_policy.new_context()
        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise RunCancelled(f"offset={request.offset}")
            try:
                response = self._client.get(self.url, params=request.params())
            except httpx.TransportError as exc:
                self.logger.warning(
                    "fetch_retry",
                    offset=request.offset,
                    attempt=context.attempt,
                    error=str(exc),
                )
                context.record_failure(exc)
                if not context.should_retry():
                    break
                if not wait(self.retry_policy.delay_for(context.attempt - 1), cancel_event):
                    raise RunCancelled(f"offset={request.offset}") from exc
                continue
            return self._decode(request, response)

        raise PageFetchError(
            request.offset,
            f"transport failure after {context.max_attempts} attempts: {context.last_exception}",
        ) from context.last_exception

    # ------------------------------------------------------------------
    def _decode(self, request: PageRequest, response: httpx.Response) -> ActivityPage:
        if response.status_code == httpx.codes.UNAUTHORIZED:
            self.logger.error("authentication_failed", offset=request.offset)
            raise AuthenticationError("please check API key and API endpoint")
        if not response.is_success:
            self.logger.error("page_rejected", offset=request.offset, status=response.status_code)
            raise PageFetchError(request.offset, f"unexpected status {response.status_code}")
        try:
            page = ActivityPage.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            self.logger.error("page_decode_failed", offset=request.offset, error=str(exc))
            raise PageFetchError(request.offset, "response body could not be decoded") from exc
        self.logger.debug(
            "page_fetched",
            offset=request.offset,
            records=len(page.results),
            count=page.count,
        )
        return page


__all__ = ["API_KEY_HEADER", "Activity", "ActivityPage", "PageFetcher", "PageRequest"]
