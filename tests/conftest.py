"""Pytest configuration providing a fake activities API and shared fixtures."""

from __future__ import annotations

import time
from threading import Lock
from typing import Any, Callable, Iterable

import httpx
import pytest
import structlog

from cs_client_map import logging_conf
from cs_client_map.engine import Activity, PageFetcher, RetryPolicy, normalize

ACTIVITIES_URL = "https://cs.example.com/rest/v1/cloudsecure/activities"
API_KEY = "secret-key"


class FakeActivityApi:
    """In-process stand-in for the activities endpoint.

    Pages are served from ``records`` by offset/limit. Individual offsets can
    be made to answer with a status code or to fail at the transport level a
    number of times before succeeding. ``delay`` slows every successful page
    after the first.
    """

    def __init__(
        self,
        records: list[dict[str, Any]],
        count: int | None = None,
        status_by_offset: dict[int, int] | None = None,
        transport_failures: dict[int, int] | None = None,
        delay: float = 0.0,
    ) -> None:
        self.records = records
        self.count = len(records) if count is None else count
        self.status_by_offset = dict(status_by_offset or {})
        self.transport_failures = dict(transport_failures or {})
        self.delay = delay
        self.requests: list[httpx.Request] = []
        self._lock = Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        offset = int(request.url.params["offset"])
        limit = int(request.url.params.get("limit", 1000))
        with self._lock:
            self.requests.append(request)
            remaining = self.transport_failures.get(offset, 0)
            if remaining:
                self.transport_failures[offset] = remaining - 1
                raise httpx.ConnectError("connection refused", request=request)
        status = self.status_by_offset.get(offset)
        if status is not None:
            return httpx.Response(status, json={"errorMessage": "nope"})
        if self.delay and offset:
            time.sleep(self.delay)
        return httpx.Response(
            200,
            json={
                "count": self.count,
                "limit": limit,
                "offset": offset,
                "results": self.records[offset : offset + limit],
            },
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def offsets(self) -> list[int]:
        with self._lock:
            return [int(request.url.params["offset"]) for request in self.requests]


def build_records(total: int) -> list[dict[str, Any]]:
    return [
        {
            "accessLocation": f"10.0.0.{index % 7}",
            "entityPath": f"/share{index % 5}/dir{index % 3}/file{index}.txt",
            "user": {"name": f"user{index % 11}"},
        }
        for index in range(total)
    ]


def expected_keys(records: Iterable[dict[str, Any]], depth: int) -> frozenset[str]:
    return frozenset(normalize(Activity.model_validate(record), depth) for record in records)


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch: pytest.MonkeyPatch) -> Iterable[None]:
    monkeypatch.setattr(logging_conf, "_LOGGING_INITIALISED", False)
    yield
    structlog.reset_defaults()


@pytest.fixture
def fake_api() -> Callable[..., FakeActivityApi]:
    def _builder(records: list[dict[str, Any]] | None = None, **kwargs: Any) -> FakeActivityApi:
        return FakeActivityApi(records if records is not None else build_records(0), **kwargs)

    return _builder


@pytest.fixture
def make_fetcher() -> Iterable[Callable[..., PageFetcher]]:
    created: list[PageFetcher] = []

    def _builder(api: FakeActivityApi, max_attempts: int = 3) -> PageFetcher:
        fetcher = PageFetcher(
            ACTIVITIES_URL,
            API_KEY,
            retry_policy=RetryPolicy(max_attempts=max_attempts, base_delay=0.0),
            transport=api.transport(),
        )
        created.append(fetcher)
        return fetcher

    yield _builder
    for fetcher in created:
        fetcher.close()


@pytest.fixture
def records() -> Callable[[int], list[dict[str, Any]]]:
    return build_records


@pytest.fixture
def keys_for() -> Callable[[Iterable[dict[str, Any]], int], frozenset[str]]:
    return expected_keys
