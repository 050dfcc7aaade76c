from __future__ import annotations

from threading import Event

import httpx
import pytest

from cs_client_map.config import RunSettings
from cs_client_map.engine import PageFetcher, PageRequest, RetryPolicy
from cs_client_map.engine.fetcher import API_KEY_HEADER
from cs_client_map.errors import AuthenticationError, PageFetchError, RunCancelled


def test_fetcher_sends_window_paging_and_api_key(fake_api, make_fetcher, records) -> None:
    api = fake_api(records(3))
    fetcher = make_fetcher(api)

    page = fetcher.fetch(PageRequest(from_time=100, to_time=200, offset=0, limit=1000))

    assert page.count == 3
    assert [record.access_location for record in page.results] == ["10.0.0.0", "10.0.0.1", "10.0.0.2"]
    request = api.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/cloudsecure/activities"
    assert dict(request.url.params) == {"from": "100", "to": "200", "offset": "0", "limit": "1000"}
    assert request.headers[API_KEY_HEADER] == "secret-key"


def test_fetcher_retries_transport_errors(fake_api, make_fetcher, records) -> None:
    api = fake_api(records(2), transport_failures={0: 2})
    fetcher = make_fetcher(api, max_attempts=3)

    page = fetcher.fetch(PageRequest(0, 1, 0, 1000))

    assert len(page.results) == 2
    assert api.offsets == [0, 0, 0]


def test_fetcher_gives_up_after_max_attempts(fake_api, make_fetcher, records) -> None:
    api = fake_api(records(2), transport_failures={1000: 5})
    fetcher = make_fetcher(api, max_attempts=3)

    with pytest.raises(PageFetchError) as excinfo:
        fetcher.fetch(PageRequest(0, 1, 1000, 1000))

    assert excinfo.value.offset == 1000
    assert excinfo.value.exit_code == 3
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert len(api.requests) == 3


def test_fetcher_unauthorized_is_fatal_and_not_retried(fake_api, make_fetcher, records) -> None:
    api = fake_api(records(2), status_by_offset={0: 401})
    fetcher = make_fetcher(api)

    with pytest.raises(AuthenticationError) as excinfo:
        fetcher.fetch(PageRequest(0, 1, 0, 1000))

    assert excinfo.value.exit_code == 2
    assert len(api.requests) == 1


@pytest.mark.parametrize("status", [403, 404, 500, 503])
def test_fetcher_other_statuses_fail_the_page(fake_api, make_fetcher, records, status: int) -> None:
    api = fake_api(records(2), status_by_offset={0: status})
    fetcher = make_fetcher(api)

    with pytest.raises(PageFetchError, match=str(status)):
        fetcher.fetch(PageRequest(0, 1, 0, 1000))
    assert len(api.requests) == 1


@pytest.mark.parametrize(
    "body",
    [b"not json at all", b"[1, 2, 3]", b'{"results": []}', b'{"count": 1, "results": "oops"}'],
)
def test_fetcher_undecodable_body_fails_the_page(body: bytes) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=body))
    fetcher = PageFetcher("https://cs.example.com/a", "k", transport=transport)

    with pytest.raises(PageFetchError):
        fetcher.fetch(PageRequest(0, 1, 0, 1000))
    fetcher.close()


def test_fetcher_tolerates_null_fields_and_results() -> None:
    payloads = iter(
        [
            {"count": 0, "limit": 1000, "offset": 0, "results": None},
            {"count": 1, "results": [{"accessLocation": None, "entityPath": "/x/y"}]},
        ]
    )
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=next(payloads)))
    with PageFetcher("https://cs.example.com/a", "k", transport=transport) as fetcher:
        empty = fetcher.fetch(PageRequest(0, 1, 0, 1000))
        single = fetcher.fetch(PageRequest(0, 1, 0, 1000))

    assert empty.results == []
    assert single.results[0].access_location == ""
    assert single.results[0].entity_path == "/x/y"


def test_fetcher_stops_when_run_is_cancelled(fake_api, make_fetcher, records) -> None:
    api = fake_api(records(2))
    fetcher = make_fetcher(api)
    cancelled = Event()
    cancelled.set()

    with pytest.raises(RunCancelled):
        fetcher.fetch(PageRequest(0, 1, 0, 1000), cancel_event=cancelled)
    assert api.requests == []


def test_fetcher_from_settings_targets_endpoint() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"count": 0, "results": []})

    settings = RunSettings(
        api_endpoint="https://ps123.cs01.cloudinsights.netapp.com/",
        api_key="abc",
        from_time=1,
        to_time=2,
        max_attempts=5,
    )
    fetcher = PageFetcher.from_settings(settings, transport=httpx.MockTransport(handler))
    fetcher.fetch(PageRequest(1, 2, 0, settings.page_limit))
    fetcher.close()

    assert fetcher.retry_policy == RetryPolicy(max_attempts=5, base_delay=0.5)
    assert str(seen[0].url).startswith(
        "https://ps123.cs01.cloudinsights.netapp.com/rest/v1/cloudsecure/activities?"
    )
    assert seen[0].headers[API_KEY_HEADER] == "abc"
