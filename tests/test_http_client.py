"""Tests for the shared JSON client's error mapping and 429 handling."""

import httpx
import pytest

from warroom.core import NetworkError
from warroom.providers.http import JSONClient

URL = "https://api.example.test/thing"


def make_client(handler, **kwargs) -> JSONClient:
    return JSONClient(transport=httpx.MockTransport(handler), **kwargs)


@pytest.fixture
def sleeps(monkeypatch):
    delays = []
    monkeypatch.setattr("warroom.providers.http.time.sleep", delays.append)
    return delays


def test_returns_decoded_json():
    client = make_client(lambda request: httpx.Response(200, json={"ok": True}))
    assert client._request(URL) == {"ok": True}
    client.close()


def test_http_status_is_not_retried(sleeps):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    client = make_client(handler)
    with pytest.raises(NetworkError) as exc_info:
        client._request(URL)

    assert exc_info.value.reason == "http"
    assert exc_info.value.status_code == 500
    assert len(calls) == 1
    assert sleeps == []


def test_bad_json_is_decode_error():
    client = make_client(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(NetworkError) as exc_info:
        client._request(URL)
    assert exc_info.value.reason == "decode"


def test_timeout():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    client = make_client(handler)
    with pytest.raises(NetworkError) as exc_info:
        client._request(URL)
    assert exc_info.value.reason == "timeout"


def test_transport_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = make_client(handler)
    with pytest.raises(NetworkError) as exc_info:
        client._request(URL)
    assert exc_info.value.reason == "transport"


def test_rate_limit_honors_retry_after(sleeps):
    responses = iter(
        [
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(200, json=[1, 2]),
        ]
    )
    client = make_client(lambda request: next(responses))

    assert client._request(URL) == [1, 2]
    assert sleeps == [2.0]


def test_persistent_rate_limit(sleeps):
    client = make_client(lambda request: httpx.Response(429), rate_limit_retries=2)

    with pytest.raises(NetworkError) as exc_info:
        client._request(URL)

    assert exc_info.value.reason == "rate_limited"
    # Exponential backoff without Retry-After
    assert sleeps == [5.0, 10.0]


def test_opt_in_retries(sleeps):
    responses = iter([httpx.Response(503), httpx.Response(200, json={"ok": 1})])
    client = make_client(lambda request: next(responses), retry_count=2)

    assert client._request(URL) == {"ok": 1}
    assert len(sleeps) == 1


def test_close_is_reusable():
    client = make_client(lambda request: httpx.Response(200, json={}))
    client._request(URL)
    client.close()
    client.close()
    # A fresh httpx client is created on next use
    assert client._request(URL) == {}
