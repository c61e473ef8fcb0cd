# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json
import threading
import time

import httpx
import pytest
from helpers import envelope

from workerkit.config import HttpSettings
from workerkit.errors import ErrorCategory, TransmitError
from workerkit.http.adapters import StubHttpClient
from workerkit.http.envelope import check_transport, unwrap_result
from workerkit.http.headers import header_value, normalize_headers, parse_media_type
from workerkit.http.httpx_client import HttpxClient
from workerkit.http.models import HttpRequest, HttpResponse


def _client(handler, **settings_kwargs) -> HttpxClient:
    settings = HttpSettings(**settings_kwargs)
    return HttpxClient(settings, client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_httpx_client_sends_streaming_body_with_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["auth"] = request.headers.get("authorization")
        seen["agent"] = request.headers.get("user-agent")
        seen["encoding"] = request.headers.get("transfer-encoding")
        seen["body"] = request.content
        return httpx.Response(200, json={"success": True, "result": {"id": "w"}})

    client = _client(handler, api_token="tok", user_agent="tests/1.0")
    response = client.request(
        HttpRequest(url="https://api.test/upload", method="PUT", body=iter([b"chunk-1;", b"chunk-2"]))
    )

    assert response.ok is True
    assert response.status_code == 200
    assert response.json()["result"] == {"id": "w"}
    assert seen == {
        "method": "PUT",
        "auth": "Bearer tok",
        "agent": "tests/1.0",
        "encoding": "chunked",
        "body": b"chunk-1;chunk-2",
    }


def test_httpx_client_keeps_explicit_headers():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=request.headers["user-agent"])

    client = _client(handler, user_agent="default/1.0")
    response = client.request(HttpRequest(url="https://api.test/", headers={"User-Agent": "custom"}))
    assert response.text == "custom"


def test_httpx_client_truncates_large_responses():
    def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        return httpx.Response(200, content=b"x" * 100)

    client = _client(handler, max_response_bytes=10)
    response = client.request(HttpRequest(url="https://api.test/"))
    assert response.content == b"x" * 10
    assert response.meta["body_truncated"] is True


def test_httpx_client_reports_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    response = client.request(HttpRequest(url="https://api.test/"))
    assert response.ok is False
    assert response.status_code is None
    assert response.error_type == "ConnectError"
    assert response.error_category == ErrorCategory.CONNECTION_ERROR.value


def test_httpx_client_returns_promptly_when_cancelled():
    release = threading.Event()

    def handler(request: httpx.Request) -> httpx.Response:  # noqa: ARG001
        release.wait(5)
        return httpx.Response(200, json={"success": True, "result": {}})

    cancel = threading.Event()
    timer = threading.Timer(0.1, cancel.set)
    timer.start()
    client = _client(handler)
    started = time.monotonic()
    try:
        response = client.request(HttpRequest(url="https://api.test/upload", method="PUT", body=b"x", cancel=cancel))
    finally:
        release.set()
        timer.cancel()

    assert time.monotonic() - started < 1.0
    assert response.ok is False
    assert response.error_type == "UploadCancelled"


def test_httpx_client_skips_already_cancelled_request():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    cancel = threading.Event()
    cancel.set()
    response = _client(handler).request(HttpRequest(url="https://api.test/", cancel=cancel))
    assert response.ok is False
    assert response.error_type == "UploadCancelled"
    assert calls == []


def test_httpx_client_with_unset_cancel_completes_normally():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=request.content)

    response = _client(handler).request(
        HttpRequest(url="https://api.test/", method="PUT", body=iter([b"a", b"b"]), cancel=threading.Event())
    )
    assert response.ok is True
    assert response.content == b"ab"


def test_unwrap_result_returns_result():
    assert unwrap_result(envelope({"id": "w"})) == {"id": "w"}


def test_unwrap_result_api_failure():
    response = envelope(None, success=False, errors=[{"code": 10007, "message": "not found"}])
    with pytest.raises(TransmitError) as excinfo:
        unwrap_result(response)
    assert excinfo.value.errors == ["10007: not found"]


def test_unwrap_result_invalid_json():
    with pytest.raises(TransmitError) as excinfo:
        unwrap_result(HttpResponse(ok=True, status_code=200, content=b"<html>"))
    assert isinstance(excinfo.value.cause, ValueError)


def test_check_transport_http_status():
    body = json.dumps({"success": False, "errors": [{"code": 10013, "message": "too many"}]}).encode()
    with pytest.raises(TransmitError) as excinfo:
        check_transport(HttpResponse(ok=True, status_code=429, content=body))
    assert excinfo.value.status_code == 429
    assert excinfo.value.category == ErrorCategory.RATE_LIMITED
    assert "10013: too many" in str(excinfo.value)


def test_check_transport_network_failure():
    with pytest.raises(TransmitError) as excinfo:
        check_transport(HttpResponse(ok=False, error_message="timed out", error_category="TIMEOUT"))
    assert excinfo.value.category == ErrorCategory.TIMEOUT
    assert excinfo.value.status_code is None


def test_stub_client_drains_streaming_bodies_and_uses_factories():
    def echo(request: HttpRequest, body: bytes) -> HttpResponse:
        return HttpResponse(ok=True, status_code=201, content=body, url=request.url)

    client = StubHttpClient()
    client.add("https://api.test/echo", echo, method="post")
    response = client.request(HttpRequest(url="https://api.test/echo", method="POST", body=iter([b"a", b"b"])))

    assert response.status_code == 201
    assert response.content == b"ab"
    assert client.request_bodies == [b"ab"]

    missing = client.request(HttpRequest(url="https://api.test/missing"))
    assert missing.ok is False


def test_stub_client_reports_body_failures():
    def broken():
        yield b"partial"
        raise OSError("pipe broke")

    client = StubHttpClient({"https://api.test/": HttpResponse(ok=True, status_code=200)})
    response = client.request(HttpRequest(url="https://api.test/", method="PUT", body=broken()))
    assert response.ok is False
    assert response.error_type == "OSError"


def test_header_helpers():
    assert normalize_headers({"Content-Type": "text/plain", None: "x"}) == {"content-type": "text/plain"}
    assert header_value({"CONTENT-TYPE": " text/plain "}, "content-type") == "text/plain"
    assert header_value({}, "content-type", "fallback") == "fallback"
    assert parse_media_type('Multipart/Form-Data; boundary="abc"; charset=utf-8') == (
        "multipart/form-data",
        {"boundary": "abc", "charset": "utf-8"},
    )
