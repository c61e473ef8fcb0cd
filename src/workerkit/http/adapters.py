# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process HttpClient implementations."""

from __future__ import annotations

from collections.abc import Callable

from ..errors import UploadCancelled
from .client import HttpClient
from .models import HttpRequest, HttpResponse

ResponseFactory = Callable[[HttpRequest, bytes], HttpResponse]


class StubHttpClient(HttpClient):
    """Deterministic, programmable HttpClient for tests.

    Responses are keyed by ``(method, url)`` or by ``url`` alone. Streaming
    bodies are drained like a real transport would and kept in
    ``request_bodies`` alongside ``requests``.
    """

    def __init__(self, responses: dict[object, HttpResponse | ResponseFactory] | None = None):
        self._responses = responses or {}
        self.requests: list[HttpRequest] = []
        self.request_bodies: list[bytes] = []
        self.closed = False

    def add(self, url: str, response: HttpResponse | ResponseFactory, *, method: str | None = None) -> None:
        self._responses[(method.upper(), url) if method else url] = response

    def _drain(self, request: HttpRequest) -> bytes:
        body = request.body
        if body is None:
            return b""
        if isinstance(body, str):
            return body.encode("utf-8")
        if isinstance(body, bytes):
            return body
        chunks = []
        for chunk in body:
            if request.cancelled:
                raise UploadCancelled("request body cancelled")
            chunks.append(chunk)
        return b"".join(chunks)

    def request(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        try:
            body = self._drain(request)
        except Exception as exc:  # noqa: BLE001
            self.request_bodies.append(b"")
            return HttpResponse(ok=False, url=request.url, error_message=str(exc), error_type=type(exc).__name__)
        self.request_bodies.append(body)

        response = self._responses.get((request.method.upper(), request.url))
        if response is None:
            response = self._responses.get(request.url)
        if response is None:
            return HttpResponse(ok=False, status_code=None, error_message="No stubbed response configured")
        if callable(response):
            return response(request, body)
        return response

    def close(self) -> None:
        self.closed = True
