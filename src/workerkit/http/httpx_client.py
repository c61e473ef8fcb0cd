# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""httpx-backed HttpClient implementation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator

import httpx

from ..config import HttpSettings, load_http_settings
from ..errors import UploadCancelled, categorize_exception
from .client import HttpClient
from .models import HttpRequest, HttpResponse

logger = logging.getLogger(__name__)

CANCEL_POLL_INTERVAL = 0.05


def _cancellable_body(chunks: Iterable[bytes], cancel: threading.Event) -> Iterator[bytes]:
    for chunk in chunks:
        if cancel.is_set():
            raise UploadCancelled("request body cancelled")
        yield chunk


def _cancelled_response(request: HttpRequest) -> HttpResponse:
    return HttpResponse(
        ok=False,
        url=request.url,
        error_message="request cancelled",
        error_type=UploadCancelled.__name__,
    )


class HttpxClient(HttpClient):
    """Synchronous httpx client wrapper.

    Streaming request bodies are handed to httpx as an iterator, which sends
    them with chunked transfer encoding as they are produced.

    httpx offers no way to interrupt a blocking read from another thread, so a
    request carrying a ``cancel`` event runs on a helper thread. ``request``
    returns as soon as the event is set; the abandoned exchange stops at its
    next body or response chunk, or at the configured timeout.
    """

    def __init__(self, settings: HttpSettings | None = None, client: httpx.Client | None = None):
        self.settings = settings or load_http_settings()
        self._client = client or httpx.Client(
            timeout=self.settings.timeout,
            verify=self.settings.verify_ssl,
        )

    def _headers(self, request: HttpRequest) -> dict[str, str]:
        headers = dict(request.headers or {})
        headers.setdefault("User-Agent", self.settings.user_agent)
        if self.settings.api_token:
            headers.setdefault("Authorization", f"Bearer {self.settings.api_token}")
        return headers

    def request(self, request: HttpRequest) -> HttpResponse:
        if request.cancel is None:
            return self._exchange(request)
        if request.cancelled:
            return _cancelled_response(request)

        finished = threading.Event()
        responses: list[HttpResponse] = []

        def run() -> None:
            try:
                responses.append(self._exchange(request))
            finally:
                finished.set()

        threading.Thread(target=run, name="workerkit-http", daemon=True).start()
        while not finished.wait(CANCEL_POLL_INTERVAL):
            if request.cancelled:
                logger.debug("Abandoning %s %s after cancel", request.method, request.url)
                return _cancelled_response(request)
        return responses[0]

    def _exchange(self, request: HttpRequest) -> HttpResponse:
        max_bytes = self.settings.max_response_bytes
        content_arg = request.body
        if request.cancel is not None and request.is_streaming:
            content_arg = _cancellable_body(request.body, request.cancel)
        try:
            with self._client.stream(
                request.method,
                request.url,
                headers=self._headers(request),
                content=content_arg,
                timeout=request.timeout if request.timeout is not None else self.settings.timeout,
            ) as resp:
                content = bytearray()
                truncated = False
                for chunk in resp.iter_bytes():
                    if request.cancelled:
                        return _cancelled_response(request)
                    if not chunk:
                        continue
                    remaining = max_bytes - len(content)
                    if len(chunk) > remaining:
                        content.extend(chunk[:remaining])
                        truncated = True
                        break
                    content.extend(chunk)

                encoding = resp.encoding or "utf-8"
                try:
                    text = bytes(content).decode(encoding, errors="replace")
                except LookupError:
                    text = bytes(content).decode("utf-8", errors="replace")

            return HttpResponse(
                ok=True,
                status_code=resp.status_code,
                headers=dict(resp.headers),
                text=text,
                content=bytes(content),
                url=str(resp.url),
                meta={"body_truncated": truncated, "body_bytes_read": len(content)},
            )
        except Exception as exc:  # noqa: BLE001
            return HttpResponse(
                ok=False,
                url=request.url,
                error_message=str(exc),
                error_type=type(exc).__name__,
                error_category=categorize_exception(exc).value,
            )

    def close(self) -> None:
        self._client.close()
