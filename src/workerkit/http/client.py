# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transport abstraction consumed by the upload pipeline."""

from typing import Protocol

from ..config import HttpSettings, load_http_settings
from .models import HttpRequest, HttpResponse


class HttpClient(Protocol):
    """Performs one HTTP exchange.

    Implementations must fully drain a streaming ``request.body`` before
    returning and must report network failures as ``HttpResponse(ok=False)``
    rather than raising.
    """

    def request(self, request: HttpRequest) -> HttpResponse: ...

    def close(self) -> None:  # pragma: no cover - optional for adapters
        ...


Transport = HttpClient


def create_default_http_client(settings: HttpSettings | None = None) -> HttpClient:
    """Build the httpx-backed transport from settings (environment when omitted)."""
    from .httpx_client import HttpxClient

    return HttpxClient(settings or load_http_settings())
