# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models shared by transports and the upload pipeline."""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

Headers = dict[str, str]
RequestBody = bytes | str | Iterable[bytes]


@dataclass
class HttpRequest:
    """Normalized request representation consumed by HttpClient implementations.

    ``body`` may be an iterable of byte chunks; clients must drain it fully
    before returning. Once ``cancel`` is set, clients should give up on the
    exchange promptly and return ``ok=False``.
    """

    url: str
    method: str = "GET"
    headers: Headers | None = None
    body: RequestBody | None = None
    timeout: float | None = None
    cancel: threading.Event | None = field(default=None, repr=False, compare=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    @property
    def is_streaming(self) -> bool:
        return self.body is not None and not isinstance(self.body, (bytes, str))


@dataclass
class HttpResponse:
    """Normalized HTTP response; transport failures set ``ok=False`` and leave ``status_code`` empty."""

    ok: bool
    status_code: int | None = None
    headers: Headers = field(default_factory=dict)
    text: str = ""
    content: bytes = b""
    url: str | None = None
    error_message: str | None = None
    error_type: str | None = None
    error_category: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def json(self) -> Any:
        return json.loads(self.content or self.text or "null")
