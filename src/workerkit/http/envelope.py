# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Unwrap the API's ``{"success", "errors", "messages", "result"}`` response envelope."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from ..errors import ErrorCategory, TransmitError, categorize_status
from .models import HttpResponse


def _envelope_errors(payload: Any) -> list[str]:
    if not isinstance(payload, Mapping):
        return []
    raw = payload.get("errors")
    if not isinstance(raw, list):
        return []
    out: list[str] = []
    for item in raw:
        if isinstance(item, Mapping):
            code = item.get("code")
            message = str(item.get("message") or "")
            out.append(f"{code}: {message}" if code is not None else message)
        elif item:
            out.append(str(item))
    return out


def check_transport(response: HttpResponse) -> None:
    """Raise ``TransmitError`` for transport failures and HTTP error statuses."""
    if not response.ok:
        try:
            category = ErrorCategory(response.error_category or ErrorCategory.UNKNOWN_ERROR.value)
        except ValueError:
            category = ErrorCategory.UNKNOWN_ERROR
        raise TransmitError(
            f"request failed: {response.error_message or 'unknown transport error'}",
            category=category,
        )
    status = response.status_code
    if status is not None and status >= 400:
        try:
            errors = _envelope_errors(json.loads(response.content or b"null"))
        except ValueError:
            errors = []
        detail = "; ".join(errors) if errors else (response.text or "")[:200]
        raise TransmitError(
            f"HTTP {status}: {detail}" if detail else f"HTTP {status}",
            status_code=status,
            errors=errors,
            category=categorize_status(status),
        )


def unwrap_result(response: HttpResponse) -> Any:
    """Return the envelope's ``result``; every failure is a ``TransmitError``."""
    check_transport(response)
    try:
        payload = json.loads(response.content or b"null")
    except ValueError as exc:
        raise TransmitError(f"could not parse response body: {exc}", cause=exc, status_code=response.status_code) from exc
    if not isinstance(payload, Mapping):
        raise TransmitError("unexpected response body: expected a JSON object", status_code=response.status_code)
    if payload.get("success") is False:
        errors = _envelope_errors(payload)
        raise TransmitError(
            "API reported failure: " + ("; ".join(errors) if errors else "no error details"),
            status_code=response.status_code,
            errors=errors,
        )
    return payload.get("result")


__all__ = ["check_transport", "unwrap_result"]
