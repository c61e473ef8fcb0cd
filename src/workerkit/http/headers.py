# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Header helpers.

Header field names are case-insensitive, while responses travel through this
package as plain dicts, so lookups go through these helpers.
"""

from __future__ import annotations

from collections.abc import Mapping


def normalize_headers(headers: Mapping[object, object] | None) -> dict[str, str]:
    """Return a lowercase-keyed copy of a header mapping."""
    if not headers:
        return {}
    out: dict[str, str] = {}
    for key, value in headers.items():
        if key is None:
            continue
        name = str(key).strip().lower()
        if not name:
            continue
        out[name] = "" if value is None else str(value)
    return out


def header_value(headers: Mapping[object, object] | None, name: str, default: str = "") -> str:
    """Return a header value using case-insensitive key matching."""
    if not headers or not name:
        return default
    lower = name.lower()
    for key, value in headers.items():
        if key is not None and str(key).lower() == lower:
            return default if value is None else str(value).strip()
    return default


def parse_media_type(value: str) -> tuple[str, dict[str, str]]:
    """Split a Content-Type value into a lowercase media type and its parameters."""
    media_type, _, rest = (value or "").partition(";")
    params: dict[str, str] = {}
    for item in rest.split(";"):
        key, sep, raw = item.partition("=")
        if not sep:
            continue
        raw = raw.strip()
        if len(raw) >= 2 and raw[0] == raw[-1] == '"':
            raw = raw[1:-1]
        params[key.strip().lower()] = raw
    return media_type.strip().lower(), params


__all__ = ["header_value", "normalize_headers", "parse_media_type"]
