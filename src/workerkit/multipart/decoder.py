# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Decode a downloaded script response.

A multipart response means a module script whose content is the first part;
anything else is a classic script whose content is the whole body.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from ..errors import MalformedMultipart
from ..http.headers import parse_media_type


@dataclass(frozen=True)
class DecodedScript:
    script: str
    module: bool


def _decode_text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def read_first_part(raw: bytes, boundary: str) -> bytes:
    """Return the body of the first part of a multipart message."""
    delimiter = b"--" + boundary.encode("latin-1")
    opening = re.compile(rb"(?:\A|\n)" + re.escape(delimiter)).search(raw)
    if opening is None:
        raise MalformedMultipart(f"boundary {boundary!r} not found in multipart body")

    pos = opening.end()
    if raw.startswith(b"--", pos):
        raise MalformedMultipart("multipart body contains no parts")
    line_end = raw.find(b"\n", pos)
    if line_end < 0:
        raise MalformedMultipart("truncated multipart delimiter line")
    if raw[pos:line_end].strip(b" \t\r"):
        raise MalformedMultipart("unexpected data after multipart delimiter")
    pos = line_end + 1

    if raw.startswith(b"\r\n", pos):
        body_start = pos + 2
    elif raw.startswith(b"\n", pos):
        body_start = pos + 1
    else:
        header_end = re.compile(rb"\r?\n\r?\n").search(raw, pos)
        if header_end is None:
            raise MalformedMultipart("unterminated part headers")
        body_start = header_end.end()

    closing = re.compile(rb"\r?\n" + re.escape(delimiter)).search(raw, body_start)
    if closing is None:
        raise MalformedMultipart("unterminated multipart part")
    return raw[body_start : closing.start()]


def decode_script(content_type: str | None, raw: bytes) -> DecodedScript:
    """Single pass over ``raw``; raises ``MalformedMultipart`` for a broken multipart body."""
    media_type, params = parse_media_type(content_type or "")
    if not media_type.startswith("multipart/"):
        return DecodedScript(script=_decode_text(raw), module=False)

    boundary = params.get("boundary")
    if not boundary:
        raise MalformedMultipart(f"multipart content type without boundary: {content_type!r}")
    return DecodedScript(script=_decode_text(read_first_part(raw, boundary)), module=True)


__all__ = ["DecodedScript", "decode_script", "read_first_part"]
