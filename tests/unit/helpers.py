# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import json
import re

from workerkit.http import HttpResponse

BASE_URL = "https://api.test/client/v4"
ACCOUNT_ID = "acc123"


def split_multipart(body: bytes, content_type: str) -> list[dict]:
    """Split a multipart/form-data body into [{"name", "filename", "content_type", "content"}]."""
    boundary = re.search(r"boundary=([^;]+)", content_type).group(1)
    delimiter = b"--" + boundary.encode()
    segments = body.split(delimiter)
    assert segments[0] == b""
    assert segments[-1] == b"--\r\n"
    parts = []
    for segment in segments[1:-1]:
        assert segment.startswith(b"\r\n")
        assert segment.endswith(b"\r\n")
        raw_headers, content = segment[2:-2].split(b"\r\n\r\n", 1)
        headers = {}
        for line in raw_headers.decode().split("\r\n"):
            key, _, value = line.partition(":")
            headers[key.strip().lower()] = value.strip()
        disposition = headers.get("content-disposition", "")
        name = re.search(r'name="([^"]*)"', disposition)
        filename = re.search(r'filename="([^"]*)"', disposition)
        parts.append(
            {
                "name": name.group(1) if name else None,
                "filename": filename.group(1) if filename else None,
                "content_type": headers.get("content-type"),
                "content": content,
            }
        )
    return parts


def envelope(result=None, *, success=True, errors=None, status_code=200) -> HttpResponse:
    payload = {"success": success, "errors": errors or [], "messages": [], "result": result}
    text = json.dumps(payload)
    return HttpResponse(
        ok=True,
        status_code=status_code,
        headers={"Content-Type": "application/json"},
        content=text.encode(),
        text=text,
    )


def script_url(name: str, *suffix: str) -> str:
    return "/".join([f"{BASE_URL}/accounts/{ACCOUNT_ID}/workers/scripts/{name}", *suffix])
