# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Incremental multipart/form-data writer.

Parts are written straight to the underlying stream as they are produced, so
a message of any size only ever holds one copy chunk in memory.
"""

from __future__ import annotations

import secrets
from typing import Any, Protocol

from ..errors import UnreadablePayload

DEFAULT_CHUNK_BYTES = 64 * 1024


class WritableStream(Protocol):
    def write(self, data: bytes) -> Any: ...


def _escape_quotes(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _to_bytes(data: bytes | bytearray | memoryview | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class MultipartWriter:
    def __init__(self, stream: WritableStream, boundary: str | None = None, *, chunk_size: int = DEFAULT_CHUNK_BYTES):
        self._stream = stream
        self.boundary = boundary or secrets.token_hex(30)
        self.chunk_size = chunk_size if chunk_size > 0 else DEFAULT_CHUNK_BYTES
        self.part_names: list[str] = []
        self.bytes_written = 0
        self._closed = False

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    @property
    def closed(self) -> bool:
        return self._closed

    def _emit(self, data: bytes) -> None:
        if data:
            self._stream.write(data)
            self.bytes_written += len(data)

    def create_part(self, name: str, content_type: str, *, filename: str | None = None) -> None:
        """Start a new part; subsequent ``write``/``copy_from`` calls fill its body."""
        if self._closed:
            raise ValueError("multipart writer is closed")
        disposition = f'form-data; name="{_escape_quotes(name)}"'
        if filename is not None:
            disposition += f'; filename="{_escape_quotes(filename)}"'
        delimiter = f"--{self.boundary}\r\n" if not self.part_names else f"\r\n--{self.boundary}\r\n"
        header = f"{delimiter}Content-Disposition: {disposition}\r\nContent-Type: {content_type}\r\n\r\n"
        self._emit(header.encode("utf-8"))
        self.part_names.append(name)

    def write(self, data: bytes | bytearray | memoryview | str) -> int:
        if not self.part_names:
            raise ValueError("write called before create_part")
        raw = _to_bytes(data)
        self._emit(raw)
        return len(raw)

    def copy_from(self, source: Any) -> int:
        """Copy a str, bytes or readable stream into the current part in bounded chunks."""
        if isinstance(source, (str, bytes, bytearray, memoryview)):
            raw = _to_bytes(source)
            for offset in range(0, len(raw), self.chunk_size):
                self.write(raw[offset : offset + self.chunk_size])
            return len(raw)

        read = getattr(source, "read", None)
        if not callable(read):
            raise UnreadablePayload(f"cannot read payload of type {type(source).__name__}")

        total = 0
        while True:
            chunk = read(self.chunk_size)
            if not chunk:
                break
            total += self.write(chunk)
        return total

    def close(self) -> None:
        """Write the closing boundary. Idempotent."""
        if self._closed:
            return
        if self.part_names:
            self._emit(f"\r\n--{self.boundary}--\r\n".encode("ascii"))
        else:
            self._emit(f"--{self.boundary}--\r\n".encode("ascii"))
        self._closed = True


__all__ = ["DEFAULT_CHUNK_BYTES", "MultipartWriter", "WritableStream"]
