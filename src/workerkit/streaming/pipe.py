# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Bounded in-process byte pipe connecting the encode and transmit threads.

Writes block while the buffer is full (backpressure). Closing the writer ends
the stream for the reader, optionally with an error. Closing the reader wakes
a blocked writer, which then fails with ``PipeClosed`` instead of hanging.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator

DEFAULT_PIPE_BUFFER_BYTES = 256 * 1024


class PipeClosed(OSError):
    """Write to a pipe whose reader is gone, or read from a pipe whose reader was closed."""


class _PipeState:
    def __init__(self, max_buffer: int):
        self.max_buffer = max_buffer if max_buffer > 0 else DEFAULT_PIPE_BUFFER_BYTES
        self.buffer = bytearray()
        self.cond = threading.Condition()
        self.writer_closed = False
        self.writer_error: BaseException | None = None
        self.reader_closed = False
        self.reader_error: BaseException | None = None
        self.high_water_mark = 0
        self.bytes_transferred = 0


class PipeWriter:
    def __init__(self, state: _PipeState):
        self._state = state

    def write(self, data: bytes | bytearray | memoryview) -> int:
        state = self._state
        view = memoryview(bytes(data))
        written = 0
        with state.cond:
            while written < len(view):
                if state.writer_closed:
                    raise PipeClosed("write to closed pipe writer")
                if state.reader_closed:
                    exc = PipeClosed("pipe reader closed")
                    if state.reader_error is not None:
                        raise exc from state.reader_error
                    raise exc
                space = state.max_buffer - len(state.buffer)
                if space <= 0:
                    state.cond.wait()
                    continue
                chunk = view[written : written + space]
                state.buffer.extend(chunk)
                written += len(chunk)
                state.high_water_mark = max(state.high_water_mark, len(state.buffer))
                state.cond.notify_all()
        return written

    def close(self, exc: BaseException | None = None) -> None:
        """Signal end-of-stream; with ``exc`` the reader raises it once buffered bytes are drained."""
        state = self._state
        with state.cond:
            if state.writer_closed:
                return
            state.writer_closed = True
            state.writer_error = exc
            state.cond.notify_all()

    @property
    def closed(self) -> bool:
        return self._state.writer_closed


class PipeReader:
    def __init__(self, state: _PipeState, chunk_size: int):
        self._state = state
        self.chunk_size = chunk_size

    def read(self, size: int = -1) -> bytes:
        state = self._state
        with state.cond:
            while not state.buffer:
                if state.reader_closed:
                    raise PipeClosed("read from closed pipe reader")
                if state.writer_closed:
                    if state.writer_error is not None:
                        raise state.writer_error
                    return b""
                state.cond.wait()
            if size is None or size < 0 or size >= len(state.buffer):
                data = bytes(state.buffer)
                state.buffer.clear()
            else:
                data = bytes(state.buffer[:size])
                del state.buffer[:size]
            state.bytes_transferred += len(data)
            state.cond.notify_all()
            return data

    def __iter__(self) -> Iterator[bytes]:
        while True:
            chunk = self.read(self.chunk_size)
            if not chunk:
                return
            yield chunk

    def close(self, exc: BaseException | None = None) -> None:
        """Stop consuming; a writer blocked on a full buffer wakes up and fails."""
        state = self._state
        with state.cond:
            if state.reader_closed:
                return
            state.reader_closed = True
            state.reader_error = exc
            state.buffer.clear()
            state.cond.notify_all()

    @property
    def closed(self) -> bool:
        return self._state.reader_closed


class StreamPipe:
    """A connected writer/reader pair over one bounded buffer."""

    def __init__(self, max_buffer: int = DEFAULT_PIPE_BUFFER_BYTES, *, chunk_size: int | None = None):
        self._state = _PipeState(max_buffer)
        self.writer = PipeWriter(self._state)
        self.reader = PipeReader(self._state, chunk_size or self._state.max_buffer)

    @property
    def max_buffer(self) -> int:
        return self._state.max_buffer

    @property
    def high_water_mark(self) -> int:
        return self._state.high_water_mark

    @property
    def bytes_transferred(self) -> int:
        return self._state.bytes_transferred

    def close(self, exc: BaseException | None = None) -> None:
        """Close both ends under one lock hold, so no waiter sees only one side closed."""
        with self._state.cond:
            self.writer.close(exc)
            self.reader.close(exc)


__all__ = ["DEFAULT_PIPE_BUFFER_BYTES", "PipeClosed", "PipeReader", "PipeWriter", "StreamPipe"]
