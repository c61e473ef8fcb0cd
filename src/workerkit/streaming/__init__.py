# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Concurrent encode/transmit pipeline."""

from .coordinator import StreamingUploader, parse_upload_response
from .pipe import DEFAULT_PIPE_BUFFER_BYTES, PipeClosed, PipeReader, PipeWriter, StreamPipe

__all__ = [
    "DEFAULT_PIPE_BUFFER_BYTES",
    "PipeClosed",
    "PipeReader",
    "PipeWriter",
    "StreamPipe",
    "StreamingUploader",
    "parse_upload_response",
]
