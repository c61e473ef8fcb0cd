# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
workerkit package entrypoint.

This package uploads deployable scripts and their bindings to a remote
compute-deployment API as a streamed multipart message, and reads them back.
HTTP behavior is abstracted behind an injectable client interface, and domain
objects are modeled with typed dataclasses.
"""

from .config import HttpSettings, load_http_settings
from .errors import (
    EncodeError,
    InvalidBindingKind,
    MalformedMultipart,
    TransmitError,
    UnreadablePayload,
    UploadCancelled,
    UploadStage,
    ValidationError,
    WorkerKitError,
)
from .http import HttpClient, HttpRequest, HttpResponse, HttpxClient, create_default_http_client
from .log import setup_logging
from .models import (
    Placement,
    PlacementMode,
    ScriptSettings,
    SettingsUpdateRequest,
    TailConsumer,
    UploadOutcome,
    UploadRequest,
    WorkerBinding,
    WorkerMetadata,
    WorkerScript,
    binding_from_mapping,
)
from .multipart import decode_script, encode_upload, requires_multipart
from .runtime import WorkerKit
from .streaming import StreamingUploader, StreamPipe
from .version import __version__

__all__ = [
    "EncodeError",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpSettings",
    "HttpxClient",
    "InvalidBindingKind",
    "MalformedMultipart",
    "Placement",
    "PlacementMode",
    "ScriptSettings",
    "SettingsUpdateRequest",
    "StreamPipe",
    "StreamingUploader",
    "TailConsumer",
    "TransmitError",
    "UnreadablePayload",
    "UploadCancelled",
    "UploadOutcome",
    "UploadRequest",
    "UploadStage",
    "ValidationError",
    "WorkerBinding",
    "WorkerKit",
    "WorkerKitError",
    "WorkerMetadata",
    "WorkerScript",
    "binding_from_mapping",
    "create_default_http_client",
    "decode_script",
    "encode_upload",
    "load_http_settings",
    "requires_multipart",
    "setup_logging",
    "__version__",
]
