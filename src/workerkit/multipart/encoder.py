# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Multipart encoding of a script upload.

Message layout::

    metadata     application/json
    script       application/javascript          (classic)
    worker.mjs   application/javascript+module   (module, with filename)
    <part>...    one per binding that carries its own body

Binding descriptors and their body parts come from a single pass over the
binding mapping, so descriptor order always matches part order within one
encode. Order across calls follows the mapping's iteration order and is not
otherwise canonical.
"""

from __future__ import annotations

import json
from typing import Any

from ..errors import EncodeError, UnreadablePayload, WorkerKitError
from ..models.bindings import BodyPartWriter, serialize_binding
from ..models.upload import UploadRequest
from .writer import MultipartWriter

METADATA_PART = "metadata"
CLASSIC_SCRIPT_PART = "script"
MODULE_SCRIPT_PART = "worker.mjs"
CLASSIC_CONTENT_TYPE = "application/javascript"
MODULE_CONTENT_TYPE = "application/javascript+module"


def script_part_name(request: UploadRequest) -> str:
    return MODULE_SCRIPT_PART if request.module else CLASSIC_SCRIPT_PART


def check_payload(payload: Any) -> None:
    if isinstance(payload, (str, bytes, bytearray, memoryview)):
        return
    if not callable(getattr(payload, "read", None)):
        raise UnreadablePayload(f"script payload must be str, bytes or a readable stream, not {type(payload).__name__}")


def build_metadata(request: UploadRequest) -> tuple[dict[str, Any], list[BodyPartWriter]]:
    """Return the metadata object and the deferred binding part writers, in matching order."""
    metadata: dict[str, Any] = {}
    if request.module:
        metadata["main_module"] = MODULE_SCRIPT_PART
    else:
        metadata["body_part"] = CLASSIC_SCRIPT_PART

    descriptors: list[dict[str, Any]] = []
    writers: list[BodyPartWriter] = []
    for name, binding in request.bindings.items():
        descriptor, writer = serialize_binding(name, binding)
        descriptors.append(descriptor)
        if writer is not None:
            writers.append(writer)
    metadata["bindings"] = descriptors

    if request.logpush is not None:
        metadata["logpush"] = request.logpush
    if request.tail_consumers is not None:
        metadata["tail_consumers"] = [consumer.to_dict() for consumer in request.tail_consumers]
    if request.compatibility_date:
        metadata["compatibility_date"] = request.compatibility_date
    if request.compatibility_flags:
        metadata["compatibility_flags"] = list(request.compatibility_flags)
    if request.placement is not None:
        metadata["placement"] = request.placement.to_dict()
    metadata["tags"] = list(request.tags or [])
    return metadata, writers


def encode_upload(request: UploadRequest, mpw: MultipartWriter) -> None:
    """
    Write the complete multipart message for ``request`` and its closing boundary.

    Any failure is raised as ``EncodeError`` with the original error as cause;
    in that case no closing boundary is written, so a reader never sees a
    well-formed but incomplete message.
    """
    try:
        check_payload(request.script)
        metadata, writers = build_metadata(request)

        mpw.create_part(METADATA_PART, "application/json")
        mpw.write(json.dumps(metadata, separators=(",", ":")))

        part_name = script_part_name(request)
        if request.module:
            mpw.create_part(part_name, MODULE_CONTENT_TYPE, filename=part_name)
        else:
            mpw.create_part(part_name, CLASSIC_CONTENT_TYPE)
        mpw.copy_from(request.script)

        for write_part in writers:
            write_part(mpw)

        mpw.close()
    except EncodeError:
        raise
    except WorkerKitError as exc:
        raise EncodeError(f"failed to encode {request.script_name!r}: {exc.message}", cause=exc) from exc
    except Exception as exc:
        raise EncodeError(f"failed to encode {request.script_name!r}: {exc}", cause=exc) from exc


__all__ = [
    "CLASSIC_CONTENT_TYPE",
    "CLASSIC_SCRIPT_PART",
    "METADATA_PART",
    "MODULE_CONTENT_TYPE",
    "MODULE_SCRIPT_PART",
    "build_metadata",
    "check_payload",
    "encode_upload",
    "script_part_name",
]
