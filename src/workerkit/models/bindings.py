# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Binding variants and their metadata descriptors.

Each variant knows how to describe itself in the upload metadata. Variants whose
content cannot travel inline in JSON (wasm modules, text blobs) also return a
deferred writer that appends the content as its own multipart part; the
descriptor references that part by name.
"""

from __future__ import annotations

import secrets
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from ..errors import InvalidBindingKind

if TYPE_CHECKING:
    from ..multipart.writer import MultipartWriter

BindingDescriptor = dict[str, Any]
BodyPartWriter = Callable[["MultipartWriter"], None]


def _random_part_name() -> str:
    return secrets.token_hex(16)


class WorkerBinding(ABC):
    kind: ClassVar[str] = ""

    @abstractmethod
    def fields(self) -> dict[str, Any]:
        """Variant-specific descriptor fields."""

    def serialize(self, name: str) -> tuple[BindingDescriptor, BodyPartWriter | None]:
        descriptor: BindingDescriptor = {"name": name, "type": self.kind}
        descriptor.update({key: value for key, value in self.fields().items() if value is not None})
        return descriptor, None


@dataclass(frozen=True)
class InheritBinding(WorkerBinding):
    """Keeps a binding from the previously deployed version, optionally under a new name."""

    kind: ClassVar[str] = "inherit"
    old_name: str | None = None

    def fields(self) -> dict[str, Any]:
        return {"old_name": self.old_name}


@dataclass(frozen=True)
class KvNamespaceBinding(WorkerBinding):
    kind: ClassVar[str] = "kv_namespace"
    namespace_id: str

    def fields(self) -> dict[str, Any]:
        return {"namespace_id": self.namespace_id}


@dataclass(frozen=True)
class DurableObjectBinding(WorkerBinding):
    kind: ClassVar[str] = "durable_object_namespace"
    class_name: str
    script_name: str | None = None

    def fields(self) -> dict[str, Any]:
        return {"class_name": self.class_name, "script_name": self.script_name}


@dataclass(frozen=True)
class PlainTextBinding(WorkerBinding):
    kind: ClassVar[str] = "plain_text"
    text: str

    def fields(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class SecretTextBinding(WorkerBinding):
    kind: ClassVar[str] = "secret_text"
    text: str = field(repr=False)

    def fields(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class ServiceBinding(WorkerBinding):
    kind: ClassVar[str] = "service"
    service: str
    environment: str | None = None

    def fields(self) -> dict[str, Any]:
        return {"service": self.service, "environment": self.environment}


@dataclass(frozen=True)
class AnalyticsEngineBinding(WorkerBinding):
    kind: ClassVar[str] = "analytics_engine"
    dataset: str

    def fields(self) -> dict[str, Any]:
        return {"dataset": self.dataset}


@dataclass(frozen=True)
class QueueBinding(WorkerBinding):
    kind: ClassVar[str] = "queue"
    queue_name: str

    def fields(self) -> dict[str, Any]:
        return {"queue_name": self.queue_name}


@dataclass(frozen=True)
class R2BucketBinding(WorkerBinding):
    kind: ClassVar[str] = "r2_bucket"
    bucket_name: str

    def fields(self) -> dict[str, Any]:
        return {"bucket_name": self.bucket_name}


@dataclass(frozen=True)
class D1Binding(WorkerBinding):
    kind: ClassVar[str] = "d1"
    database_id: str

    def fields(self) -> dict[str, Any]:
        return {"id": self.database_id}


@dataclass(frozen=True)
class DispatchNamespaceBinding(WorkerBinding):
    kind: ClassVar[str] = "dispatch_namespace"
    namespace: str
    outbound: Mapping[str, Any] | None = None

    def fields(self) -> dict[str, Any]:
        return {"namespace": self.namespace, "outbound": dict(self.outbound) if self.outbound else None}


@dataclass(frozen=True)
class MtlsCertificateBinding(WorkerBinding):
    kind: ClassVar[str] = "mtls_certificate"
    certificate_id: str

    def fields(self) -> dict[str, Any]:
        return {"certificate_id": self.certificate_id}


class BodyPartBinding(WorkerBinding):
    """A binding whose content is sent as a separate multipart part."""

    content_type: ClassVar[str] = "application/octet-stream"

    @abstractmethod
    def content(self) -> Any:
        """str, bytes or a readable stream."""

    def fields(self) -> dict[str, Any]:
        return {}

    def serialize(self, name: str) -> tuple[BindingDescriptor, BodyPartWriter | None]:
        descriptor, _ = super().serialize(name)
        part_name = _random_part_name()
        descriptor["part"] = part_name

        def write_part(mpw: MultipartWriter) -> None:
            mpw.create_part(part_name, self.content_type)
            mpw.copy_from(self.content())

        return descriptor, write_part


@dataclass(frozen=True)
class WasmModuleBinding(BodyPartBinding):
    kind: ClassVar[str] = "wasm_module"
    content_type: ClassVar[str] = "application/wasm"
    module: Any = field(repr=False)

    def content(self) -> Any:
        return self.module


@dataclass(frozen=True)
class TextBlobBinding(BodyPartBinding):
    kind: ClassVar[str] = "text_blob"
    content_type: ClassVar[str] = "text/plain"
    text: Any = field(repr=False)

    def content(self) -> Any:
        return self.text


BINDING_TYPES: dict[str, type[WorkerBinding]] = {
    cls.kind: cls
    for cls in (
        InheritBinding,
        KvNamespaceBinding,
        DurableObjectBinding,
        WasmModuleBinding,
        TextBlobBinding,
        PlainTextBinding,
        SecretTextBinding,
        ServiceBinding,
        AnalyticsEngineBinding,
        QueueBinding,
        R2BucketBinding,
        D1Binding,
        DispatchNamespaceBinding,
        MtlsCertificateBinding,
    )
}

# Short field names accepted by binding_from_mapping.
_FIELD_ALIASES: dict[str, dict[str, str]] = {
    "kv_namespace": {"id": "namespace_id"},
    "d1": {"id": "database_id"},
    "r2_bucket": {"bucket": "bucket_name"},
    "queue": {"queue": "queue_name"},
    "durable_object_namespace": {"class": "class_name", "script": "script_name"},
    "mtls_certificate": {"id": "certificate_id"},
}


def binding_from_mapping(data: Mapping[str, Any]) -> WorkerBinding:
    """Build a binding variant from ``{"kind": ..., **fields}``."""
    values = dict(data)
    kind = str(values.pop("kind", None) or values.pop("type", None) or "")
    cls = BINDING_TYPES.get(kind)
    if cls is None:
        raise InvalidBindingKind(f"unknown binding kind {kind!r}")
    aliases = _FIELD_ALIASES.get(kind, {})
    values = {aliases.get(key, key): value for key, value in values.items()}
    try:
        return cls(**values)
    except TypeError as exc:
        raise InvalidBindingKind(f"invalid fields for binding kind {kind!r}: {exc}", cause=exc) from exc


def serialize_binding(name: str, binding: object) -> tuple[BindingDescriptor, BodyPartWriter | None]:
    if not isinstance(binding, WorkerBinding):
        raise InvalidBindingKind(f"binding {name!r} has unsupported type {type(binding).__name__}")
    return binding.serialize(name)


__all__ = [
    "BINDING_TYPES",
    "AnalyticsEngineBinding",
    "BindingDescriptor",
    "BodyPartBinding",
    "BodyPartWriter",
    "D1Binding",
    "DispatchNamespaceBinding",
    "DurableObjectBinding",
    "InheritBinding",
    "KvNamespaceBinding",
    "MtlsCertificateBinding",
    "PlainTextBinding",
    "QueueBinding",
    "R2BucketBinding",
    "SecretTextBinding",
    "ServiceBinding",
    "TextBlobBinding",
    "WasmModuleBinding",
    "WorkerBinding",
    "binding_from_mapping",
    "serialize_binding",
]
