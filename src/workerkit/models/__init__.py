# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclass exports for workerkit."""

from .bindings import (
    BINDING_TYPES,
    AnalyticsEngineBinding,
    D1Binding,
    DispatchNamespaceBinding,
    DurableObjectBinding,
    InheritBinding,
    KvNamespaceBinding,
    MtlsCertificateBinding,
    PlainTextBinding,
    QueueBinding,
    R2BucketBinding,
    SecretTextBinding,
    ServiceBinding,
    TextBlobBinding,
    WasmModuleBinding,
    WorkerBinding,
    binding_from_mapping,
)
from .script import ScriptSettings, UploadOutcome, WorkerMetadata, WorkerScript
from .upload import Placement, PlacementMode, SettingsUpdateRequest, TailConsumer, UploadRequest

__all__ = [
    "BINDING_TYPES",
    "AnalyticsEngineBinding",
    "D1Binding",
    "DispatchNamespaceBinding",
    "DurableObjectBinding",
    "InheritBinding",
    "KvNamespaceBinding",
    "MtlsCertificateBinding",
    "Placement",
    "PlacementMode",
    "PlainTextBinding",
    "QueueBinding",
    "R2BucketBinding",
    "ScriptSettings",
    "SecretTextBinding",
    "ServiceBinding",
    "SettingsUpdateRequest",
    "TailConsumer",
    "TextBlobBinding",
    "UploadOutcome",
    "UploadRequest",
    "WasmModuleBinding",
    "WorkerBinding",
    "WorkerMetadata",
    "WorkerScript",
    "binding_from_mapping",
]
