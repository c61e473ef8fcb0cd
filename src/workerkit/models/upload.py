# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Upload request models."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .bindings import WorkerBinding


class PlacementMode(str, Enum):
    OFF = ""
    SMART = "smart"


@dataclass(frozen=True)
class Placement:
    mode: PlacementMode = PlacementMode.OFF

    def to_dict(self) -> dict[str, Any]:
        return {"mode": PlacementMode(self.mode).value}

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> Placement | None:
        if not isinstance(data, Mapping):
            return None
        try:
            return cls(mode=PlacementMode(str(data.get("mode") or "")))
        except ValueError:
            return None


@dataclass(frozen=True)
class TailConsumer:
    """A worker that receives the logs of the uploaded script."""

    service: str
    environment: str | None = None
    namespace: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"service": self.service}
        if self.environment is not None:
            data["environment"] = self.environment
        if self.namespace is not None:
            data["namespace"] = self.namespace
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> TailConsumer:
        return cls(
            service=str(data.get("service") or ""),
            environment=data.get("environment"),
            namespace=data.get("namespace"),
        )


@dataclass(frozen=True)
class UploadRequest:
    """Everything needed to upload one script.

    ``script`` is a ``str``/``bytes`` buffer or an open readable stream (any
    object with ``read``). ``logpush`` and ``tail_consumers`` use ``None`` to
    mean "leave unchanged"; an explicit ``False`` or ``[]`` is still sent.
    """

    script_name: str
    script: Any
    module: bool = False
    dispatch_namespace: str | None = None
    bindings: Mapping[str, WorkerBinding] = field(default_factory=dict)
    logpush: bool | None = None
    tail_consumers: list[TailConsumer] | None = None
    compatibility_date: str = ""
    compatibility_flags: list[str] = field(default_factory=list)
    placement: Placement | None = None
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SettingsUpdateRequest:
    """Metadata-only update of an existing script (no script content)."""

    script_name: str
    bindings: Mapping[str, WorkerBinding] = field(default_factory=dict)
    logpush: bool | None = None
    tail_consumers: list[TailConsumer] | None = None
    compatibility_date: str = ""
    compatibility_flags: list[str] = field(default_factory=list)
    placement: Placement | None = None
