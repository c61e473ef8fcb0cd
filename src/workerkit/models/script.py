# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Dataclasses for script metadata, settings and upload outcomes."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any

from ..errors import UploadStage, WorkerKitError
from .upload import Placement, PlacementMode, TailConsumer


def _parse_timestamp(value: Any) -> datetime | None:
    if not value:
        return None
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def _tail_consumers(value: Any) -> list[TailConsumer] | None:
    if not isinstance(value, list):
        return None
    return [TailConsumer.from_mapping(item) for item in value if isinstance(item, Mapping)]


def _placement_mode(value: Any) -> PlacementMode | None:
    if value is None:
        return None
    try:
        return PlacementMode(str(value))
    except ValueError:
        return None


@dataclass
class WorkerMetadata:
    """Script information such as size and creation/modification dates."""

    id: str = ""
    etag: str = ""
    size: int = 0
    created_on: datetime | None = None
    modified_on: datetime | None = None
    logpush: bool | None = None
    tail_consumers: list[TailConsumer] | None = None
    last_deployed_from: str | None = None
    deployment_id: str | None = None
    placement_mode: PlacementMode | None = None
    pipeline_hash: str | None = None

    @classmethod
    def _metadata_kwargs(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        try:
            size = int(data.get("size") or 0)
        except (TypeError, ValueError):
            size = 0
        return {
            "id": str(data.get("id") or ""),
            "etag": str(data.get("etag") or ""),
            "size": size,
            "created_on": _parse_timestamp(data.get("created_on")),
            "modified_on": _parse_timestamp(data.get("modified_on")),
            "logpush": data.get("logpush"),
            "tail_consumers": _tail_consumers(data.get("tail_consumers")),
            "last_deployed_from": data.get("last_deployed_from"),
            "deployment_id": data.get("deployment_id"),
            "placement_mode": _placement_mode(data.get("placement_mode")),
            "pipeline_hash": data.get("pipeline_hash"),
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> WorkerMetadata:
        return cls(**cls._metadata_kwargs(data))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, PlacementMode):
                value = value.value
            elif isinstance(value, list):
                value = [v.to_dict() if hasattr(v, "to_dict") else v for v in value]
            out[item.name] = value
        return out


@dataclass
class WorkerScript(WorkerMetadata):
    """Script metadata plus its content, as returned by upload and download calls."""

    script: str = ""
    module: bool = False
    usage_model: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> WorkerScript:
        return cls(
            **cls._metadata_kwargs(data),
            script=str(data.get("script") or ""),
            usage_model=data.get("usage_model"),
        )


@dataclass
class ScriptSettings:
    logpush: bool | None = None
    tail_consumers: list[TailConsumer] | None = None
    bindings: list[dict[str, Any]] = field(default_factory=list)
    compatibility_date: str = ""
    compatibility_flags: list[str] = field(default_factory=list)
    placement: Placement | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ScriptSettings:
        bindings = data.get("bindings")
        flags = data.get("compatibility_flags")
        return cls(
            logpush=data.get("logpush"),
            tail_consumers=_tail_consumers(data.get("tail_consumers")),
            bindings=[dict(b) for b in bindings if isinstance(b, Mapping)] if isinstance(bindings, list) else [],
            compatibility_date=str(data.get("compatibility_date") or ""),
            compatibility_flags=[str(f) for f in flags] if isinstance(flags, list) else [],
            placement=Placement.from_mapping(data.get("placement")),
        )


@dataclass
class UploadOutcome:
    """Single result of an upload: the parsed script metadata, or the first failure and its stage."""

    ok: bool
    result: WorkerScript | None = None
    stage: UploadStage | None = None
    error: WorkerKitError | None = None

    @classmethod
    def success(cls, result: WorkerScript) -> UploadOutcome:
        return cls(ok=True, result=result)

    @classmethod
    def failure(cls, error: WorkerKitError) -> UploadOutcome:
        return cls(ok=False, stage=error.stage, error=error)

    def raise_for_error(self) -> WorkerScript:
        if self.error is not None:
            raise self.error
        if self.result is None:
            raise ValueError("upload outcome carries neither a result nor an error")
        return self.result

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "stage": self.stage.value if self.stage else None,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error.to_dict() if self.error else None,
        }
