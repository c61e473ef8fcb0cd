# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""High-level workerkit facade for script upload, download and settings calls."""

from __future__ import annotations

import json
import logging
import threading
from contextlib import suppress
from typing import Any
from urllib.parse import quote

from .config import HttpSettings, load_http_settings
from .errors import TransmitError, ValidationError, categorize_exception
from .http.client import HttpClient, create_default_http_client
from .http.envelope import check_transport, unwrap_result
from .http.headers import header_value
from .http.models import HttpRequest, HttpResponse
from .models import ScriptSettings, SettingsUpdateRequest, UploadOutcome, UploadRequest, WorkerMetadata, WorkerScript
from .models.bindings import serialize_binding
from .multipart import decode_script, requires_multipart, requires_multipart_content
from .streaming import StreamingUploader

logger = logging.getLogger(__name__)


class WorkerKit:
    """
    Account-scoped client for deployable scripts.

    Uploads go through ``StreamingUploader`` so large scripts are encoded and
    sent concurrently without buffering the whole message. Upload calls return
    an ``UploadOutcome``; the other calls raise ``WorkerKitError`` subclasses.
    """

    requires_multipart = staticmethod(requires_multipart)

    def __init__(
        self,
        account_id: str | None = None,
        http_client: HttpClient | None = None,
        settings: HttpSettings | None = None,
    ):
        self.http_settings = settings or load_http_settings()
        self.account_id = account_id or self.http_settings.account_id
        self.http_client = http_client or create_default_http_client(self.http_settings)
        self.uploader = StreamingUploader(self.http_client, self.http_settings)

    def _url(self, *segments: str) -> str:
        if not self.account_id:
            raise ValidationError("account id is required")
        path = "/".join(quote(str(segment), safe="") for segment in segments)
        return f"{self.http_settings.base_url.rstrip('/')}/accounts/{quote(self.account_id, safe='')}/workers/{path}"

    def _script_url(self, script_name: str, *suffix: str, dispatch_namespace: str | None = None) -> str:
        if not script_name:
            raise ValidationError("script name is required")
        if dispatch_namespace:
            return self._url("dispatch", "namespaces", dispatch_namespace, "scripts", script_name, *suffix)
        return self._url("scripts", script_name, *suffix)

    def _request(self, method: str, url: str, *, headers: dict[str, str] | None = None, body: Any = None) -> HttpResponse:
        logger.debug("%s %s", method, url)
        try:
            return self.http_client.request(HttpRequest(url=url, method=method, headers=headers, body=body))
        except Exception as exc:  # noqa: BLE001
            raise TransmitError(f"transport raised {type(exc).__name__}: {exc}", cause=exc, category=categorize_exception(exc)) from exc

    def upload_script(self, request: UploadRequest, *, cancel: threading.Event | None = None) -> UploadOutcome:
        """Upload a script with its bindings and metadata."""
        try:
            url = self._script_url(request.script_name, dispatch_namespace=request.dispatch_namespace)
        except ValidationError as exc:
            return UploadOutcome.failure(exc)
        return self.uploader.upload(request, url=url, method="PUT", multipart=requires_multipart(request), cancel=cancel)

    def update_script_content(self, request: UploadRequest, *, cancel: threading.Event | None = None) -> UploadOutcome:
        """Replace only the script content; bindings and other metadata on ``request`` are ignored."""
        try:
            url = self._script_url(request.script_name, "content", dispatch_namespace=request.dispatch_namespace)
        except ValidationError as exc:
            return UploadOutcome.failure(exc)
        content_request = UploadRequest(
            script_name=request.script_name,
            script=request.script,
            module=request.module,
            dispatch_namespace=request.dispatch_namespace,
        )
        return self.uploader.upload(
            content_request,
            url=url,
            method="PUT",
            multipart=requires_multipart_content(content_request),
            cancel=cancel,
        )

    def fetch_script(self, script_name: str) -> WorkerScript:
        """Download a script; module scripts arrive as multipart and are unwrapped to their main module."""
        response = self._request("GET", self._script_url(script_name))
        check_transport(response)
        decoded = decode_script(header_value(response.headers, "content-type"), response.content)
        return WorkerScript(script=decoded.script, module=decoded.module)

    def fetch_script_content(self, script_name: str) -> str:
        response = self._request("GET", self._script_url(script_name, "content", "v2"))
        check_transport(response)
        return response.content.decode("utf-8", errors="replace")

    def get_script_settings(self, script_name: str) -> ScriptSettings:
        result = unwrap_result(self._request("GET", self._script_url(script_name, "settings")))
        return ScriptSettings.from_mapping(result if isinstance(result, dict) else {})

    def update_script_settings(self, request: SettingsUpdateRequest) -> ScriptSettings:
        """Patch script metadata. Bindings that need their own body part cannot be sent this way."""
        url = self._script_url(request.script_name, "settings")
        body: dict[str, Any] = {}
        descriptors = []
        for name, binding in request.bindings.items():
            descriptor, writer = serialize_binding(name, binding)
            if writer is not None:
                raise ValidationError(f"binding {name!r} ({descriptor['type']}) requires a full script upload")
            descriptors.append(descriptor)
        if descriptors:
            body["bindings"] = descriptors
        if request.logpush is not None:
            body["logpush"] = request.logpush
        if request.tail_consumers is not None:
            body["tail_consumers"] = [consumer.to_dict() for consumer in request.tail_consumers]
        if request.compatibility_date:
            body["compatibility_date"] = request.compatibility_date
        if request.compatibility_flags:
            body["compatibility_flags"] = list(request.compatibility_flags)
        if request.placement is not None:
            body["placement"] = request.placement.to_dict()

        response = self._request(
            "PATCH",
            url,
            headers={"Content-Type": "application/json"},
            body=json.dumps(body, separators=(",", ":")),
        )
        result = unwrap_result(response)
        return ScriptSettings.from_mapping(result if isinstance(result, dict) else {})

    def list_scripts(self) -> list[WorkerMetadata]:
        result = unwrap_result(self._request("GET", self._url("scripts")))
        if not isinstance(result, list):
            return []
        return [WorkerMetadata.from_mapping(item) for item in result if isinstance(item, dict)]

    def delete_script(self, script_name: str) -> None:
        unwrap_result(self._request("DELETE", self._script_url(script_name)))

    def close(self) -> None:
        with suppress(Exception):
            if hasattr(self.http_client, "close"):
                self.http_client.close()

    def __enter__(self) -> WorkerKit:
        return self

    def __exit__(self, _exc_type, _exc, _tb) -> None:  # noqa: ANN001
        self.close()


__all__ = ["WorkerKit"]
