# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Run the multipart encoder and the transport concurrently over one pipe.

Each multipart upload uses two threads: the encode task writes the message into
the pipe, the transmit task hands the pipe's reader to the transport as a
streaming request body. Each task reports exactly once to a shared recorder
that keeps the first failure, and each closes its own pipe end on every exit
path. The coordinator always waits for both tasks before returning.

A cancel event travels with the HTTP request so the transport can give up
while waiting for a response, and the coordinator closes both pipe ends. An
upload the transport already completed is reported as a success even if the
cancel arrived meanwhile.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Any

from ..config import HttpSettings, load_http_settings
from ..errors import (
    EncodeError,
    TransmitError,
    UnreadablePayload,
    UploadCancelled,
    WorkerKitError,
    categorize_exception,
)
from ..http.client import HttpClient
from ..http.envelope import unwrap_result
from ..http.models import HttpRequest, HttpResponse
from ..models.script import UploadOutcome, WorkerScript
from ..models.upload import UploadRequest
from ..multipart.encoder import check_payload, encode_upload
from ..multipart.mode import RAW_SCRIPT_CONTENT_TYPE, requires_multipart
from ..multipart.writer import MultipartWriter
from .pipe import StreamPipe

logger = logging.getLogger(__name__)

CANCEL_POLL_INTERVAL = 0.05
ENCODE_TASK = "encode"
TRANSMIT_TASK = "transmit"


class _FirstFailure:
    """Collects one terminal signal per task and keeps the earliest failure."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._signals: dict[str, WorkerKitError | None] = {}
        self.error: WorkerKitError | None = None

    def report(self, task: str, error: WorkerKitError | None) -> None:
        with self._lock:
            if task in self._signals:
                raise RuntimeError(f"{task} task reported more than once")
            self._signals[task] = error
            self._offer(task, error)

    def cancel(self, error: UploadCancelled) -> bool:
        """Record a cancellation unless the transmit task has already finished."""
        with self._lock:
            if TRANSMIT_TASK in self._signals:
                return False
            self._offer("cancel", error)
            return True

    def _offer(self, source: str, error: WorkerKitError | None) -> None:
        if error is None:
            return
        if self.error is None:
            logger.debug("%s failed first (stage=%s): %s", source, error.stage.value, error)
            self.error = error
        else:
            logger.debug("Dropping later %s failure (stage=%s): %s", source, error.stage.value, error)

    @property
    def signals(self) -> dict[str, WorkerKitError | None]:
        with self._lock:
            return dict(self._signals)


def _iter_stream(source: Any, chunk_size: int, cancel: threading.Event | None = None) -> Iterator[bytes]:
    while True:
        if cancel is not None and cancel.is_set():
            raise UploadCancelled("upload cancelled while streaming the script")
        chunk = source.read(chunk_size)
        if not chunk:
            return
        yield chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)


def parse_upload_response(response: HttpResponse) -> WorkerScript:
    result = unwrap_result(response)
    if result is None:
        return WorkerScript()
    if not isinstance(result, dict):
        raise TransmitError("unexpected upload result: expected a JSON object", status_code=response.status_code)
    return WorkerScript.from_mapping(result)


class StreamingUploader:
    """Uploads one script through an injected transport.

    ``last_pipe`` and ``last_signals`` keep the pipe and the per-task terminal
    signals of the most recent multipart upload for inspection.
    """

    def __init__(self, transport: HttpClient, settings: HttpSettings | None = None):
        self.transport = transport
        self.settings = settings or load_http_settings()
        self.last_pipe: StreamPipe | None = None
        self.last_signals: dict[str, WorkerKitError | None] = {}

    def upload(
        self,
        request: UploadRequest,
        *,
        url: str,
        method: str = "PUT",
        headers: dict[str, str] | None = None,
        multipart: bool | None = None,
        cancel: threading.Event | None = None,
    ) -> UploadOutcome:
        if multipart is None:
            multipart = requires_multipart(request)
        logger.debug("Uploading %s via %s %s (multipart=%s)", request.script_name, method, url, multipart)

        if cancel is not None and cancel.is_set():
            return UploadOutcome.failure(UploadCancelled("upload cancelled before start"))
        if not multipart:
            return self._upload_raw(request, url=url, method=method, headers=headers, cancel=cancel)
        return self._upload_multipart(request, url=url, method=method, headers=headers, cancel=cancel)

    def _send(self, http_request: HttpRequest) -> WorkerScript:
        try:
            response = self.transport.request(http_request)
        except UploadCancelled:
            raise
        except Exception as exc:  # noqa: BLE001
            if http_request.cancelled:
                raise UploadCancelled("upload cancelled", cause=exc) from exc
            raise TransmitError(f"transport raised {type(exc).__name__}: {exc}", cause=exc, category=categorize_exception(exc)) from exc
        if not response.ok and http_request.cancelled:
            raise UploadCancelled(f"upload cancelled: {response.error_message or 'transport stopped'}")
        return parse_upload_response(response)

    def _upload_raw(
        self,
        request: UploadRequest,
        *,
        url: str,
        method: str,
        headers: dict[str, str] | None,
        cancel: threading.Event | None,
    ) -> UploadOutcome:
        try:
            check_payload(request.script)
        except UnreadablePayload as exc:
            return UploadOutcome.failure(exc)

        script = request.script
        if isinstance(script, (str, bytes)):
            body: Any = script
        elif isinstance(script, (bytearray, memoryview)):
            body = bytes(script)
        else:
            body = _iter_stream(script, self.settings.chunk_bytes, cancel)

        request_headers = dict(headers or {})
        request_headers["Content-Type"] = RAW_SCRIPT_CONTENT_TYPE
        http_request = HttpRequest(url=url, method=method, headers=request_headers, body=body, cancel=cancel)
        try:
            result = self._send(http_request)
        except TransmitError as exc:
            return UploadOutcome.failure(exc)
        return UploadOutcome.success(result)

    def _upload_multipart(
        self,
        request: UploadRequest,
        *,
        url: str,
        method: str,
        headers: dict[str, str] | None,
        cancel: threading.Event | None,
    ) -> UploadOutcome:
        pipe = StreamPipe(self.settings.pipe_buffer_bytes, chunk_size=self.settings.chunk_bytes)
        self.last_pipe = pipe
        mpw = MultipartWriter(pipe.writer, chunk_size=self.settings.chunk_bytes)
        request_headers = dict(headers or {})
        request_headers["Content-Type"] = mpw.content_type
        http_request = HttpRequest(url=url, method=method, headers=request_headers, body=pipe.reader, cancel=cancel)
        failures = _FirstFailure()
        results: list[WorkerScript] = []

        def encode_task() -> None:
            error: WorkerKitError | None = None
            try:
                encode_upload(request, mpw)
            except EncodeError as exc:
                error = exc
            except Exception as exc:  # noqa: BLE001
                error = EncodeError(f"encoder crashed: {exc}", cause=exc)
            finally:
                failures.report(ENCODE_TASK, error)
                pipe.writer.close(error)

        def transmit_task() -> None:
            error: WorkerKitError | None = None
            try:
                results.append(self._send(http_request))
            except TransmitError as exc:
                error = exc
            except Exception as exc:  # noqa: BLE001
                error = TransmitError(f"transmit crashed: {exc}", cause=exc)
            finally:
                failures.report(TRANSMIT_TASK, error)
                pipe.reader.close(error)

        cancelled = False
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="workerkit-upload") as executor:
            pending = {executor.submit(encode_task), executor.submit(transmit_task)}
            while pending:
                timeout = CANCEL_POLL_INTERVAL if cancel is not None and not cancelled else None
                done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
                for future in done:
                    future.result()
                if cancel is not None and not cancelled and pending and cancel.is_set():
                    cancelled = True
                    error = UploadCancelled("upload cancelled")
                    if failures.cancel(error):
                        logger.debug("Cancelling upload of %s", request.script_name)
                        pipe.close(error)

        self.last_signals = failures.signals
        if results and isinstance(failures.error, UploadCancelled):
            logger.debug("Upload of %s completed before the cancel took effect", request.script_name)
            return UploadOutcome.success(results[0])
        if failures.error is not None:
            return UploadOutcome.failure(failures.error)
        return UploadOutcome.success(results[0])


__all__ = ["StreamingUploader", "parse_upload_response"]
