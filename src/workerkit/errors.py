# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers.

Every failure surfaced by the upload pipeline is a ``WorkerKitError`` tagged
with the stage it happened in, so callers can tell an encoding problem from a
network problem without inspecting the wrapped cause.
"""

from __future__ import annotations

from enum import Enum


class UploadStage(str, Enum):
    VALIDATION = "validation"
    ENCODE = "encode"
    TRANSMIT = "transmit"
    DECODE = "decode"


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    RATE_LIMITED = "RATE_LIMITED"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NONE = "NONE"


class WorkerKitError(Exception):
    """Base class for all workerkit failures."""

    stage: UploadStage = UploadStage.VALIDATION

    def __init__(self, message: str, *, cause: BaseException | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, object]:
        return {
            "stage": self.stage.value,
            "error_type": type(self).__name__,
            "message": self.message,
            "cause": None if self.cause is None else f"{type(self.cause).__name__}: {self.cause}",
        }


class ValidationError(WorkerKitError):
    """Missing identifiers; raised before any request or thread is created."""

    stage = UploadStage.VALIDATION


class InvalidBindingKind(WorkerKitError):
    stage = UploadStage.ENCODE


class UnreadablePayload(WorkerKitError):
    stage = UploadStage.ENCODE


class EncodeError(WorkerKitError):
    """Serialization or I/O failure while writing the multipart message."""

    stage = UploadStage.ENCODE


class TransmitError(WorkerKitError):
    """The transport failed, the API rejected the request, or its response was unreadable."""

    stage = UploadStage.TRANSMIT

    def __init__(
        self,
        message: str,
        *,
        cause: BaseException | None = None,
        status_code: int | None = None,
        errors: list[str] | None = None,
        category: ErrorCategory = ErrorCategory.NONE,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code
        self.errors = list(errors or [])
        self.category = category

    def to_dict(self) -> dict[str, object]:
        data = super().to_dict()
        data.update({"status_code": self.status_code, "errors": list(self.errors), "category": self.category.value})
        return data


class UploadCancelled(TransmitError):
    pass


class MalformedMultipart(WorkerKitError):
    stage = UploadStage.DECODE


def categorize_exception(exc: BaseException) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    import socket
    import ssl as ssl_module

    import httpx

    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    if isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, ConnectionError):
        return ErrorCategory.CONNECTION_ERROR

    return ErrorCategory.UNKNOWN_ERROR


def categorize_status(status_code: int | None) -> ErrorCategory:
    if status_code is None:
        return ErrorCategory.NONE
    if status_code == 429:
        return ErrorCategory.RATE_LIMITED
    if status_code >= 400:
        return ErrorCategory.HTTP_ERROR
    return ErrorCategory.NONE


__all__ = [
    "EncodeError",
    "ErrorCategory",
    "InvalidBindingKind",
    "MalformedMultipart",
    "TransmitError",
    "UnreadablePayload",
    "UploadCancelled",
    "UploadStage",
    "ValidationError",
    "WorkerKitError",
    "categorize_exception",
    "categorize_status",
]
