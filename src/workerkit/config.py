# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Configuration helpers for workerkit."""

import os
from dataclasses import dataclass

from .version import __version__

DEFAULT_USER_AGENT = f"workerkit/{__version__} (+https://github.com/workerkit/workerkit)"
DEFAULT_API_BASE_URL = "https://api.cloudflare.com/client/v4"


def _float_env(name: str, default: float) -> float:
    try:
        value = os.getenv(name)
        return float(value) if value is not None else default
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    try:
        value = os.getenv(name)
        return int(value) if value is not None else default
    except ValueError:
        return default


def _positive_int_env(name: str, default: int) -> int:
    value = _int_env(name, default)
    return value if value > 0 else default


def _bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class HttpSettings:
    """HTTP client and streaming defaults."""

    base_url: str = DEFAULT_API_BASE_URL
    api_token: str | None = None
    account_id: str | None = None
    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    verify_ssl: bool = True
    pipe_buffer_bytes: int = 256 * 1024
    chunk_bytes: int = 64 * 1024
    max_response_bytes: int = 16 * 1024 * 1024

    @classmethod
    def from_env(cls) -> "HttpSettings":
        """Create settings from environment variables (evaluated at call time)."""
        return cls(
            base_url=os.getenv("WORKERKIT_API_BASE_URL", cls.base_url).rstrip("/"),
            api_token=os.getenv("WORKERKIT_API_TOKEN") or None,
            account_id=os.getenv("WORKERKIT_ACCOUNT_ID") or None,
            timeout=_float_env("WORKERKIT_HTTP_TIMEOUT", cls.timeout),
            user_agent=os.getenv("WORKERKIT_USER_AGENT", cls.user_agent),
            verify_ssl=_bool_env("WORKERKIT_HTTP_VERIFY_SSL", cls.verify_ssl),
            pipe_buffer_bytes=_positive_int_env("WORKERKIT_PIPE_BUFFER_BYTES", cls.pipe_buffer_bytes),
            chunk_bytes=_positive_int_env("WORKERKIT_CHUNK_BYTES", cls.chunk_bytes),
            max_response_bytes=_positive_int_env("WORKERKIT_MAX_RESPONSE_BYTES", cls.max_response_bytes),
        )


def load_http_settings() -> HttpSettings:
    """Load HTTP settings from environment with sensible defaults."""
    return HttpSettings.from_env()
