# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Choose between a raw script body and a multipart envelope."""

from __future__ import annotations

from ..models.upload import UploadRequest

RAW_SCRIPT_CONTENT_TYPE = "application/javascript"


def requires_multipart(request: UploadRequest) -> bool:
    """Return True when the upload carries anything besides plain classic script content."""
    return bool(
        request.module
        or request.logpush is not None
        or request.placement is not None
        or request.bindings
        or request.compatibility_date
        or request.compatibility_flags
        or request.tail_consumers is not None
        or request.tags
    )


def requires_multipart_content(request: UploadRequest) -> bool:
    """Content-only updates ignore metadata; only module scripts need the envelope."""
    return bool(request.module)


__all__ = ["RAW_SCRIPT_CONTENT_TYPE", "requires_multipart", "requires_multipart_content"]
