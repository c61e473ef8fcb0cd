# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Multipart wire format: mode selection, encoding and decoding of script uploads."""

from .decoder import DecodedScript, decode_script, read_first_part
from .encoder import (
    CLASSIC_CONTENT_TYPE,
    CLASSIC_SCRIPT_PART,
    METADATA_PART,
    MODULE_CONTENT_TYPE,
    MODULE_SCRIPT_PART,
    build_metadata,
    encode_upload,
)
from .mode import RAW_SCRIPT_CONTENT_TYPE, requires_multipart, requires_multipart_content
from .writer import MultipartWriter

__all__ = [
    "CLASSIC_CONTENT_TYPE",
    "CLASSIC_SCRIPT_PART",
    "METADATA_PART",
    "MODULE_CONTENT_TYPE",
    "MODULE_SCRIPT_PART",
    "RAW_SCRIPT_CONTENT_TYPE",
    "DecodedScript",
    "MultipartWriter",
    "build_metadata",
    "decode_script",
    "encode_upload",
    "read_first_part",
    "requires_multipart",
    "requires_multipart_content",
]
