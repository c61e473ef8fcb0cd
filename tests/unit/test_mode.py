# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest

from workerkit.models import KvNamespaceBinding, Placement, PlacementMode, UploadRequest
from workerkit.multipart import requires_multipart, requires_multipart_content


def test_plain_classic_script_is_raw():
    assert requires_multipart(UploadRequest(script_name="w", script="console.log(1)")) is False


@pytest.mark.parametrize(
    "overrides",
    [
        {"module": True},
        {"logpush": False},
        {"placement": Placement(PlacementMode.SMART)},
        {"bindings": {"KV": KvNamespaceBinding(namespace_id="abc")}},
        {"compatibility_date": "2024-01-01"},
        {"compatibility_flags": ["nodejs_compat"]},
        {"tail_consumers": []},
        {"tags": ["prod"]},
    ],
)
def test_any_metadata_requires_multipart(overrides):
    assert requires_multipart(UploadRequest(script_name="w", script="x", **overrides)) is True


def test_content_update_only_needs_multipart_for_modules():
    classic = UploadRequest(script_name="w", script="x", tags=["prod"])
    module = UploadRequest(script_name="w", script="x", module=True)
    assert requires_multipart_content(classic) is False
    assert requires_multipart_content(module) is True
