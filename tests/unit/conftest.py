# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import pytest
from helpers import ACCOUNT_ID, BASE_URL

from workerkit.config import HttpSettings


@pytest.fixture
def settings() -> HttpSettings:
    return HttpSettings(
        base_url=BASE_URL,
        account_id=ACCOUNT_ID,
        pipe_buffer_bytes=64 * 1024,
        chunk_bytes=16 * 1024,
    )
