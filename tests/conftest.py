from __future__ import annotations

from typing import Iterator

import pytest
from moto import mock_aws

from learning.config import OverviewSettings
from learning.table import OverviewTable


@pytest.fixture()
def settings() -> OverviewSettings:
    return OverviewSettings(
        region="us-east-1",
        log_requests=False,
        spawn_emulator=False,
        user_count=30,
        page_size=10,
    )


@pytest.fixture()
def aws() -> Iterator[None]:
    with mock_aws():
        yield


@pytest.fixture()
def table(aws: None, settings: OverviewSettings) -> OverviewTable:
    """Table bound to moto's in-process DynamoDB instead of an emulator."""

    handle = OverviewTable(settings, endpoint_url=None)
    handle.create_table()
    return handle
