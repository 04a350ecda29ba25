"""Shared test fixtures for the tasksync test suite."""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from tasksync.config import TaskSyncConfig


@pytest.fixture
def config() -> TaskSyncConfig:
    """Default test configuration with a dummy token."""
    return TaskSyncConfig(token="test-token-1234")


@pytest.fixture
def est() -> timezone:
    """Fixed UTC-05:00 zone, so due-date conversions do not depend on the host."""
    return timezone(timedelta(hours=-5))
