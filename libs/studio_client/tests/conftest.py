"""Shared fixtures for the Studio client tests."""

from __future__ import annotations

import pytest
from client_test_utils import FakeEventChannel


@pytest.fixture
def fake_channel() -> FakeEventChannel:
    return FakeEventChannel()
