"""Shared fixtures for unit tests."""

from unittest.mock import Mock

import pytest


class FakeClock:
    """Deterministic monotonic clock advanced by its own sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock():
    """Fake clock for poll loops."""
    return FakeClock()


@pytest.fixture
def mock_client():
    """Mock GatewayClient; tests set ``request`` behaviour."""
    client = Mock()
    client.base_url = "https://localhost:5003/v1/api/"
    return client
