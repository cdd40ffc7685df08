"""Pytest configuration and fixtures."""

import pytest
from unittest.mock import MagicMock

from botocore.exceptions import ClientError

import config
from plugins.registry import reset_registry
from retry import RetryPolicy


@pytest.fixture(autouse=True)
def reset_globals():
    """Start every test with a fresh registry and configuration."""
    reset_registry()
    config.reset_config()
    yield
    reset_registry()
    config.reset_config()


@pytest.fixture
def client_error():
    """Factory for botocore ClientErrors with a given code and message."""

    def make(code, message="", operation="Operation"):
        return ClientError({"Error": {"Code": code, "Message": message}}, operation)

    return make


@pytest.fixture
def fast_policy():
    """Retry policy that makes a single retry and never sleeps."""
    return RetryPolicy(
        timeout=0.0, min_delay=0.0, max_delay=0.0, wait_timeout=1.0, poll_interval=0.0
    )


@pytest.fixture
def mock_client():
    """Create a mock boto3 client."""
    return MagicMock()

