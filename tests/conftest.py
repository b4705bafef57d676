"""Pytest configuration and fixtures shared across all test modules.

Environment defaults must be in place before anything imports
``app.core.config``, because settings are read once at import time.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("APP_ADMIN_API_KEYS", "test-admin-key")
os.environ.setdefault("LOG_LEVEL", "INFO")

from unittest.mock import Mock

import pytest


@pytest.fixture
def clock() -> Mock:
    """Controllable time source returning UNIX seconds."""
    return Mock(return_value=1000.0)
