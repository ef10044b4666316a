"""Pytest configuration and fixtures."""

import os

import pytest

from pitchperfect.core.local_storage import MemoryStorage
from tests.helpers import FakeClock


@pytest.fixture(scope="session", autouse=True)
def setup_test_env():
    """Set up test environment variables."""
    os.environ["SUPABASE_URL"] = "https://test.supabase.co"
    os.environ["SUPABASE_SERVICE_ROLE_KEY"] = "test-key"
    os.environ["SUPABASE_ANON_KEY"] = "test-anon-key"
    os.environ["OPENAI_API_KEY"] = "test-openai-key"
    os.environ["PITCH_ENV"] = "test"

    from pitchperfect.core.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage():
    """Fresh in-memory device storage."""
    return MemoryStorage()


@pytest.fixture
def clock():
    return FakeClock()
