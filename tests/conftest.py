import pytest
from typing import Dict, Any
from unittest.mock import AsyncMock, MagicMock, Mock
from datetime import datetime, timezone

from models.fetch import FetchResult
from models.target import Target

# =============================================================================
# Mock Fixtures - External Services
# =============================================================================


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for database operations."""
    client = Mock()

    # Mock table operations
    table_mock = Mock()
    table_mock.select.return_value = table_mock
    table_mock.insert.return_value = table_mock
    table_mock.update.return_value = table_mock
    table_mock.delete.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.limit.return_value = table_mock
    table_mock.execute.return_value = Mock(data=[])

    client.table.return_value = table_mock

    return client


@pytest.fixture
def mock_aiohttp_session():
    """Mock aiohttp ClientSession whose request() yields a configurable response."""
    session = MagicMock()

    response = AsyncMock()
    response.status = 200
    response.read = AsyncMock(return_value=b"<html><body>Test HTML</body></html>")
    response.text = AsyncMock(return_value="ok")
    response.headers = {"Content-Type": "text/html"}

    # Mock context manager
    session.request.return_value.__aenter__.return_value = response
    session.request.return_value.__aexit__.return_value = False
    session.response = response

    return session


@pytest.fixture
def mock_artifact_repo():
    """In-memory stand-in for the artifact repository."""
    repo = Mock()
    repo.insert_artifact = Mock(return_value=1)
    repo.update_artifact = Mock(return_value=None)
    repo.prepare = Mock(return_value=([], 0))
    return repo


@pytest.fixture
def mock_notifier():
    notifier = Mock()
    notifier.notify_change = AsyncMock()
    notifier.notify_failure = AsyncMock()
    return notifier


# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def sample_target_data() -> Dict[str, Any]:
    """Sample target configuration."""
    return {
        "name": "example-news",
        "url": "https://example.com/news",
        "description": "Example news page",
    }


@pytest.fixture
def sample_target(sample_target_data) -> Target:
    return Target(**sample_target_data)


@pytest.fixture
def make_result():
    """Factory for FetchResult objects."""

    def _make(body: bytes = b"<html><body>Hello</body></html>", status_code: int = 200):
        return FetchResult(
            status_code=status_code,
            headers={"Content-Type": "text/html"},
            duration=0.25,
            body=body,
        )

    return _make


@pytest.fixture
def sample_feed() -> str:
    return """<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0">
      <channel>
        <title>Example Feed</title>
        <link>https://example.com/</link>
        <description>Latest posts</description>
        <item>
          <title>First post</title>
          <link>https://example.com/1</link>
          <description>Hello world</description>
        </item>
      </channel>
    </rss>
    """


# =============================================================================
# Test Utilities
# =============================================================================


@pytest.fixture
def freeze_time():
    """Fixture to freeze time for testing."""
    return datetime(2024, 12, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Async Test Helpers
# =============================================================================


@pytest.fixture
def async_return():
    """Helper to create async functions that return a value."""

    def _async_return(value):
        async def _inner(*args, **kwargs):
            return value

        return _inner

    return _async_return


@pytest.fixture
def async_raise():
    """Helper to create async functions that raise an exception."""

    def _async_raise(exception):
        async def _inner(*args, **kwargs):
            raise exception

        return _inner

    return _async_raise
