import pytest

from vtryon.config import Settings


@pytest.fixture
def settings():
    return Settings(gemini_api_key="test-key", retry_backoff=0.0)
