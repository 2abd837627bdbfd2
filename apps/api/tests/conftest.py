"""Shared fixtures; the signing key pair must exist before `livecast.main` is imported."""
from __future__ import annotations

import os

os.environ.setdefault("LIVEKIT_API_KEY", "test-api-key")
os.environ.setdefault("LIVEKIT_API_SECRET", "test-api-secret-with-enough-length")

import pytest

from livecast.core.config import Settings
from livecast.services.grants import GrantEncoder

TEST_KEY = "test-api-key"
TEST_SECRET = "test-api-secret-with-enough-length"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        livekit_api_key=TEST_KEY,
        livekit_api_secret=TEST_SECRET,
        livekit_url="ws://livekit.test:7880/",
        token_rate_limit_per_minute=0,
    )


@pytest.fixture
def encoder(settings: Settings) -> GrantEncoder:
    return GrantEncoder(settings.livekit_api_key, settings.livekit_api_secret)
