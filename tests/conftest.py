"""Shared test fixtures for the credential store test suite.

Repositories run against a throwaway SQLite database per test, migrated with
the real Alembic revisions, and talk to a fake Spotify client that records
every refresh it is asked to perform.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
import pytest_asyncio

from spoticord.config import Settings
from spoticord.models.base import utcnow
from spoticord.spotify_oauth import SpotifyTokens
from spoticord.store import Store


# ---------------------------------------------------------------------------
# Spotify fake
# ---------------------------------------------------------------------------


class FakeSpotifyOAuth:
    """Stands in for SpotifyOAuth; counts refresh calls."""

    def __init__(self, tokens: SpotifyTokens | None = None, error: Exception | None = None):
        self.tokens = tokens
        self.error = error
        self.calls: list[str] = []

    async def refresh_access_token(self, refresh_token: str) -> SpotifyTokens | None:
        self.calls.append(refresh_token)
        # Yield so concurrent callers get a chance to interleave
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.tokens


@pytest.fixture
def fresh_tokens() -> SpotifyTokens:
    return SpotifyTokens(
        access_token="new-access",
        refresh_token="new-refresh",
        expires_in=3600,
        expires_at=utcnow() + timedelta(hours=1),
    )


@pytest.fixture
def fake_oauth(fresh_tokens) -> FakeSpotifyOAuth:
    return FakeSpotifyOAuth(tokens=fresh_tokens)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'spoticord.db'}",
        spotify_client_id="client-id",
        spotify_client_secret="client-secret",
        link_url="https://spoticord.test/link",
    )


@pytest_asyncio.fixture
async def store(settings, fake_oauth):
    store = await Store.connect(settings, oauth=fake_oauth)
    yield store
    await store.close()


@pytest.fixture
def make_account(store):
    """Factory that links a Spotify account to a (new) user."""

    async def _make(
        user_id: str = "1234",
        access_token: str = "old-access",
        refresh_token: str = "old-refresh",
        expires_in: timedelta = timedelta(hours=1),
    ):
        await store.users.get_or_create(user_id)
        return await store.accounts.upsert(
            user_id,
            access_token=access_token,
            refresh_token=refresh_token,
            expires=utcnow() + expires_in,
            username="spotify-user",
        )

    return _make
