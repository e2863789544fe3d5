"""Spotify OAuth client: authorization URL, code exchange and token refresh."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from urllib.parse import urlencode

import httpx
import structlog

from spoticord.models.base import utcnow

logger = structlog.get_logger()

SPOTIFY_AUTH_URL = "https://accounts.spotify.com/authorize"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"

DEFAULT_SCOPES = (
    "streaming",
    "user-read-email",
    "user-read-private",
)


@dataclass
class SpotifyTokens:
    """Normalized token response from Spotify."""

    access_token: str
    refresh_token: str | None = None  # only present when Spotify rotates it
    expires_in: int | None = None  # seconds
    expires_at: datetime | None = None  # naive UTC
    scope: str | None = None
    token_type: str = "Bearer"


def _parse_tokens(data: dict) -> SpotifyTokens:
    """Normalize a token endpoint body.

    Raises:
        ValueError: If the body has no access token or a bad expiry.
    """
    if not isinstance(data, dict) or not data.get("access_token"):
        raise ValueError("Spotify token response has no access_token")

    expires_in = data.get("expires_in")
    expires_at = None
    if expires_in is not None:
        try:
            expires_in = int(expires_in)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Spotify token response has invalid expires_in: {expires_in!r}") from e
        expires_at = utcnow() + timedelta(seconds=expires_in)

    return SpotifyTokens(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token") or None,
        expires_in=expires_in,
        expires_at=expires_at,
        scope=data.get("scope"),
        token_type=data.get("token_type", "Bearer"),
    )


class SpotifyOAuth:
    """Spotify Accounts service client.

    Spotify authenticates the client with HTTP Basic auth on the token
    endpoint. Access tokens live for an hour; the refresh token may or may
    not be rotated on refresh.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str = SPOTIFY_TOKEN_URL,
        timeout: float = 15.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.timeout = timeout

    def get_auth_url(
        self, redirect_uri: str, state: str, scopes: tuple[str, ...] = DEFAULT_SCOPES
    ) -> str:
        """Build the authorization URL the linking page redirects to."""
        params = urlencode(
            {
                "client_id": self.client_id,
                "response_type": "code",
                "redirect_uri": redirect_uri,
                "state": state,
                "scope": " ".join(scopes),
            }
        )
        return f"{SPOTIFY_AUTH_URL}?{params}"

    async def exchange_code(self, code: str, redirect_uri: str) -> SpotifyTokens:
        """Exchange an authorization code for tokens.

        Raises:
            ValueError: If Spotify rejects the code or returns a malformed body.
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                self.token_url,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "redirect_uri": redirect_uri,
                },
                auth=(self.client_id, self.client_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )

        if resp.status_code != 200:
            logger.warning(
                "spotify_token_exchange_failed",
                status=resp.status_code,
                body=resp.text[:500],
            )
            raise ValueError(
                f"Spotify token exchange failed ({resp.status_code}): {resp.text[:200]}"
            )

        try:
            return _parse_tokens(resp.json())
        except ValueError as e:
            logger.warning("spotify_token_exchange_invalid_body", error=str(e))
            raise ValueError(f"Spotify token exchange returned an invalid body: {e}") from e

    async def refresh_access_token(self, refresh_token: str) -> SpotifyTokens | None:
        """Mint a new access token from a stored refresh token.

        Returns None when Spotify refuses the refresh token or cannot be
        reached; the caller decides what a dead link means.
        """
        if not refresh_token:
            return None

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.token_url,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": refresh_token,
                    },
                    auth=(self.client_id, self.client_secret),
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            logger.error("spotify_token_refresh_exception", error=str(e))
            return None

        if resp.status_code != 200:
            logger.warning(
                "spotify_token_refresh_failed",
                status=resp.status_code,
                body=resp.text[:300],
            )
            return None

        try:
            data = resp.json()
        except ValueError:
            logger.warning("spotify_token_refresh_invalid_body", body=resp.text[:300])
            return None
        try:
            tokens = _parse_tokens(data)
        except ValueError as e:
            logger.warning("spotify_token_refresh_empty", error=str(e))
            return None

        logger.info("spotify_token_refresh_success")
        return tokens
