"""Discord to Spotify account linkage and access token storage."""

from spoticord.config import Settings, get_settings
from spoticord.errors import (
    BackendError,
    Conflict,
    MigrationFailure,
    NotFound,
    PoolExhausted,
    RefreshTokenFailure,
    StoreConnectionError,
    StoreError,
)
from spoticord.store import Store

__all__ = [
    "BackendError",
    "Conflict",
    "MigrationFailure",
    "NotFound",
    "PoolExhausted",
    "RefreshTokenFailure",
    "Settings",
    "Store",
    "StoreConnectionError",
    "StoreError",
    "get_settings",
]
