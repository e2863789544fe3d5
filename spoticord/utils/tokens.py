"""Random token generation for account link requests."""

from __future__ import annotations

import secrets
import string

ALPHABET = string.ascii_letters + string.digits


def generate_link_token(length: int = 64) -> str:
    """Return ``length`` random characters drawn from ``[A-Za-z0-9]``."""
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
