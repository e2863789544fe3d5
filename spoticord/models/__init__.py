"""SQLAlchemy models."""

from spoticord.models.account import Account
from spoticord.models.base import Base, utcnow
from spoticord.models.link_request import LinkRequest
from spoticord.models.user import User

__all__ = [
    "Account",
    "Base",
    "LinkRequest",
    "User",
    "utcnow",
]
