"""Repositories over the credential store tables."""

from spoticord.repositories.accounts import AccountRepository
from spoticord.repositories.link_requests import LinkRequestRepository
from spoticord.repositories.users import UserRepository

__all__ = [
    "AccountRepository",
    "LinkRequestRepository",
    "UserRepository",
]
