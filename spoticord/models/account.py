"""Linked Spotify account model."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from spoticord.models.base import Base, utcnow


class Account(Base):
    __tablename__ = "account"

    user_id: Mapped[str] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), primary_key=True
    )
    username: Mapped[str | None] = mapped_column(String(64), default=None)
    access_token: Mapped[str] = mapped_column(String(1024))
    refresh_token: Mapped[str] = mapped_column(String(1024))
    session_token: Mapped[str | None] = mapped_column(String(1024), default=None)
    # Naive UTC
    expires: Mapped[datetime] = mapped_column(DateTime)
    last_updated: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def is_expiring(self, margin: timedelta = timedelta(0)) -> bool:
        """True when the access token expires within ``margin`` from now."""
        return self.expires <= utcnow() + margin
