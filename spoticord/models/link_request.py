"""Pending account link request model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from spoticord.models.base import Base, utcnow


class LinkRequest(Base):
    __tablename__ = "link_request"

    # One outstanding request per user; a new request replaces the old one
    user_id: Mapped[str] = mapped_column(
        ForeignKey("user.id", ondelete="CASCADE"), primary_key=True
    )
    token: Mapped[str] = mapped_column(String, unique=True)
    expires: Mapped[datetime] = mapped_column(DateTime)

    def is_expired(self) -> bool:
        return self.expires <= utcnow()
