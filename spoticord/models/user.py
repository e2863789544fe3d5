"""Discord user model."""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from spoticord.models.base import Base


class User(Base):
    __tablename__ = "user"

    id: Mapped[str] = mapped_column(String, primary_key=True)  # Discord user id
    device_name: Mapped[str | None] = mapped_column(String(32), default=None)
