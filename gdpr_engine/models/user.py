"""User model — the account that owns datasets, DIDs, and consent.

Supports GDPR soft-delete via the `anonymized` flag (keeps the row for
referential integrity but replaces every direct identifier).
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from gdpr_engine.models.base import Base, JSONType, TimestampMixin


class User(TimestampMixin, Base):
    """A platform user identified by email and wallet DID."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    did: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    profile: Mapped[dict[str, Any] | None] = mapped_column(JSONType)

    # GDPR soft delete
    anonymized: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} anonymized={self.anonymized}>"
