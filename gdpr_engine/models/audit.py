"""AuditEntry model — immutable compliance trail.

This table is append-only. The only permitted change is rewriting
`user_ref` to the user's pseudonym once their account is deleted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from gdpr_engine.models.base import Base, JSONType, SequenceMixin


class AuditEntry(SequenceMixin, Base):
    """One consent change or data-lifecycle action."""

    __tablename__ = "audit_entries"
    __table_args__ = (Index("ix_audit_entries_user_occurred", "user_ref", "occurred_at", "id"),)

    user_ref: Mapped[str] = mapped_column(
        String(100), nullable=False, comment="User UUID, or its pseudonym after deletion"
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    detail: Mapped[dict[str, Any] | None] = mapped_column(JSONType)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEntry action={self.action} user={self.user_ref}>"
