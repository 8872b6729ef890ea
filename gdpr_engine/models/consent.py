"""ConsentRecord model — GDPR consent tracking.

Every consent grant/withdrawal is immutably recorded. Current status is
derived from the latest record per type, never stored.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from gdpr_engine.models.base import Base, SequenceMixin


class ConsentRecord(SequenceMixin, Base):
    """An individual consent grant or withdrawal event."""

    __tablename__ = "consent_records"
    __table_args__ = (Index("ix_consent_records_user_recorded", "user_id", "recorded_at", "id"),)

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)

    consent_type: Mapped[str] = mapped_column(String(50), nullable=False, comment="ConsentType enum value")
    granted: Mapped[bool] = mapped_column(Boolean, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Evidence of where the decision came from
    source_ip: Mapped[str | None] = mapped_column(String(64))
    user_agent: Mapped[str | None] = mapped_column(String(500))

    anonymized: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<ConsentRecord type={self.consent_type} granted={self.granted}>"
