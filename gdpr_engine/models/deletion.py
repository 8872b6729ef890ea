"""DeletionJob model — resumable progress of a GDPR erasure."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from gdpr_engine.models.base import Base, JSONType, TimestampMixin
from gdpr_engine.models.enums import DeletionJobStatus


class DeletionJob(TimestampMixin, Base):
    """A cascading account deletion. One per user; terminal once completed."""

    __tablename__ = "deletion_jobs"

    # No FK: the job outlives a hard-deleted user row
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), unique=True, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=DeletionJobStatus.IN_PROGRESS.value, nullable=False
    )
    soft_delete: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_steps: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Retry bookkeeping
    failed_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_error: Mapped[str | None] = mapped_column(String(1000))

    def __repr__(self) -> str:
        return f"<DeletionJob user={self.user_id} status={self.status}>"
