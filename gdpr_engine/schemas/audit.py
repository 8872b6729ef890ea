"""Audit entry read model."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from gdpr_engine.models.enums import AuditAction


class AuditEntryOut(BaseModel):
    """Immutable audit trail entry."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    user_ref: str
    action: AuditAction
    detail: dict[str, Any] | None = None
    occurred_at: datetime
