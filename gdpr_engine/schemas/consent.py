"""Consent read models and request bodies."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from gdpr_engine.models.enums import ConsentType

# Derived, never stored: every ConsentType mapped to its current grant
ConsentStatus = dict[ConsentType, bool]


class ConsentRecordOut(BaseModel):
    """One immutable consent decision as exposed to the user."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    user_id: uuid.UUID
    consent_type: ConsentType
    granted: bool
    recorded_at: datetime
    source_ip: str | None = None
    user_agent: str | None = None


class ConsentUpdateRequest(BaseModel):
    """POST /gdpr/consent body. Unknown types and non-boolean flags are rejected."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    consent_type: ConsentType = Field(alias="consentType")
    is_granted: StrictBool = Field(alias="isGranted")
