"""ExportBundle — the GDPR Art. 20 data portability document.

Field-complete by construction: every category is a required field, empty
categories serialize as empty lists. Built fresh per request, never cached.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from gdpr_engine.schemas.consent import ConsentRecordOut


class ProfileExport(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    email: str
    did: str
    profile: dict[str, Any] | None = None
    created_at: datetime
    updated_at: datetime


class DatasetExport(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    did: str
    title: str
    description: str | None = None
    file_hash: str
    file_path: str
    file_size: int
    mime_type: str
    metadata: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("metadata_", "metadata")
    )
    ai_tags: list[str] | None = None
    is_public: bool
    created_at: datetime
    updated_at: datetime


class SharingGrantExport(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    dataset_id: uuid.UUID
    shared_by_id: uuid.UUID
    shared_with_id: uuid.UUID
    permission: str
    shared_at: datetime
    is_active: bool
    revoked_at: datetime | None = None


class DIDDocumentExport(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: uuid.UUID
    did: str
    document: dict[str, Any]
    version: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class GDPRInfo(BaseModel):
    """Data controller details attached to every export."""

    model_config = ConfigDict(frozen=True)

    controller: str
    contact_email: str
    data_retention_policy: str


class ExportBundle(BaseModel):
    """Point-in-time snapshot of everything held about one user."""

    model_config = ConfigDict(frozen=True)

    user_id: uuid.UUID
    profile: ProfileExport
    consent_history: list[ConsentRecordOut]
    datasets: list[DatasetExport]
    sharing_grants: list[SharingGrantExport]
    did_documents: list[DIDDocumentExport]
    export_format: str = "JSON"
    gdpr_info: GDPRInfo
    generated_at: datetime
