"""SQLAlchemy ORM models for the GDPR engine.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from gdpr_engine.models.audit import AuditEntry
from gdpr_engine.models.base import Base
from gdpr_engine.models.consent import ConsentRecord
from gdpr_engine.models.dataset import Dataset, DatasetShare
from gdpr_engine.models.deletion import DeletionJob
from gdpr_engine.models.did_document import DIDDocument
from gdpr_engine.models.enums import (
    AuditAction,
    ConsentType,
    DeletionJobStatus,
    DeletionStep,
    SharePermission,
)
from gdpr_engine.models.user import User

__all__ = [
    # Base
    "Base",
    # Models
    "User",
    "Dataset",
    "DatasetShare",
    "DIDDocument",
    "ConsentRecord",
    "AuditEntry",
    "DeletionJob",
    # Enums
    "AuditAction",
    "ConsentType",
    "DeletionJobStatus",
    "DeletionStep",
    "SharePermission",
]
