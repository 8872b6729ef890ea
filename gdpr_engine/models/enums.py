"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

from enum import Enum


class ConsentType(str, Enum):
    """The closed set of consent types a user can grant or withdraw."""

    DATA_LINKING = "data_linking"
    AI_METADATA_ENHANCEMENT = "ai_metadata_enhancement"
    AI_RECOMMENDATIONS = "ai_recommendations"
    COMMUNITY_CONTRIBUTIONS = "community_contributions"
    GENERAL_DATA_PROCESSING = "general_data_processing"


class AuditAction(str, Enum):
    """Kinds of audit entry."""

    CONSENT_CHANGED = "consent_changed"
    DATA_EXPORTED = "data_exported"
    ACCOUNT_DELETION_STARTED = "account_deletion_started"
    ACCOUNT_DELETION_COMPLETED = "account_deletion_completed"


class DeletionJobStatus(str, Enum):
    """Deletion job lifecycle. A failed step leaves the job IN_PROGRESS."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class DeletionStep(str, Enum):
    """Deletion pipeline steps, declared in execution order.

    Dependent records come before the records they reference.
    """

    SHARING_GRANTS = "sharing_grants"
    DATASETS = "datasets"
    DID_DOCUMENTS = "did_documents"
    CONSENT_RECORDS = "consent_records"
    PROFILE = "profile"
    AUDIT_TRAIL = "audit_trail"


class SharePermission(str, Enum):
    """Access level granted on a shared dataset."""

    READ = "read"
    WRITE = "write"
