"""Data repositories owned by other subsystems, consumed by export and erasure."""

from gdpr_engine.repositories.base import ProfileRepository, UserDataRepository
from gdpr_engine.repositories.dataset import SqlDatasetRepository
from gdpr_engine.repositories.did import SqlDIDDocumentRepository
from gdpr_engine.repositories.profile import SqlProfileRepository
from gdpr_engine.repositories.sharing import SqlSharingGrantRepository

__all__ = [
    "ProfileRepository",
    "UserDataRepository",
    "SqlProfileRepository",
    "SqlDatasetRepository",
    "SqlSharingGrantRepository",
    "SqlDIDDocumentRepository",
]
