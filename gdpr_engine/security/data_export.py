"""GDPR Art. 15/20 data export — builds a complete personal data bundle.

All categories are read inside one transaction while the user's lock is
held, so consent writes and erasure cannot interleave and every category
reflects the same point in time. A failing repository fails the whole
export; a partial bundle is never returned.

Usage:
    bundle = await exporter.build_export(user_id)
    payload = bundle.model_dump_json()
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gdpr_engine.models.enums import AuditAction
from gdpr_engine.repositories.base import ProfileRepository, UserDataRepository
from gdpr_engine.schemas.consent import ConsentRecordOut
from gdpr_engine.schemas.export import (
    DatasetExport,
    DIDDocumentExport,
    ExportBundle,
    GDPRInfo,
    ProfileExport,
    SharingGrantExport,
)
from gdpr_engine.security.audit import AuditLog
from gdpr_engine.security.consent import ConsentStore
from gdpr_engine.security.errors import translate_collaborator_errors, translate_database_errors
from gdpr_engine.security.guards import require_active_user
from gdpr_engine.security.locks import UserLockTable

logger = logging.getLogger(__name__)


class DataExporter:
    """Assembles ExportBundles. Nothing is cached between requests."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: UserLockTable,
        audit: AuditLog,
        consent_store: ConsentStore,
        profiles: ProfileRepository,
        datasets: UserDataRepository,
        sharing_grants: UserDataRepository,
        did_documents: UserDataRepository,
        gdpr_info: GDPRInfo,
        isolation_level: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks
        self._audit = audit
        self._consent = consent_store
        self._profiles = profiles
        self._datasets = datasets
        self._sharing_grants = sharing_grants
        self._did_documents = did_documents
        self._gdpr_info = gdpr_info
        self._isolation_level = isolation_level

    async def build_export(self, user_id: uuid.UUID) -> ExportBundle:
        """Snapshot every category for the user and audit the export."""
        async with self._locks.hold(user_id):
            with translate_database_errors():
                async with self._session_factory() as db:
                    async with db.begin():
                        if self._isolation_level:
                            await db.connection(execution_options={"isolation_level": self._isolation_level})
                        bundle = await self._collect(db, user_id)
                        await self._audit.append(
                            db,
                            user_id,
                            AuditAction.DATA_EXPORTED,
                            {
                                "consent_records": len(bundle.consent_history),
                                "datasets": len(bundle.datasets),
                                "sharing_grants": len(bundle.sharing_grants),
                                "did_documents": len(bundle.did_documents),
                            },
                        )

        logger.info(
            "Data export built: user=%s consents=%d datasets=%d grants=%d dids=%d",
            user_id,
            len(bundle.consent_history),
            len(bundle.datasets),
            len(bundle.sharing_grants),
            len(bundle.did_documents),
        )
        return bundle

    async def _collect(self, db: AsyncSession, user_id: uuid.UUID) -> ExportBundle:
        user = await require_active_user(db, user_id, self._profiles)

        with translate_collaborator_errors("consent_store"):
            consent_history = await self._consent.history(db, user_id)
        with translate_collaborator_errors(self._datasets.name):
            datasets = await self._datasets.list_for_user(db, user_id)
        with translate_collaborator_errors(self._sharing_grants.name):
            grants = await self._sharing_grants.list_for_user(db, user_id)
        with translate_collaborator_errors(self._did_documents.name):
            did_documents = await self._did_documents.list_for_user(db, user_id)

        return ExportBundle(
            user_id=user_id,
            profile=ProfileExport.model_validate(user),
            consent_history=[ConsentRecordOut.model_validate(r) for r in consent_history],
            datasets=[DatasetExport.model_validate(d) for d in datasets],
            sharing_grants=[SharingGrantExport.model_validate(g) for g in grants],
            did_documents=[DIDDocumentExport.model_validate(d) for d in did_documents],
            gdpr_info=self._gdpr_info,
            generated_at=datetime.now(UTC),
        )
