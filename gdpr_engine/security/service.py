"""Consent service — the one entry point the API layer talks to.

Validates caller-supplied identifiers, then delegates to the consent
store, the exporter, or the erasure processor. Holds no state of its own.

Usage:
    service = create_consent_service(async_session_factory, settings)

    status = await service.get_consent_status(user_id)
    await service.record_consent(user_id, "ai_recommendations", True, ip, ua)
    bundle = await service.export_user_data(user_id)
    await service.delete_user_data(user_id)
"""

from __future__ import annotations

import logging
import secrets
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gdpr_engine.config import Settings
from gdpr_engine.models.enums import ConsentType
from gdpr_engine.repositories import (
    SqlDatasetRepository,
    SqlDIDDocumentRepository,
    SqlProfileRepository,
    SqlSharingGrantRepository,
)
from gdpr_engine.repositories.base import ProfileRepository, UserDataRepository
from gdpr_engine.schemas.audit import AuditEntryOut
from gdpr_engine.schemas.consent import ConsentRecordOut, ConsentStatus
from gdpr_engine.schemas.export import ExportBundle, GDPRInfo
from gdpr_engine.security.anonymization import get_strategy
from gdpr_engine.security.audit import AuditLog
from gdpr_engine.security.consent import ConsentStore, parse_consent_type
from gdpr_engine.security.data_export import DataExporter
from gdpr_engine.security.erasure import ErasureProcessor, ErasureResult
from gdpr_engine.security.errors import InvalidInput, translate_collaborator_errors, translate_database_errors
from gdpr_engine.security.guards import require_active_user
from gdpr_engine.security.locks import UserLockTable

logger = logging.getLogger(__name__)


def parse_user_id(value: Any) -> uuid.UUID:
    """User ids are UUIDs; anything else is malformed input."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        raise InvalidInput("Malformed user id", {"user_id": str(value)}) from None


class ConsentService:
    """Facade over consent, export, and erasure."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: UserLockTable,
        audit: AuditLog,
        consent_store: ConsentStore,
        profiles: ProfileRepository,
        exporter: DataExporter,
        erasure: ErasureProcessor,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks
        self._audit = audit
        self._consent = consent_store
        self._profiles = profiles
        self._exporter = exporter
        self._erasure = erasure

    async def get_consent_status(self, user_id: Any) -> ConsentStatus:
        """Current grant for every consent type (all False before any decision)."""
        uid = parse_user_id(user_id)
        with translate_database_errors():
            async with self._session_factory() as db:
                await require_active_user(db, uid, self._profiles)
                with translate_collaborator_errors("consent_store"):
                    return await self._consent.get_status(db, uid)

    async def has_consent(self, user_id: Any, consent_type: ConsentType | str) -> bool:
        """Gate for features that need one specific consent."""
        ctype = parse_consent_type(consent_type)
        status = await self.get_consent_status(user_id)
        return status[ctype]

    async def get_consent_history(self, user_id: Any) -> list[ConsentRecordOut]:
        uid = parse_user_id(user_id)
        with translate_database_errors():
            async with self._session_factory() as db:
                await require_active_user(db, uid, self._profiles)
                with translate_collaborator_errors("consent_store"):
                    records = await self._consent.history(db, uid)
        return [ConsentRecordOut.model_validate(r) for r in records]

    async def record_consent(
        self,
        user_id: Any,
        consent_type: ConsentType | str,
        granted: Any,
        source_ip: str | None = None,
        user_agent: str | None = None,
    ) -> ConsentRecordOut:
        """Record one consent decision and its audit entry atomically."""
        uid = parse_user_id(user_id)
        ctype = parse_consent_type(consent_type)
        if not isinstance(granted, bool):
            raise InvalidInput("isGranted must be a boolean", {"isGranted": repr(granted)})

        async with self._locks.hold(uid):
            with translate_database_errors():
                async with self._session_factory() as db:
                    async with db.begin():
                        await require_active_user(db, uid, self._profiles)
                        with translate_collaborator_errors("consent_store"):
                            record = await self._consent.record_consent(
                                db, uid, ctype, granted, source_ip=source_ip, user_agent=user_agent
                            )
        return ConsentRecordOut.model_validate(record)

    async def export_user_data(self, user_id: Any) -> ExportBundle:
        return await self._exporter.build_export(parse_user_id(user_id))

    async def delete_user_data(self, user_id: Any, soft_delete: bool = False) -> ErasureResult:
        return await self._erasure.delete_user(parse_user_id(user_id), soft_delete=soft_delete)

    async def get_audit_trail(self, user_id: Any) -> list[AuditEntryOut]:
        """Audit entries for the user, including after erasure (for compliance review)."""
        uid = parse_user_id(user_id)
        with translate_database_errors():
            async with self._session_factory() as db:
                entries = await self._audit.list_for_user(db, uid)
        return [AuditEntryOut.model_validate(e) for e in entries]


def _pseudonym_secret(settings: Settings) -> str:
    secret = settings.gdpr.pseudonym_secret
    if not secret:
        logger.warning(
            "PSEUDONYM_SECRET not set — using a random ephemeral key "
            "(pseudonymized audit entries won't be linkable after restart)"
        )
        secret = secrets.token_hex(32)
    return secret


def create_consent_service(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Settings,
    *,
    profiles: ProfileRepository | None = None,
    datasets: UserDataRepository | None = None,
    sharing_grants: UserDataRepository | None = None,
    did_documents: UserDataRepository | None = None,
) -> ConsentService:
    """Wire the engine from settings. Components share one lock table.

    Repositories default to the SQLAlchemy ones; pass others to substitute.
    """
    secret = _pseudonym_secret(settings)
    anonymize = get_strategy(settings.gdpr.anonymization_strategy, secret)
    locks = UserLockTable()
    audit = AuditLog(secret)
    consent_store = ConsentStore(audit, anonymize)

    profiles = profiles or SqlProfileRepository(anonymize)
    datasets = datasets or SqlDatasetRepository(anonymize)
    sharing_grants = sharing_grants or SqlSharingGrantRepository()
    did_documents = did_documents or SqlDIDDocumentRepository(anonymize)

    exporter = DataExporter(
        session_factory,
        locks,
        audit,
        consent_store,
        profiles,
        datasets,
        sharing_grants,
        did_documents,
        gdpr_info=GDPRInfo(
            controller=settings.gdpr.controller_name,
            contact_email=settings.gdpr.contact_email,
            data_retention_policy=settings.gdpr.retention_policy_url,
        ),
        isolation_level=settings.gdpr.export_isolation_level,
    )
    erasure = ErasureProcessor(
        session_factory,
        locks,
        audit,
        consent_store,
        profiles,
        datasets,
        sharing_grants,
        did_documents,
    )
    logger.info("Consent service ready (anonymization=%s)", settings.gdpr.anonymization_strategy)
    return ConsentService(session_factory, locks, audit, consent_store, profiles, exporter, erasure)
