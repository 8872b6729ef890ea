"""Consent store — records and derives per-user GDPR consent.

Every grant/withdrawal creates an immutable ConsentRecord paired with a
CONSENT_CHANGED audit entry in the same transaction. Current status is a
fold over the ordered history; nothing else holds consent state.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from gdpr_engine.models.consent import ConsentRecord
from gdpr_engine.models.enums import AuditAction, ConsentType
from gdpr_engine.repositories.base import apply_strategy
from gdpr_engine.schemas.consent import ConsentStatus
from gdpr_engine.security.anonymization import AnonymizationStrategy
from gdpr_engine.security.audit import AuditLog
from gdpr_engine.security.errors import InvalidConsentType, InvalidInput

logger = logging.getLogger(__name__)

_EVIDENCE_FIELDS = {"source_ip": "source_ip", "user_agent": "user_agent"}


def parse_consent_type(value: Any) -> ConsentType:
    """Accept a ConsentType or its string value; anything else is rejected."""
    if isinstance(value, ConsentType):
        return value
    try:
        return ConsentType(value)
    except ValueError:
        raise InvalidConsentType(value) from None


def fold_consent_status(records: Iterable[ConsentRecord]) -> ConsentStatus:
    """Latest-wins fold over records ordered by (recorded_at, id).

    Every ConsentType is present; types never acted on are False.
    """
    status: ConsentStatus = dict.fromkeys(ConsentType, False)
    for record in records:
        try:
            consent_type = ConsentType(record.consent_type)
        except ValueError:
            logger.warning("Ignoring consent record %s with retired type %r", record.id, record.consent_type)
            continue
        status[consent_type] = record.granted
    return status


class ConsentStore:
    """Consent operations — AsyncSession passed per call, caller commits."""

    def __init__(self, audit: AuditLog, anonymize: AnonymizationStrategy) -> None:
        self._audit = audit
        self._anonymize = anonymize

    async def history(self, db: AsyncSession, user_id: uuid.UUID) -> Sequence[ConsentRecord]:
        """The full consent trail, oldest first."""
        result = await db.execute(
            select(ConsentRecord)
            .where(ConsentRecord.user_id == user_id)
            .order_by(ConsentRecord.recorded_at.asc(), ConsentRecord.id.asc())
        )
        return result.scalars().all()

    async def get_status(self, db: AsyncSession, user_id: uuid.UUID) -> ConsentStatus:
        return fold_consent_status(await self.history(db, user_id))

    async def record_consent(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        consent_type: ConsentType | str,
        granted: bool,
        source_ip: str | None = None,
        user_agent: str | None = None,
    ) -> ConsentRecord:
        """Append a ConsentRecord and its audit entry.

        Repeating a decision is not deduplicated: each call is its own piece
        of evidence with its own timestamp, IP, and user agent.
        """
        ctype = parse_consent_type(consent_type)
        if not isinstance(granted, bool):
            raise InvalidInput("granted must be a boolean", {"granted": repr(granted)})

        record = ConsentRecord(
            user_id=user_id,
            consent_type=ctype.value,
            granted=granted,
            recorded_at=datetime.now(UTC),
            source_ip=source_ip,
            user_agent=user_agent,
        )
        db.add(record)
        await db.flush()

        await self._audit.append(
            db,
            user_id,
            AuditAction.CONSENT_CHANGED,
            {"consent_type": ctype.value, "granted": granted, "consent_record_id": record.id},
        )

        logger.info(
            "Consent %s: user=%s type=%s",
            "granted" if granted else "withdrawn",
            user_id,
            ctype.value,
        )
        return record

    async def purge_history(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        """Hard-delete the user's consent trail (erasure only)."""
        result = await db.execute(delete(ConsentRecord).where(ConsentRecord.user_id == user_id))
        return result.rowcount  # type: ignore[attr-defined]

    async def anonymize_history(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        """Strip IP and user agent from records not yet anonymized (soft erasure)."""
        result = await db.execute(
            select(ConsentRecord).where(
                ConsentRecord.user_id == user_id,
                ConsentRecord.anonymized.is_(False),
            )
        )
        records = result.scalars().all()
        for record in records:
            apply_strategy(record, self._anonymize, _EVIDENCE_FIELDS)
            record.anonymized = True
        await db.flush()
        return len(records)
