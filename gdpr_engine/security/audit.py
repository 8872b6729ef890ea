"""Audit log — append-only compliance trail for consent and data lifecycle.

Entries are written inside the caller's transaction, before the caller
commits, so the triggering action and its audit entry land together or not
at all. A failed append aborts the enclosing operation.

Entries outlive the account they describe. Account deletion rewrites the
user reference to a keyed pseudonym; `list_for_user` finds both forms.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gdpr_engine.models.audit import AuditEntry
from gdpr_engine.models.enums import AuditAction
from gdpr_engine.security.anonymization import pseudonymize_identifier
from gdpr_engine.security.errors import AuditAppendFailed

logger = logging.getLogger(__name__)


class AuditLog:
    """Stateless audit operations — AsyncSession passed per call."""

    def __init__(self, pseudonym_secret: str) -> None:
        self._secret = pseudonym_secret

    def pseudonym_for(self, user_id: uuid.UUID) -> str:
        """The reference that replaces `user_id` once the account is deleted."""
        return pseudonymize_identifier(user_id, self._secret)

    async def append(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        action: AuditAction,
        detail: dict[str, Any] | None = None,
        *,
        user_ref: str | None = None,
    ) -> int:
        """Add an entry and flush it. Returns the entry id (its sequence number)."""
        entry = AuditEntry(
            user_ref=user_ref or str(user_id),
            action=action.value,
            detail=detail or {},
            occurred_at=datetime.now(UTC),
        )
        try:
            db.add(entry)
            await db.flush()
        except SQLAlchemyError as exc:
            logger.error("Audit append failed: action=%s user=%s", action.value, user_id)
            raise AuditAppendFailed(action.value) from exc

        logger.debug("Audit entry %s: action=%s user=%s", entry.id, action.value, entry.user_ref)
        return entry.id

    async def list_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> Sequence[AuditEntry]:
        """All entries for the user, oldest first, whether pseudonymized or not."""
        refs = [str(user_id), self.pseudonym_for(user_id)]
        result = await db.execute(
            select(AuditEntry)
            .where(AuditEntry.user_ref.in_(refs))
            .order_by(AuditEntry.occurred_at.asc(), AuditEntry.id.asc())
        )
        return result.scalars().all()

    async def latest_entry(self, db: AsyncSession, user_id: uuid.UUID, action: AuditAction) -> AuditEntry | None:
        """The user's most recent entry for `action`, under either reference."""
        refs = [str(user_id), self.pseudonym_for(user_id)]
        result = await db.execute(
            select(AuditEntry)
            .where(AuditEntry.user_ref.in_(refs), AuditEntry.action == action.value)
            .order_by(AuditEntry.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def pseudonymize_user(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        """Replace the direct user reference on every entry. Re-running is a no-op."""
        result = await db.execute(
            update(AuditEntry)
            .where(AuditEntry.user_ref == str(user_id))
            .values(user_ref=self.pseudonym_for(user_id))
            .execution_options(synchronize_session=False)
        )
        count = result.rowcount  # type: ignore[attr-defined]
        logger.info("Pseudonymized %d audit entries for user %s", count, user_id)
        return count
