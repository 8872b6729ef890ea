"""DID documents bound to a user."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from gdpr_engine.models.did_document import DIDDocument
from gdpr_engine.repositories.base import apply_strategy
from gdpr_engine.security.anonymization import AnonymizationStrategy

_PERSONAL_FIELDS = {"did": "did", "document": "document"}


class SqlDIDDocumentRepository:
    name = "did_documents"

    def __init__(self, anonymize: AnonymizationStrategy) -> None:
        self._anonymize = anonymize

    async def list_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> Sequence[DIDDocument]:
        result = await db.execute(
            select(DIDDocument)
            .where(DIDDocument.user_id == user_id)
            .order_by(DIDDocument.did.asc(), DIDDocument.version.asc(), DIDDocument.id.asc())
        )
        return result.scalars().all()

    async def delete_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(delete(DIDDocument).where(DIDDocument.user_id == user_id))
        return result.rowcount  # type: ignore[attr-defined]

    async def anonymize_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(DIDDocument).where(DIDDocument.user_id == user_id, DIDDocument.anonymized.is_(False))
        )
        documents = result.scalars().all()
        for doc in documents:
            apply_strategy(doc, self._anonymize, _PERSONAL_FIELDS)
            doc.is_active = False
            doc.anonymized = True
        await db.flush()
        return len(documents)
