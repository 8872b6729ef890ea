"""Datasets owned by a user."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from gdpr_engine.models.dataset import Dataset
from gdpr_engine.repositories.base import apply_strategy
from gdpr_engine.security.anonymization import AnonymizationStrategy

# Record key -> ORM attribute (the metadata column is mapped as metadata_)
_PERSONAL_FIELDS = {
    "did": "did",
    "title": "title",
    "description": "description",
    "file_hash": "file_hash",
    "file_path": "file_path",
    "metadata": "metadata_",
    "ai_tags": "ai_tags",
}


class SqlDatasetRepository:
    name = "datasets"

    def __init__(self, anonymize: AnonymizationStrategy) -> None:
        self._anonymize = anonymize

    async def list_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> Sequence[Dataset]:
        result = await db.execute(
            select(Dataset)
            .where(Dataset.owner_id == user_id)
            .order_by(Dataset.created_at.asc(), Dataset.id.asc())
        )
        return result.scalars().all()

    async def delete_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(delete(Dataset).where(Dataset.owner_id == user_id))
        return result.rowcount  # type: ignore[attr-defined]

    async def anonymize_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(Dataset).where(Dataset.owner_id == user_id, Dataset.anonymized.is_(False))
        )
        datasets = result.scalars().all()
        for dataset in datasets:
            apply_strategy(dataset, self._anonymize, _PERSONAL_FIELDS)
            dataset.anonymized = True
        await db.flush()
        return len(datasets)
