"""Dataset sharing grants a user issued, received, or that target their datasets."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import ColumnElement, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gdpr_engine.models.dataset import Dataset, DatasetShare


def _involving(user_id: uuid.UUID) -> ColumnElement[bool]:
    owned = select(Dataset.id).where(Dataset.owner_id == user_id)
    return or_(
        DatasetShare.shared_by_id == user_id,
        DatasetShare.shared_with_id == user_id,
        DatasetShare.dataset_id.in_(owned),
    )


class SqlSharingGrantRepository:
    """Grants carry no identifiers of their own: soft delete revokes them."""

    name = "sharing_grants"

    async def list_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> Sequence[DatasetShare]:
        result = await db.execute(
            select(DatasetShare)
            .where(_involving(user_id))
            .order_by(DatasetShare.shared_at.asc(), DatasetShare.id.asc())
        )
        return result.scalars().all()

    async def delete_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            delete(DatasetShare).where(_involving(user_id)).execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[attr-defined]

    async def anonymize_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(
            update(DatasetShare)
            .where(_involving(user_id), DatasetShare.is_active.is_(True))
            .values(is_active=False, revoked_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[attr-defined]
