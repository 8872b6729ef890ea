"""User profile repository."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from gdpr_engine.models.user import User
from gdpr_engine.repositories.base import apply_strategy
from gdpr_engine.security.anonymization import AnonymizationStrategy

logger = logging.getLogger(__name__)

_PERSONAL_FIELDS = {"email": "email", "did": "did", "profile": "profile"}


class SqlProfileRepository:
    name = "profile"

    def __init__(self, anonymize: AnonymizationStrategy) -> None:
        self._anonymize = anonymize

    async def get(self, db: AsyncSession, user_id: uuid.UUID) -> User | None:
        return await db.get(User, user_id)

    async def delete(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        result = await db.execute(delete(User).where(User.id == user_id))
        return result.rowcount  # type: ignore[attr-defined]

    async def anonymize(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        user = await db.get(User, user_id)
        if user is None or user.anonymized:
            return 0
        apply_strategy(user, self._anonymize, _PERSONAL_FIELDS)
        user.anonymized = True
        await db.flush()
        logger.debug("Anonymized profile %s", user_id)
        return 1
