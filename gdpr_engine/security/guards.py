"""Active-user check shared by every read and write path.

A user with a completed deletion is gone; one with a deletion still in
progress is off limits until it finishes.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gdpr_engine.models.deletion import DeletionJob
from gdpr_engine.models.enums import DeletionJobStatus
from gdpr_engine.models.user import User
from gdpr_engine.repositories.base import ProfileRepository
from gdpr_engine.security.errors import ConflictingOperation, UserNotFound, translate_collaborator_errors


async def get_deletion_job(db: AsyncSession, user_id: uuid.UUID) -> DeletionJob | None:
    result = await db.execute(select(DeletionJob).where(DeletionJob.user_id == user_id))
    return result.scalar_one_or_none()


async def require_active_user(db: AsyncSession, user_id: uuid.UUID, profiles: ProfileRepository) -> User:
    """Return the user's profile or raise UserNotFound / ConflictingOperation."""
    job = await get_deletion_job(db, user_id)
    if job is not None:
        if job.status == DeletionJobStatus.COMPLETED.value:
            raise UserNotFound(user_id)
        raise ConflictingOperation(user_id)

    with translate_collaborator_errors(profiles.name):
        user = await profiles.get(db, user_id)
    if user is None or user.anonymized:
        raise UserNotFound(user_id)
    return user
