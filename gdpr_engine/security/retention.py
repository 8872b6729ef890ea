"""Deletion job retention — drops completed jobs after the audit window.

Completed jobs are only needed to answer "this user is gone" and as a
short-lived audit aid. After the window, a hard-deleted user has no
profile row and a soft-deleted one is flagged anonymized, so erasure
stays visible to every read path without the job.

Audit entries and consent records are NOT touched by this job. In the
running app `retention_worker` repeats the purge once a day.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gdpr_engine.models.deletion import DeletionJob
from gdpr_engine.models.enums import DeletionJobStatus

logger = logging.getLogger(__name__)

RETENTION_INTERVAL_SECONDS = 24 * 60 * 60


async def enforce_deletion_job_retention(
    session_factory: async_sessionmaker[AsyncSession],
    retention_days: int,
) -> int:
    """Run the purge in its own transaction. Idempotent: running twice is harmless."""
    async with session_factory() as db:
        async with db.begin():
            count = await purge_completed_deletion_jobs(db, retention_days)
    logger.info("Deletion job retention complete: purged=%d", count)
    return count


async def purge_completed_deletion_jobs(db: AsyncSession, retention_days: int) -> int:
    """Delete COMPLETED jobs whose completion is older than `retention_days`.

    In-progress jobs are never purged, whatever their age.
    """
    cutoff = datetime.now(UTC) - timedelta(days=retention_days)
    result = await db.execute(
        delete(DeletionJob).where(
            DeletionJob.status == DeletionJobStatus.COMPLETED.value,
            DeletionJob.completed_at.isnot(None),
            DeletionJob.completed_at < cutoff,
        )
    )
    count = result.rowcount  # type: ignore[attr-defined]
    if count > 0:
        logger.info("Purged %d completed deletion jobs (cutoff=%s)", count, cutoff.date())
    return count


async def retention_worker(
    session_factory: async_sessionmaker[AsyncSession],
    retention_days: int,
    interval_seconds: float = RETENTION_INTERVAL_SECONDS,
) -> None:
    """Background task started from the FastAPI lifespan. Runs until cancelled."""
    while True:
        try:
            await enforce_deletion_job_retention(session_factory, retention_days)
            await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            logger.info("Retention worker shutting down")
            break
        except Exception:
            logger.exception("Deletion job retention run failed")
            await asyncio.sleep(interval_seconds)
