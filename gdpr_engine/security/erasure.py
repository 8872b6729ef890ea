"""Right-to-erasure processor — GDPR Art. 17 cascade deletion.

A DeletionJob records which steps are done. Each step commits its data
change together with its progress mark, so a crash or repository failure
leaves the job IN_PROGRESS and a retry runs only what is left. Once the
job is COMPLETED the user is gone for every other operation.

The same pipeline serves hard delete and soft delete; only the leaf
operation per step differs (delete vs anonymize in place). Audit entries
are kept in both modes, under a pseudonymized user reference.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gdpr_engine.models.deletion import DeletionJob
from gdpr_engine.models.enums import AuditAction, DeletionJobStatus, DeletionStep
from gdpr_engine.repositories.base import ProfileRepository, UserDataRepository
from gdpr_engine.security.audit import AuditLog
from gdpr_engine.security.consent import ConsentStore
from gdpr_engine.security.errors import (
    CollaboratorUnavailable,
    GDPRError,
    UserNotFound,
    translate_collaborator_errors,
    translate_database_errors,
)
from gdpr_engine.security.guards import get_deletion_job
from gdpr_engine.security.locks import UserLockTable

logger = logging.getLogger(__name__)

# Dependents before what they reference: grants -> datasets -> ... -> profile
DELETION_ORDER: tuple[DeletionStep, ...] = (
    DeletionStep.SHARING_GRANTS,
    DeletionStep.DATASETS,
    DeletionStep.DID_DOCUMENTS,
    DeletionStep.CONSENT_RECORDS,
    DeletionStep.PROFILE,
    DeletionStep.AUDIT_TRAIL,
)


@dataclass
class ErasureResult:
    """Summary of one delete_user call."""

    user_id: uuid.UUID
    status: DeletionJobStatus = DeletionJobStatus.IN_PROGRESS
    soft_delete: bool = False
    already_completed: bool = False
    steps_run: list[DeletionStep] = field(default_factory=list)
    rows: dict[str, int] = field(default_factory=dict)


class ErasureProcessor:
    """Processes GDPR right-to-erasure requests."""

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
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks
        self._audit = audit
        self._consent = consent_store
        self._profiles = profiles
        self._data_repos: dict[DeletionStep, UserDataRepository] = {
            DeletionStep.SHARING_GRANTS: sharing_grants,
            DeletionStep.DATASETS: datasets,
            DeletionStep.DID_DOCUMENTS: did_documents,
        }

    async def delete_user(self, user_id: uuid.UUID, soft_delete: bool = False) -> ErasureResult:
        """Run (or resume) the deletion pipeline for a user to completion.

        Concurrent calls for the same user queue on the user's lock; the
        later ones find the job completed and return without side effects.
        The same holds after retention has purged the completed job.
        """
        async with self._locks.hold(user_id):
            job = await self._load_or_start(user_id, soft_delete)
            result = ErasureResult(user_id=user_id, soft_delete=job.soft_delete)

            if job.status == DeletionJobStatus.COMPLETED.value:
                logger.info("Erasure already completed: user=%s job=%s (no-op)", user_id, job.id)
                result.status = DeletionJobStatus.COMPLETED
                result.already_completed = True
                return result

            if job.soft_delete != soft_delete:
                logger.warning(
                    "Erasure resumed with soft_delete=%s; job %s keeps its original soft_delete=%s",
                    soft_delete,
                    job.id,
                    job.soft_delete,
                )

            done = set(job.completed_steps)
            for step in DELETION_ORDER:
                if step.value in done:
                    continue
                result.rows[step.value] = await self._run_step(job.id, user_id, step, job.soft_delete)
                result.steps_run.append(step)

            await self._complete(job.id, user_id)
            result.status = DeletionJobStatus.COMPLETED

        logger.info(
            "Erasure completed: user=%s soft=%s steps=%s",
            user_id,
            result.soft_delete,
            [s.value for s in result.steps_run],
        )
        return result

    # ── Pipeline stages ──────────────────────────────────────────────

    async def _load_or_start(self, user_id: uuid.UUID, soft_delete: bool) -> DeletionJob:
        """Return the user's job, creating it (and the STARTED audit entry) if new."""
        with translate_database_errors():
            try:
                async with self._session_factory() as db:
                    async with db.begin():
                        job = await get_deletion_job(db, user_id)
                        if job is not None:
                            return job

                        with translate_collaborator_errors(self._profiles.name):
                            user = await self._profiles.get(db, user_id)
                        if user is None or user.anonymized:
                            return await self._purged_job(db, user_id)

                        job = DeletionJob(
                            user_id=user_id,
                            status=DeletionJobStatus.IN_PROGRESS.value,
                            soft_delete=soft_delete,
                            completed_steps=[],
                            started_at=datetime.now(UTC),
                            failed_attempts=0,
                        )
                        db.add(job)
                        await db.flush()
                        await self._audit.append(
                            db,
                            user_id,
                            AuditAction.ACCOUNT_DELETION_STARTED,
                            {"deletion_job_id": str(job.id), "soft_delete": soft_delete},
                        )
            except IntegrityError:
                # Another process created the job first
                async with self._session_factory() as db:
                    job = await get_deletion_job(db, user_id)
                if job is None:
                    raise
                return job

        logger.info("Erasure started: user=%s job=%s soft=%s", user_id, job.id, soft_delete)
        return job

    async def _purged_job(self, db: AsyncSession, user_id: uuid.UUID) -> DeletionJob:
        """Rebuild a completed job removed by retention from its completion audit entry.

        The returned job is transient and never added to the session.
        """
        entry = await self._audit.latest_entry(db, user_id, AuditAction.ACCOUNT_DELETION_COMPLETED)
        if entry is None:
            raise UserNotFound(user_id)
        detail = entry.detail or {}
        return DeletionJob(
            id=uuid.UUID(detail["deletion_job_id"]) if "deletion_job_id" in detail else None,
            user_id=user_id,
            status=DeletionJobStatus.COMPLETED.value,
            soft_delete=bool(detail.get("soft_delete", False)),
            completed_steps=list(detail.get("steps", [])),
            started_at=entry.occurred_at,
            completed_at=entry.occurred_at,
            failed_attempts=0,
        )

    async def _run_step(self, job_id: uuid.UUID, user_id: uuid.UUID, step: DeletionStep, soft_delete: bool) -> int:
        """Apply one step and mark it done in the same transaction."""
        try:
            async with self._session_factory() as db:
                async with db.begin():
                    job = await db.get(DeletionJob, job_id)
                    if job is None:
                        raise UserNotFound(user_id)
                    if step.value in job.completed_steps:
                        return 0

                    with translate_collaborator_errors(step.value):
                        rows = await self._execute_step(db, user_id, step, soft_delete)
                    job.completed_steps = [*job.completed_steps, step.value]
        except GDPRError as exc:
            logger.exception("Erasure step failed: user=%s step=%s", user_id, step.value)
            await self._record_failure(job_id, step, exc)
            raise
        except SQLAlchemyError as exc:
            logger.exception("Erasure step failed to commit: user=%s step=%s", user_id, step.value)
            error = CollaboratorUnavailable(step.value, str(exc))
            await self._record_failure(job_id, step, error)
            raise error from exc

        logger.info("Erasure step done: user=%s step=%s rows=%d", user_id, step.value, rows)
        return rows

    async def _execute_step(self, db: AsyncSession, user_id: uuid.UUID, step: DeletionStep, soft_delete: bool) -> int:
        if step is DeletionStep.PROFILE:
            if soft_delete:
                return await self._profiles.anonymize(db, user_id)
            return await self._profiles.delete(db, user_id)

        if step is DeletionStep.CONSENT_RECORDS:
            if soft_delete:
                return await self._consent.anonymize_history(db, user_id)
            return await self._consent.purge_history(db, user_id)

        if step is DeletionStep.AUDIT_TRAIL:
            return await self._audit.pseudonymize_user(db, user_id)

        repo = self._data_repos[step]
        if soft_delete:
            return await repo.anonymize_for_user(db, user_id)
        return await repo.delete_for_user(db, user_id)

    async def _complete(self, job_id: uuid.UUID, user_id: uuid.UUID) -> None:
        with translate_database_errors():
            async with self._session_factory() as db:
                async with db.begin():
                    job = await db.get(DeletionJob, job_id)
                    if job is None or job.status == DeletionJobStatus.COMPLETED.value:
                        return
                    job.status = DeletionJobStatus.COMPLETED.value
                    job.completed_at = datetime.now(UTC)
                    job.last_error = None
                    await self._audit.append(
                        db,
                        user_id,
                        AuditAction.ACCOUNT_DELETION_COMPLETED,
                        {
                            "deletion_job_id": str(job_id),
                            "soft_delete": job.soft_delete,
                            "steps": list(job.completed_steps),
                        },
                        user_ref=self._audit.pseudonym_for(user_id),
                    )

    async def _record_failure(self, job_id: uuid.UUID, step: DeletionStep, exc: GDPRError) -> None:
        """Note the failure on the job. The job stays IN_PROGRESS for retry."""
        try:
            async with self._session_factory() as db:
                async with db.begin():
                    job = await db.get(DeletionJob, job_id)
                    if job is not None:
                        job.failed_attempts += 1
                        job.last_error = f"{step.value}: {exc.message}"[:1000]
        except SQLAlchemyError:
            logger.exception("Could not record erasure failure on job %s", job_id)
