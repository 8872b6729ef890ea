"""GDPR engine error taxonomy.

Every failure a caller can see is a GDPRError subclass carrying a stable
`code` and the HTTP status the API boundary answers with.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class GDPRError(Exception):
    """Base class for all consent/export/erasure errors."""

    code: str = "gdpr_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


# ── Validation (never retried) ───────────────────────────────────────


class InvalidConsentType(GDPRError):
    """Consent type outside the closed ConsentType set."""

    code = "invalid_consent_type"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, consent_type: Any) -> None:
        super().__init__(f"Unknown consent type: {consent_type!r}", {"consent_type": str(consent_type)})


class InvalidInput(GDPRError):
    """Malformed request shape or identifier."""

    code = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST


class UserNotFound(GDPRError):
    """No such user, or the user's deletion has completed."""

    code = "user_not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, user_id: Any) -> None:
        super().__init__("User not found", {"user_id": str(user_id)})


class ConflictingOperation(GDPRError):
    """Consent write or export attempted while a deletion is in progress."""

    code = "conflicting_operation"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, user_id: Any) -> None:
        super().__init__("Account deletion in progress", {"user_id": str(user_id)})


# ── Infrastructure (safe to retry) ───────────────────────────────────


class AuditAppendFailed(GDPRError):
    """The audit entry could not be written; the triggering action is aborted."""

    code = "audit_append_failed"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, action: str) -> None:
        super().__init__(f"Failed to append audit entry: {action}", {"action": action})


class CollaboratorUnavailable(GDPRError):
    """A data repository failed during export or a deletion step."""

    code = "collaborator_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, collaborator: str, reason: str = "") -> None:
        message = f"{collaborator} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"collaborator": collaborator})


@contextmanager
def translate_collaborator_errors(collaborator: str) -> Iterator[None]:
    """Re-raise any non-GDPR failure inside the block as CollaboratorUnavailable.

    Usage:
        with translate_collaborator_errors("datasets"):
            rows = await datasets.list_for_user(db, user_id)
    """
    try:
        yield
    except GDPRError:
        raise
    except Exception as exc:
        logger.error("Collaborator %s failed: %s", collaborator, exc)
        raise CollaboratorUnavailable(collaborator, str(exc)) from exc


@contextmanager
def translate_database_errors() -> Iterator[None]:
    """Re-raise SQLAlchemy failures inside the block as CollaboratorUnavailable("database").

    GDPRErrors raised inside the block (AuditAppendFailed included) pass through.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Database unavailable: %s", exc)
        raise CollaboratorUnavailable("database", str(exc)) from exc
