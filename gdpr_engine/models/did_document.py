"""DIDDocument model — decentralized identifier documents bound to a user."""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from gdpr_engine.models.base import Base, JSONType, TimestampMixin


class DIDDocument(TimestampMixin, Base):
    """A versioned DID document."""

    __tablename__ = "did_documents"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    did: Mapped[str] = mapped_column(String(255), nullable=False)
    document: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    anonymized: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<DIDDocument did={self.did} v{self.version} active={self.is_active}>"
