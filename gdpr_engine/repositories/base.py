"""Collaborator interfaces.

Every method takes the caller's AsyncSession so that an export reads all
categories inside one transaction and a deletion step commits its data
change together with its progress mark.

Delete/anonymize methods must be safe to re-run against partially
processed data: they select what is still there and return how many rows
they changed.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from gdpr_engine.models.user import User
from gdpr_engine.security.anonymization import AnonymizationStrategy


class ProfileRepository(Protocol):
    name: str

    async def get(self, db: AsyncSession, user_id: uuid.UUID) -> User | None: ...

    async def delete(self, db: AsyncSession, user_id: uuid.UUID) -> int: ...

    async def anonymize(self, db: AsyncSession, user_id: uuid.UUID) -> int: ...


class UserDataRepository(Protocol):
    """Shape shared by the dataset, sharing-grant, and DID-document repositories."""

    name: str

    async def list_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> Sequence[Any]: ...

    async def delete_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> int: ...

    async def anonymize_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> int: ...


def apply_strategy(obj: Any, strategy: AnonymizationStrategy, fields: Mapping[str, str]) -> None:
    """Run `strategy` over the mapped attributes of an ORM object and write back.

    `fields` maps record keys (what the strategy sees) to attribute names.
    The object's `id` is always passed along for strategies that need it.
    """
    record = {key: getattr(obj, attr) for key, attr in fields.items()}
    record["id"] = obj.id
    cleaned = strategy(record)
    for key, attr in fields.items():
        setattr(obj, attr, cleaned[key])
