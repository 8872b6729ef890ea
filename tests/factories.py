"""Seed helpers for database-backed tests."""

from __future__ import annotations

import uuid

from gdpr_engine.models import Dataset, DatasetShare, DIDDocument, User


async def seed_user(session_factory, name: str = "Ada") -> uuid.UUID:
    """Insert a user and return its id."""
    token = uuid.uuid4().hex
    user = User(
        email=f"{name.lower()}-{token[:8]}@example.com",
        did=f"did:ethr:0x{token}",
        profile={"name": name, "bio": "Researcher"},
        anonymized=False,
    )
    async with session_factory() as db:
        db.add(user)
        await db.commit()
    return user.id


async def seed_user_data(session_factory, user_id: uuid.UUID, other_id: uuid.UUID) -> dict[str, list[uuid.UUID]]:
    """Give `user_id` two datasets, one DID document, and sharing grants both ways."""
    async with session_factory() as db:
        owned = [
            Dataset(
                owner_id=user_id,
                did=f"did:dataset:{uuid.uuid4().hex}",
                title=f"Survey {i}",
                description="Household survey responses",
                file_hash=uuid.uuid4().hex,
                file_path=f"/data/{user_id}/survey-{i}.csv",
                file_size=1024 * (i + 1),
                mime_type="text/csv",
                metadata_={"author": "Ada", "keywords": ["survey"]},
                ai_tags=["demographics"],
                is_public=False,
            )
            for i in range(2)
        ]
        theirs = Dataset(
            owner_id=other_id,
            did=f"did:dataset:{uuid.uuid4().hex}",
            title="Climate readings",
            file_hash=uuid.uuid4().hex,
            file_path=f"/data/{other_id}/climate.csv",
            file_size=2048,
            mime_type="text/csv",
            is_public=True,
        )
        db.add_all([*owned, theirs])
        await db.flush()

        outgoing = DatasetShare(dataset_id=owned[0].id, shared_by_id=user_id, shared_with_id=other_id, permission="read")
        incoming = DatasetShare(dataset_id=theirs.id, shared_by_id=other_id, shared_with_id=user_id, permission="read")
        did_doc = DIDDocument(
            user_id=user_id,
            did=f"did:ethr:0x{uuid.uuid4().hex}",
            document={"@context": "https://www.w3.org/ns/did/v1", "controller": "Ada"},
            version=1,
        )
        db.add_all([outgoing, incoming, did_doc])
        await db.commit()

    return {
        "datasets": [d.id for d in owned],
        "other_datasets": [theirs.id],
        "shares": [outgoing.id, incoming.id],
        "did_documents": [did_doc.id],
    }
