"""Tests for AuditLog — append-only trail and pseudonymization."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from gdpr_engine.models.enums import AuditAction
from gdpr_engine.security.anonymization import pseudonymize_identifier
from gdpr_engine.security.audit import AuditLog
from gdpr_engine.security.errors import AuditAppendFailed
from tests.conftest import TEST_SECRET


class TestAppend:
    @pytest.mark.asyncio()
    async def test_entries_listed_in_append_order(self, session_factory):
        audit = AuditLog(TEST_SECRET)
        user_id = uuid.uuid4()
        actions = [AuditAction.CONSENT_CHANGED, AuditAction.DATA_EXPORTED, AuditAction.CONSENT_CHANGED]

        async with session_factory() as db:
            async with db.begin():
                ids = [await audit.append(db, user_id, action, {"n": i}) for i, action in enumerate(actions)]

        async with session_factory() as db:
            entries = await audit.list_for_user(db, user_id)

        assert [e.id for e in entries] == ids
        assert ids == sorted(ids)
        assert [e.action for e in entries] == [a.value for a in actions]
        assert [e.detail for e in entries] == [{"n": 0}, {"n": 1}, {"n": 2}]

    @pytest.mark.asyncio()
    async def test_empty_detail_stored_as_dict(self, session_factory):
        audit = AuditLog(TEST_SECRET)
        user_id = uuid.uuid4()
        async with session_factory() as db:
            async with db.begin():
                await audit.append(db, user_id, AuditAction.DATA_EXPORTED)
            (entry,) = await audit.list_for_user(db, user_id)
        assert entry.detail == {}

    @pytest.mark.asyncio()
    async def test_rolled_back_with_enclosing_transaction(self, session_factory):
        audit = AuditLog(TEST_SECRET)
        user_id = uuid.uuid4()

        async with session_factory() as db:
            with pytest.raises(RuntimeError):
                async with db.begin():
                    await audit.append(db, user_id, AuditAction.CONSENT_CHANGED)
                    raise RuntimeError("action failed after audit")

        async with session_factory() as db:
            assert await audit.list_for_user(db, user_id) == []

    @pytest.mark.asyncio()
    async def test_database_failure_raises_audit_append_failed(self):
        audit = AuditLog(TEST_SECRET)
        db = MagicMock()
        db.flush = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("disk full")))

        with pytest.raises(AuditAppendFailed) as exc_info:
            await audit.append(db, uuid.uuid4(), AuditAction.CONSENT_CHANGED)

        assert exc_info.value.details == {"action": "consent_changed"}
        assert exc_info.value.status_code == 503


class TestPseudonymization:
    def test_pseudonym_is_keyed_and_stable(self):
        user_id = uuid.uuid4()
        assert AuditLog(TEST_SECRET).pseudonym_for(user_id) == AuditLog(TEST_SECRET).pseudonym_for(user_id)
        assert AuditLog(TEST_SECRET).pseudonym_for(user_id) != AuditLog("other").pseudonym_for(user_id)
        assert AuditLog(TEST_SECRET).pseudonym_for(user_id) == pseudonymize_identifier(user_id, TEST_SECRET)

    @pytest.mark.asyncio()
    async def test_pseudonymize_user_rewrites_refs_once(self, session_factory):
        audit = AuditLog(TEST_SECRET)
        user_id = uuid.uuid4()
        async with session_factory() as db:
            async with db.begin():
                await audit.append(db, user_id, AuditAction.CONSENT_CHANGED)
                await audit.append(db, user_id, AuditAction.DATA_EXPORTED)

        async with session_factory() as db:
            async with db.begin():
                assert await audit.pseudonymize_user(db, user_id) == 2
            async with db.begin():
                assert await audit.pseudonymize_user(db, user_id) == 0

        async with session_factory() as db:
            entries = await audit.list_for_user(db, user_id)

        assert len(entries) == 2
        assert {e.user_ref for e in entries} == {audit.pseudonym_for(user_id)}
        assert str(user_id) not in {e.user_ref for e in entries}

    @pytest.mark.asyncio()
    async def test_other_users_untouched(self, session_factory):
        audit = AuditLog(TEST_SECRET)
        ada, bob = uuid.uuid4(), uuid.uuid4()
        async with session_factory() as db:
            async with db.begin():
                await audit.append(db, ada, AuditAction.CONSENT_CHANGED)
                await audit.append(db, bob, AuditAction.CONSENT_CHANGED)
            async with db.begin():
                await audit.pseudonymize_user(db, ada)

        async with session_factory() as db:
            (bob_entry,) = await audit.list_for_user(db, bob)
        assert bob_entry.user_ref == str(bob)
