"""Tests for ConsentStore — recording, status derivation, and history."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from gdpr_engine.models import AuditEntry, ConsentRecord
from gdpr_engine.models.enums import AuditAction, ConsentType
from gdpr_engine.security.anonymization import get_strategy
from gdpr_engine.security.audit import AuditLog
from gdpr_engine.security.consent import ConsentStore, fold_consent_status, parse_consent_type
from gdpr_engine.security.errors import InvalidConsentType, InvalidInput
from tests.conftest import TEST_SECRET

# ── Helpers ──────────────────────────────────────────────────────────


def _make_store() -> ConsentStore:
    return ConsentStore(AuditLog(TEST_SECRET), get_strategy("pseudonymize", TEST_SECRET))


def _make_record(consent_type, granted, record_id=1):
    """Build a minimal mock ConsentRecord."""
    record = MagicMock()
    record.id = record_id
    record.consent_type = consent_type
    record.granted = granted
    return record


async def _count(db, model, **filters) -> int:
    stmt = select(func.count()).select_from(model)
    for column, value in filters.items():
        stmt = stmt.where(getattr(model, column) == value)
    return (await db.execute(stmt)).scalar_one()


# ── Pure helpers ─────────────────────────────────────────────────────


class TestParseConsentType:
    def test_accepts_enum(self):
        assert parse_consent_type(ConsentType.DATA_LINKING) is ConsentType.DATA_LINKING

    def test_accepts_value(self):
        assert parse_consent_type("ai_recommendations") is ConsentType.AI_RECOMMENDATIONS

    @pytest.mark.parametrize("value", ["marketing", "", None, 3, "AI_RECOMMENDATIONS"])
    def test_rejects_unknown(self, value):
        with pytest.raises(InvalidConsentType):
            parse_consent_type(value)


class TestFoldConsentStatus:
    def test_empty_history_is_all_false(self):
        status = fold_consent_status([])
        assert set(status) == set(ConsentType)
        assert not any(status.values())

    def test_latest_record_wins(self):
        records = [
            _make_record("data_linking", True, 1),
            _make_record("data_linking", False, 2),
            _make_record("ai_recommendations", True, 3),
        ]
        status = fold_consent_status(records)
        assert status[ConsentType.DATA_LINKING] is False
        assert status[ConsentType.AI_RECOMMENDATIONS] is True
        assert status[ConsentType.COMMUNITY_CONTRIBUTIONS] is False

    def test_retired_types_ignored(self):
        status = fold_consent_status([_make_record("newsletter", True)])
        assert set(status) == set(ConsentType)
        assert not any(status.values())


# ── record_consent ───────────────────────────────────────────────────


class TestRecordConsent:
    @pytest.mark.asyncio()
    async def test_record_paired_with_audit_entry(self, session_factory):
        store = _make_store()
        user_id = uuid.uuid4()

        async with session_factory() as db:
            async with db.begin():
                record = await store.record_consent(
                    db, user_id, ConsentType.AI_RECOMMENDATIONS, True, "10.0.0.1", "pytest"
                )

        async with session_factory() as db:
            assert await _count(db, ConsentRecord, user_id=user_id) == 1
            entries = (await db.execute(select(AuditEntry))).scalars().all()

        assert len(entries) == 1
        assert entries[0].action == AuditAction.CONSENT_CHANGED.value
        assert entries[0].user_ref == str(user_id)
        assert entries[0].detail == {
            "consent_type": "ai_recommendations",
            "granted": True,
            "consent_record_id": record.id,
        }

    @pytest.mark.asyncio()
    async def test_audit_count_matches_record_count(self, session_factory):
        store = _make_store()
        user_id = uuid.uuid4()
        decisions = [
            (ConsentType.DATA_LINKING, True),
            (ConsentType.DATA_LINKING, True),
            (ConsentType.GENERAL_DATA_PROCESSING, False),
            (ConsentType.AI_METADATA_ENHANCEMENT, True),
            (ConsentType.DATA_LINKING, False),
        ]

        async with session_factory() as db:
            async with db.begin():
                for consent_type, granted in decisions:
                    await store.record_consent(db, user_id, consent_type, granted)

        async with session_factory() as db:
            records = await _count(db, ConsentRecord, user_id=user_id)
            audits = await _count(db, AuditEntry, action=AuditAction.CONSENT_CHANGED.value)
        assert records == audits == len(decisions)

    @pytest.mark.asyncio()
    async def test_rejects_unknown_type_without_writing(self, session_factory):
        store = _make_store()
        async with session_factory() as db:
            with pytest.raises(InvalidConsentType):
                await store.record_consent(db, uuid.uuid4(), "marketing", True)
            assert await _count(db, ConsentRecord) == 0
            assert await _count(db, AuditEntry) == 0

    @pytest.mark.asyncio()
    async def test_rejects_non_boolean(self, session_factory):
        store = _make_store()
        async with session_factory() as db:
            with pytest.raises(InvalidInput):
                await store.record_consent(db, uuid.uuid4(), ConsentType.DATA_LINKING, "yes")


# ── get_status / history ─────────────────────────────────────────────


class TestGetStatus:
    @pytest.mark.asyncio()
    async def test_no_history_all_false(self, session_factory):
        async with session_factory() as db:
            status = await _make_store().get_status(db, uuid.uuid4())
        assert status == dict.fromkeys(ConsentType, False)

    @pytest.mark.asyncio()
    async def test_grant_then_withdraw(self, session_factory):
        store = _make_store()
        user_id = uuid.uuid4()
        async with session_factory() as db:
            async with db.begin():
                await store.record_consent(db, user_id, ConsentType.AI_RECOMMENDATIONS, True)
                await store.record_consent(db, user_id, ConsentType.AI_RECOMMENDATIONS, False)

        async with session_factory() as db:
            status = await store.get_status(db, user_id)
            history = await store.history(db, user_id)

        assert status[ConsentType.AI_RECOMMENDATIONS] is False
        assert [r.granted for r in history] == [True, False]

    @pytest.mark.asyncio()
    async def test_same_timestamp_latest_inserted_wins(self, session_factory):
        user_id = uuid.uuid4()
        moment = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)
        async with session_factory() as db:
            for granted in (False, True, False, True):
                db.add(ConsentRecord(
                    user_id=user_id,
                    consent_type=ConsentType.DATA_LINKING.value,
                    granted=granted,
                    recorded_at=moment,
                ))
                await db.flush()
            await db.commit()

        async with session_factory() as db:
            status = await _make_store().get_status(db, user_id)
        assert status[ConsentType.DATA_LINKING] is True

    @pytest.mark.asyncio()
    async def test_other_users_not_mixed_in(self, session_factory):
        store = _make_store()
        ada, bob = uuid.uuid4(), uuid.uuid4()
        async with session_factory() as db:
            async with db.begin():
                await store.record_consent(db, bob, ConsentType.DATA_LINKING, True)

        async with session_factory() as db:
            assert (await store.get_status(db, ada))[ConsentType.DATA_LINKING] is False
            assert await store.history(db, ada) == []


# ── Erasure helpers ──────────────────────────────────────────────────


class TestHistoryErasure:
    @pytest.mark.asyncio()
    async def test_anonymize_history_strips_evidence_once(self, session_factory):
        store = _make_store()
        user_id = uuid.uuid4()
        async with session_factory() as db:
            async with db.begin():
                await store.record_consent(db, user_id, ConsentType.DATA_LINKING, True, "10.0.0.1", "Firefox")

        async with session_factory() as db:
            async with db.begin():
                assert await store.anonymize_history(db, user_id) == 1
        async with session_factory() as db:
            async with db.begin():
                assert await store.anonymize_history(db, user_id) == 0
            (record,) = await store.history(db, user_id)

        assert record.source_ip.startswith("anon-")
        assert record.user_agent.startswith("anon-")
        assert record.granted is True

    @pytest.mark.asyncio()
    async def test_purge_history(self, session_factory):
        store = _make_store()
        user_id = uuid.uuid4()
        async with session_factory() as db:
            async with db.begin():
                await store.record_consent(db, user_id, ConsentType.DATA_LINKING, True)
                await store.record_consent(db, user_id, ConsentType.DATA_LINKING, False)

        async with session_factory() as db:
            async with db.begin():
                assert await store.purge_history(db, user_id) == 2
            assert await store.history(db, user_id) == []
