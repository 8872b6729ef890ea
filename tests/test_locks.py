"""Tests for the per-user lock table."""

from __future__ import annotations

import asyncio

import pytest

from gdpr_engine.security.locks import UserLockTable


class TestUserLockTable:
    @pytest.mark.asyncio()
    async def test_same_key_serializes(self):
        locks = UserLockTable()
        events: list[str] = []

        async def worker(name: str):
            async with locks.hold("user-1"):
                events.append(f"{name}:in")
                await asyncio.sleep(0.01)
                events.append(f"{name}:out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a:in", "a:out", "b:in", "b:out"],
            ["b:in", "b:out", "a:in", "a:out"],
        )

    @pytest.mark.asyncio()
    async def test_different_keys_run_in_parallel(self):
        locks = UserLockTable()
        both_inside = asyncio.Event()
        inside = 0

        async def worker(key: str):
            nonlocal inside
            async with locks.hold(key):
                inside += 1
                if inside == 2:
                    both_inside.set()
                await asyncio.wait_for(both_inside.wait(), timeout=1)

        await asyncio.gather(worker("user-1"), worker("user-2"))
        assert both_inside.is_set()

    @pytest.mark.asyncio()
    async def test_entries_reclaimed(self):
        locks = UserLockTable()
        async with locks.hold("user-1"):
            assert len(locks) == 1
            assert locks.is_locked("user-1")
        assert len(locks) == 0
        assert not locks.is_locked("user-1")

    @pytest.mark.asyncio()
    async def test_reclaimed_after_exception(self):
        locks = UserLockTable()
        with pytest.raises(RuntimeError):
            async with locks.hold("user-1"):
                raise RuntimeError("boom")
        assert len(locks) == 0

    @pytest.mark.asyncio()
    async def test_entry_kept_while_waiter_queued(self):
        locks = UserLockTable()
        release = asyncio.Event()

        async def holder():
            async with locks.hold("user-1"):
                await release.wait()

        async def waiter():
            async with locks.hold("user-1"):
                pass

        tasks = [asyncio.create_task(holder()), asyncio.create_task(waiter())]
        await asyncio.sleep(0)
        assert len(locks) == 1
        release.set()
        await asyncio.gather(*tasks)
        assert len(locks) == 0
