"""
Tests for the bounded registry of live session stores.
"""

import pytest

from practice_engine.api.store_registry import StoreRegistry
from builders import STUDENT_ID, SUB_TOPIC_ID


@pytest.fixture
def registry(monotonic):
    return StoreRegistry(idle_ttl_seconds=60, max_stores=2, monotonic=monotonic)


async def started(make_store):
    store = make_store()
    session = await store.start_session(STUDENT_ID, SUB_TOPIC_ID)
    return session.id, store


class TestStoreRegistry:
    @pytest.mark.asyncio
    async def test_get_returns_live_store(self, registry, make_store):
        session_id, store = await started(make_store)
        registry.put(session_id, store)

        assert registry.get(session_id) is store
        assert registry.get("missing") is None

    @pytest.mark.asyncio
    async def test_idle_store_is_evicted(self, registry, make_store, monotonic):
        session_id, store = await started(make_store)
        registry.put(session_id, store)

        monotonic.advance(59)
        assert registry.get(session_id) is store

        monotonic.advance(60)
        assert registry.get(session_id) is None
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_completed_store_is_evicted(self, registry, make_store):
        session_id, store = await started(make_store)
        registry.put(session_id, store)
        for i in range(store.total_questions):
            await store.go_to_question(i + 1)
            await store.submit_answer("a")
        await store.complete_session()

        assert registry.prune() == 1
        assert session_id not in registry

    @pytest.mark.asyncio
    async def test_least_recently_used_goes_first_when_full(self, registry, make_store, monotonic):
        first_id, first = await started(make_store)
        second_id, second = await started(make_store)
        third_id, third = await started(make_store)

        registry.put(first_id, first)
        monotonic.advance(1)
        registry.put(second_id, second)
        monotonic.advance(1)
        registry.get(first_id)
        registry.put(third_id, third)

        assert len(registry) == 2
        assert first_id in registry
        assert second_id not in registry
        assert third_id in registry

    @pytest.mark.asyncio
    async def test_pop(self, registry, make_store):
        session_id, store = await started(make_store)
        registry.put(session_id, store)

        assert registry.pop(session_id) is store
        assert registry.pop(session_id) is None
