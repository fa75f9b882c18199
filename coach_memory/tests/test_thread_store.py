"""Tests for ThreadStore against the in-memory fake backend."""
from __future__ import annotations

import json

import pytest

from coach_memory.exceptions import MalformedRecordError
from coach_memory.models import parse_timestamp
from coach_memory.thread_store import ThreadStore


class TestCreateThread:
    @pytest.mark.asyncio
    async def test_writes_hash_and_index(self, thread_store: ThreadStore, backend) -> None:
        thread = await thread_store.create_thread(
            "user-1", title="Finger strength", metadata={"goal": "V8"}
        )

        stored = backend.data[f"thread:{thread.id}"]
        assert stored["resourceId"] == "user-1"
        assert stored["title"] == "Finger strength"
        assert json.loads(stored["metadata"]) == {"goal": "V8"}
        assert backend.data["resource:user-1:threads"] == {thread.id}

    @pytest.mark.asyncio
    async def test_timestamps_match_on_create(self, thread_store: ThreadStore) -> None:
        thread = await thread_store.create_thread("user-1")
        assert thread.created_at == thread.updated_at

    @pytest.mark.asyncio
    async def test_optional_fields_not_written(
        self, thread_store: ThreadStore, backend
    ) -> None:
        thread = await thread_store.create_thread("user-1")
        stored = backend.data[f"thread:{thread.id}"]
        assert "title" not in stored
        assert "metadata" not in stored

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, thread_store: ThreadStore) -> None:
        ids = {(await thread_store.create_thread("user-1")).id for _ in range(50)}
        assert len(ids) == 50


class TestGetThread:
    @pytest.mark.asyncio
    async def test_roundtrip_equals_created(self, thread_store: ThreadStore) -> None:
        thread = await thread_store.create_thread(
            "user-1", title="Assessment", metadata={"type": "assessment", "n": 3}
        )
        assert await thread_store.get_thread_by_id(thread.id) == thread

    @pytest.mark.asyncio
    async def test_missing_returns_none(self, thread_store: ThreadStore) -> None:
        assert await thread_store.get_thread_by_id("nope") is None

    @pytest.mark.asyncio
    async def test_malformed_hash_raises(self, thread_store: ThreadStore, backend) -> None:
        backend.data["thread:bad"] = {"id": "bad"}
        with pytest.raises(MalformedRecordError, match="resourceId"):
            await thread_store.get_thread_by_id("bad")


class TestGetThreadsByResource:
    @pytest.mark.asyncio
    async def test_sorted_by_updated_desc(self, thread_store: ThreadStore) -> None:
        first = await thread_store.create_thread("user-1", title="first")
        second = await thread_store.create_thread("user-1", title="second")
        third = await thread_store.create_thread("user-1", title="third")
        await thread_store.update_thread(first.id, {})

        threads = await thread_store.get_threads_by_resource_id("user-1")
        assert [t.id for t in threads] == [first.id, third.id, second.id]

    @pytest.mark.asyncio
    async def test_only_own_resource(self, thread_store: ThreadStore) -> None:
        mine = await thread_store.create_thread("user-1")
        await thread_store.create_thread("user-2")

        threads = await thread_store.get_threads_by_resource_id("user-1")
        assert [t.id for t in threads] == [mine.id]

    @pytest.mark.asyncio
    async def test_unknown_resource_empty(self, thread_store: ThreadStore) -> None:
        assert await thread_store.get_threads_by_resource_id("ghost") == []

    @pytest.mark.asyncio
    async def test_skips_dangling_index_entries(
        self, thread_store: ThreadStore, backend
    ) -> None:
        kept = await thread_store.create_thread("user-1")
        backend.data["resource:user-1:threads"].add("deleted-elsewhere")

        threads = await thread_store.get_threads_by_resource_id("user-1")
        assert [t.id for t in threads] == [kept.id]


class TestUpdateThread:
    @pytest.mark.asyncio
    async def test_title_change_advances_updated_at(
        self, thread_store: ThreadStore
    ) -> None:
        thread = await thread_store.create_thread("user-1", title="old", metadata={"a": 1})
        await thread_store.update_thread(thread.id, {"title": "x"})

        after = await thread_store.get_thread_by_id(thread.id)
        assert after is not None
        assert after.title == "x"
        assert after.metadata == {"a": 1}
        assert after.resource_id == thread.resource_id
        assert after.created_at == thread.created_at
        assert parse_timestamp(after.updated_at) > parse_timestamp(thread.updated_at)

    @pytest.mark.asyncio
    async def test_empty_update_still_touches(self, thread_store: ThreadStore) -> None:
        thread = await thread_store.create_thread("user-1")
        updated = await thread_store.update_thread(thread.id, {})
        assert updated is not None
        assert updated.updated_at > thread.updated_at

    @pytest.mark.asyncio
    async def test_missing_returns_none_without_upsert(
        self, thread_store: ThreadStore, backend
    ) -> None:
        assert await thread_store.update_thread("nope", {"title": "x"}) is None
        assert "thread:nope" not in backend.data

    @pytest.mark.asyncio
    async def test_identity_fields_ignored(self, thread_store: ThreadStore) -> None:
        thread = await thread_store.create_thread("user-1")
        updated = await thread_store.update_thread(
            thread.id, {"id": "other", "resource_id": "user-2", "title": "t"}
        )
        assert updated is not None
        assert updated.id == thread.id
        assert updated.resource_id == "user-1"

    @pytest.mark.asyncio
    async def test_setting_title_none_removes_field(
        self, thread_store: ThreadStore, backend
    ) -> None:
        thread = await thread_store.create_thread("user-1", title="gone soon")
        await thread_store.update_thread(thread.id, {"title": None})

        assert "title" not in backend.data[f"thread:{thread.id}"]
        after = await thread_store.get_thread_by_id(thread.id)
        assert after is not None and after.title is None

    @pytest.mark.asyncio
    async def test_stalled_clock_still_advances(self, backend) -> None:
        store = ThreadStore(backend, clock=lambda: "2026-01-01T00:00:00+00:00")
        thread = await store.create_thread("user-1")
        updated = await store.update_thread(thread.id, {})
        assert updated is not None
        assert parse_timestamp(updated.updated_at) > parse_timestamp(thread.updated_at)


class TestDeleteThread:
    @pytest.mark.asyncio
    async def test_removes_thread_index_and_messages(
        self, thread_store: ThreadStore, backend
    ) -> None:
        thread = await thread_store.create_thread("user-1")
        backend.data[f"thread:{thread.id}:messages"] = ["m1"]

        assert await thread_store.delete_thread(thread.id) is True
        assert await thread_store.get_thread_by_id(thread.id) is None
        assert await thread_store.get_threads_by_resource_id("user-1") == []
        assert f"thread:{thread.id}:messages" not in backend.data

    @pytest.mark.asyncio
    async def test_missing_returns_false(self, thread_store: ThreadStore) -> None:
        assert await thread_store.delete_thread("nope") is False

    @pytest.mark.asyncio
    async def test_idempotent(self, thread_store: ThreadStore) -> None:
        thread = await thread_store.create_thread("user-1")
        assert await thread_store.delete_thread(thread.id) is True
        assert await thread_store.delete_thread(thread.id) is False
