"""
Tests for the in-memory record store.
"""

from datetime import date, datetime, timezone

import pytest

from shiftline.domain.shared.exceptions import DuplicateKeyError
from shiftline.infrastructure.persistence.documents import MonotonicTimestamps
from shiftline.infrastructure.persistence.memory_store import InMemoryRecordStore


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


class TestCreateAndGet:
    """Test record creation."""

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamps(self, memory_store):
        record = await memory_store.create("things", {"name": "a"})

        assert record["id"]
        assert record["created_at"] == record["updated_at"]
        assert await memory_store.get("things", record["id"]) == record

    @pytest.mark.asyncio
    async def test_supplied_id_is_kept(self, memory_store):
        record = await memory_store.create("things", {"id": "t-1"})

        assert record["id"] == "t-1"

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, memory_store):
        await memory_store.create("things", {"id": "t-1"})

        with pytest.raises(DuplicateKeyError):
            await memory_store.create("things", {"id": "t-1"})

    @pytest.mark.asyncio
    async def test_values_are_stored_as_json(self, memory_store):
        record = await memory_store.create(
            "things",
            {"at": datetime(2024, 3, 4, 8, 30, tzinfo=timezone.utc), "on": date(2024, 3, 4)},
        )

        assert record["at"] == "2024-03-04T08:30:00Z"
        assert record["on"] == "2024-03-04"

    @pytest.mark.asyncio
    async def test_get_missing_or_other_collection(self, memory_store):
        record = await memory_store.create("things", {})

        assert await memory_store.get("things", "missing") is None
        assert await memory_store.get("others", record["id"]) is None

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, memory_store):
        record = await memory_store.create("things", {"tags": ["a"]})
        record["tags"].append("b")

        stored = await memory_store.get("things", record["id"])

        assert stored["tags"] == ["a"]


class TestUniqueKeys:
    """Test uniqueness keys."""

    @pytest.mark.asyncio
    async def test_unique_key_held_once(self, memory_store):
        await memory_store.create("sessions", {}, unique_key="line:1")

        with pytest.raises(DuplicateKeyError):
            await memory_store.create("sessions", {}, unique_key="line:1")

    @pytest.mark.asyncio
    async def test_unique_key_scoped_to_collection(self, memory_store):
        await memory_store.create("sessions", {}, unique_key="line:1")

        assert await memory_store.create("other", {}, unique_key="line:1")

    @pytest.mark.asyncio
    async def test_released_key_can_be_reused(self, memory_store):
        first = await memory_store.create("sessions", {"active": True}, unique_key="line:1")
        await memory_store.update(
            "sessions", first["id"], {"active": False}, release_unique_key=True
        )

        second = await memory_store.create("sessions", {"active": True}, unique_key="line:1")

        assert second["id"] != first["id"]


class TestUpdate:
    """Test plain and conditional updates."""

    @pytest.mark.asyncio
    async def test_update_merges_fields(self, memory_store):
        record = await memory_store.create("things", {"a": 1, "b": 2})

        updated = await memory_store.update("things", record["id"], {"b": 3})

        assert updated["a"] == 1
        assert updated["b"] == 3
        assert updated["updated_at"] != record["updated_at"]

    @pytest.mark.asyncio
    async def test_conditional_update_applies_when_expected_matches(self, memory_store):
        record = await memory_store.create("things", {"status": "open"})

        updated = await memory_store.update(
            "things", record["id"], {"status": "closed"}, expected={"status": "open"}
        )

        assert updated["status"] == "closed"

    @pytest.mark.asyncio
    async def test_conditional_update_skipped_when_stale(self, memory_store):
        record = await memory_store.create("things", {"status": "closed"})

        result = await memory_store.update(
            "things", record["id"], {"status": "open"}, expected={"status": "open"}
        )

        assert result is None
        assert (await memory_store.get("things", record["id"]))["status"] == "closed"

    @pytest.mark.asyncio
    async def test_expected_none_matches_missing_field(self, memory_store):
        record = await memory_store.create("things", {})

        assert await memory_store.update(
            "things", record["id"], {"done_at": "x"}, expected={"done_at": None}
        )

    @pytest.mark.asyncio
    async def test_update_missing_record(self, memory_store):
        assert await memory_store.update("things", "missing", {"a": 1}) is None


class TestQuery:
    """Test equality-filtered queries."""

    @pytest.mark.asyncio
    async def test_filters_and_keeps_creation_order(self, memory_store):
        a = await memory_store.create("things", {"kind": "x"})
        await memory_store.create("things", {"kind": "y"})
        c = await memory_store.create("things", {"kind": "x"})

        results = await memory_store.query("things", kind="x")

        assert [r["id"] for r in results] == [a["id"], c["id"]]

    @pytest.mark.asyncio
    async def test_filter_values_are_normalised(self, memory_store):
        await memory_store.create("things", {"on": date(2024, 3, 4)})

        assert len(await memory_store.query("things", on=date(2024, 3, 4))) == 1

    @pytest.mark.asyncio
    async def test_empty_collection(self, memory_store):
        assert await memory_store.query("nothing") == []


class TestMonotonicTimestamps:
    """Test store timestamps never repeat."""

    def test_frozen_clock_still_advances(self):
        frozen = datetime(2024, 3, 4, tzinfo=timezone.utc)
        timestamps = MonotonicTimestamps(lambda: frozen)

        first = timestamps.next()
        second = timestamps.next()

        assert first == frozen
        assert second > first
