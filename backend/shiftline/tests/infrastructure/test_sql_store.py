"""
Tests for the SQL record store against in-memory SQLite.
"""

import threading
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from shiftline.domain.shared.exceptions import DuplicateKeyError, PersistenceError
from shiftline.infrastructure.persistence.sql_store import (
    RecordRow,
    SQLRecordStore,
    create_db_engine,
    init_schema,
)


@pytest.fixture
def db_engine():
    engine = create_db_engine("sqlite://")
    init_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_store(db_engine):
    store = SQLRecordStore(db_engine)
    yield store
    store.close()


class TestSQLRecordStore:
    """Test the record store contract on SQLite."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, sql_store):
        record = await sql_store.create("things", {"name": "a", "on": date(2024, 3, 4)})

        stored = await sql_store.get("things", record["id"])

        assert stored == record
        assert stored["on"] == "2024-03-04"

    @pytest.mark.asyncio
    async def test_get_is_scoped_to_collection(self, sql_store):
        record = await sql_store.create("things", {"id": "t-1"})

        assert await sql_store.get("others", record["id"]) is None
        assert await sql_store.get("things", "missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, sql_store):
        await sql_store.create("things", {"id": "t-1"})

        with pytest.raises(DuplicateKeyError):
            await sql_store.create("things", {"id": "t-1"})

    @pytest.mark.asyncio
    async def test_unique_key_held_until_released(self, sql_store):
        first = await sql_store.create("sessions", {"active": True}, unique_key="line:1")

        with pytest.raises(DuplicateKeyError):
            await sql_store.create("sessions", {"active": True}, unique_key="line:1")

        await sql_store.update(
            "sessions", first["id"], {"active": False}, release_unique_key=True
        )
        second = await sql_store.create("sessions", {"active": True}, unique_key="line:1")

        assert second["id"] != first["id"]

    @pytest.mark.asyncio
    async def test_records_without_unique_key_do_not_collide(self, sql_store):
        await sql_store.create("things", {})
        await sql_store.create("things", {})

        assert len(await sql_store.query("things")) == 2

    @pytest.mark.asyncio
    async def test_conditional_update(self, sql_store):
        record = await sql_store.create("things", {"status": "open", "count": 1})

        updated = await sql_store.update(
            "things", record["id"], {"status": "closed"}, expected={"status": "open"}
        )
        stale = await sql_store.update(
            "things", record["id"], {"status": "perfect"}, expected={"status": "open"}
        )

        assert updated["status"] == "closed"
        assert updated["count"] == 1
        assert stale is None
        assert (await sql_store.get("things", record["id"]))["status"] == "closed"

    @pytest.mark.asyncio
    async def test_update_missing_record(self, sql_store):
        assert await sql_store.update("things", "missing", {"a": 1}) is None

    @pytest.mark.asyncio
    async def test_query_filters_in_creation_order(self, sql_store):
        a = await sql_store.create("things", {"kind": "x"})
        await sql_store.create("things", {"kind": "y"})
        await sql_store.create("others", {"kind": "x"})
        c = await sql_store.create("things", {"kind": "x"})

        results = await sql_store.query("things", kind="x")

        assert [r["id"] for r in results] == [a["id"], c["id"]]

    @pytest.mark.asyncio
    async def test_query_mixes_column_json_and_value_filters(self, sql_store):
        match = await sql_store.create(
            "events", {"session_id": "s-1", "kind": "reject", "slot_id": None, "produced": True}
        )
        await sql_store.create(
            "events", {"session_id": "s-1", "kind": "reject", "slot_id": "slot-1", "produced": True}
        )
        await sql_store.create(
            "events", {"session_id": "s-1", "kind": "reject", "slot_id": None, "produced": False}
        )
        await sql_store.create(
            "events", {"session_id": "s-2", "kind": "reject", "slot_id": None, "produced": True}
        )
        await sql_store.create("events", {"session_id": "s-1", "kind": "rework"})

        results = await sql_store.query(
            "events", session_id="s-1", kind="reject", slot_id=None, produced=True
        )

        assert [r["id"] for r in results] == [match["id"]]

    @pytest.mark.asyncio
    async def test_session_id_column_follows_document(self, db_engine, sql_store):
        record = await sql_store.create("things", {"session_id": "s-1"})
        await sql_store.update("things", record["id"], {"session_id": "s-2"})
        await sql_store.create("things", {"name": "no session"})

        with Session(db_engine) as db:
            rows = db.exec(select(RecordRow).order_by(RecordRow.created_at)).all()

        assert [row.session_id for row in rows] == ["s-2", None]
        assert [r["id"] for r in await sql_store.query("things", session_id="s-2")] == [
            record["id"]
        ]
        assert await sql_store.query("things", session_id="s-1") == []

    @pytest.mark.asyncio
    async def test_database_calls_leave_the_event_loop_thread(self, sql_store, monkeypatch):
        threads = []
        run_query = sql_store._query

        def spy(*args):
            threads.append(threading.current_thread())
            return run_query(*args)

        monkeypatch.setattr(sql_store, "_query", spy)

        await sql_store.query("things")

        assert threads and threads[0] is not threading.current_thread()
        assert threads[0].name.startswith("record-store")

    @pytest.mark.asyncio
    async def test_database_failure_is_persistence_error(self, db_engine, sql_store):
        with db_engine.begin() as connection:
            connection.exec_driver_sql("DROP TABLE records")

        with pytest.raises(PersistenceError) as exc_info:
            await sql_store.query("things")

        assert exc_info.value.operation == "query"
        assert isinstance(exc_info.value.__cause__, OperationalError)
