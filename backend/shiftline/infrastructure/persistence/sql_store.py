"""
SQL record store.

Implements ``RecordStore`` on a single SQLModel table holding every collection
as JSON documents. Uniqueness keys are a real unique constraint, and
conditional writes are optimistic: the row's ``version`` must still be the one
the ``expected`` check was evaluated against, otherwise the check is re-run on
the fresh row.

``session_id`` is promoted to an indexed column and string-valued query
filters are evaluated by the database. Blocking session work runs on the
store's worker threads so the event loop keeps serving other tasks.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from functools import partial
from typing import Any, Callable, TypeVar
from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, Index, UniqueConstraint, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine, select

from ...domain.production.repositories.record_store import Record, RecordStore
from ...domain.shared.clock import Clock
from ...domain.shared.exceptions import DuplicateKeyError, PersistenceError
from .documents import MonotonicTimestamps, matches, to_document, to_timestamp

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordRow(SQLModel, table=True):
    """One record of any collection."""

    __tablename__ = "records"
    __table_args__ = (
        UniqueConstraint(
            "collection", "unique_key", name="uq_records_collection_unique_key"
        ),
        Index("ix_records_collection_created_at", "collection", "created_at"),
        Index("ix_records_collection_session_id", "collection", "session_id"),
    )

    id: str = Field(primary_key=True, max_length=64)
    collection: str = Field(max_length=64)
    unique_key: str | None = Field(default=None, max_length=255)
    session_id: str | None = Field(default=None, max_length=64)
    data: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    version: int = Field(default=1)
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Engine for ``database_url``.

    In-memory SQLite shares one connection across the process so every session
    sees the same database.
    """
    if database_url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in {"sqlite://", "sqlite:///"}:
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def init_schema(engine: Engine) -> None:
    """Create the records table if it does not exist."""
    SQLModel.metadata.create_all(engine, tables=[RecordRow.__table__])


def _session_id(document: Record) -> str | None:
    value = document.get("session_id")
    return value if isinstance(value, str) else None


class SQLRecordStore(RecordStore):
    """Record store backed by a SQL database through SQLModel."""

    def __init__(
        self,
        engine: Engine,
        clock: Clock | None = None,
        max_write_attempts: int = 3,
        max_workers: int | None = None,
    ) -> None:
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine
            clock: Source of ``created_at`` / ``updated_at`` (UTC by default)
            max_write_attempts: Times a conditional write is re-evaluated after
                losing a race before giving up
            max_workers: Worker threads running database calls; a single
                shared connection (in-memory SQLite) always gets one
        """
        self._engine = engine
        self._timestamps = MonotonicTimestamps(clock)
        self._max_write_attempts = max_write_attempts
        if isinstance(engine.pool, StaticPool):
            max_workers = 1
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="record-store"
        )

    def close(self) -> None:
        """Stop the worker threads and release pooled connections."""
        self._executor.shutdown(wait=True)
        self._engine.dispose()

    async def _run(self, func: Callable[..., T], *args: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, partial(func, *args))

    async def create(
        self, collection: str, data: Record, unique_key: str | None = None
    ) -> Record:
        document = to_document(data)
        record_id = document.pop("id", None) or uuid4().hex
        now = self._timestamps.next()
        document.update(id=record_id, created_at=to_timestamp(now), updated_at=to_timestamp(now))

        row = RecordRow(
            id=record_id,
            collection=collection,
            unique_key=unique_key,
            session_id=_session_id(document),
            data=document,
            created_at=now,
            updated_at=now,
        )
        await self._run(self._insert, row)

        logger.debug("Created %s/%s", collection, record_id)
        return document

    async def get(self, collection: str, record_id: str) -> Record | None:
        return await self._run(self._get, collection, record_id)

    async def update(
        self,
        collection: str,
        record_id: str,
        fields: Record,
        expected: Record | None = None,
        release_unique_key: bool = False,
    ) -> Record | None:
        conditions = to_document(expected or {})
        changes = to_document(fields)
        now = self._timestamps.next()

        return await self._run(
            self._update,
            collection,
            record_id,
            changes,
            conditions,
            release_unique_key,
            now,
        )

    async def query(self, collection: str, **filters: Any) -> list[Record]:
        return await self._run(self._query, collection, to_document(filters))

    def _insert(self, row: RecordRow) -> None:
        with Session(self._engine) as db:
            try:
                db.add(row)
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise DuplicateKeyError(row.collection, row.unique_key or row.id) from e
            except SQLAlchemyError as e:
                db.rollback()
                raise PersistenceError("create", str(e)) from e

    def _get(self, collection: str, record_id: str) -> Record | None:
        try:
            with Session(self._engine) as db:
                row = db.get(RecordRow, record_id)
                if row is None or row.collection != collection:
                    return None
                return dict(row.data)
        except SQLAlchemyError as e:
            raise PersistenceError("get", str(e)) from e

    def _update(
        self,
        collection: str,
        record_id: str,
        changes: Record,
        conditions: Record,
        release_unique_key: bool,
        now: datetime,
    ) -> Record | None:
        try:
            for _ in range(self._max_write_attempts):
                with Session(self._engine) as db:
                    row = db.get(RecordRow, record_id)
                    if row is None or row.collection != collection:
                        return None
                    if not matches(row.data, conditions):
                        logger.debug(
                            "Conditional write on %s/%s skipped", collection, record_id
                        )
                        return None

                    document = {**row.data, **changes, "updated_at": to_timestamp(now)}
                    values: dict[str, Any] = {
                        "data": document,
                        "session_id": _session_id(document),
                        "version": row.version + 1,
                        "updated_at": now,
                    }
                    if release_unique_key:
                        values["unique_key"] = None

                    statement = (
                        update(RecordRow)
                        .where(RecordRow.id == record_id, RecordRow.version == row.version)
                        .values(**values)
                    )
                    result = db.connection().execute(statement)
                    db.commit()
                    if result.rowcount == 1:
                        return document

                logger.info(
                    "Concurrent write on %s/%s, re-evaluating", collection, record_id
                )
        except SQLAlchemyError as e:
            raise PersistenceError("update", str(e)) from e

        logger.warning(
            "Gave up writing %s/%s after %d attempts",
            collection,
            record_id,
            self._max_write_attempts,
        )
        return None

    def _query(self, collection: str, conditions: Record) -> list[Record]:
        statement = select(RecordRow).where(RecordRow.collection == collection)
        for field, value in conditions.items():
            if not isinstance(value, str):
                continue
            if field == "session_id":
                statement = statement.where(RecordRow.session_id == value)
            else:
                statement = statement.where(RecordRow.data[field].as_string() == value)
        statement = statement.order_by(RecordRow.created_at, RecordRow.id)

        try:
            with Session(self._engine) as db:
                rows = db.exec(statement).all()
                # Non-string conditions (None, numbers, booleans) are checked here
                return [dict(row.data) for row in rows if matches(row.data, conditions)]
        except SQLAlchemyError as e:
            raise PersistenceError("query", str(e)) from e
