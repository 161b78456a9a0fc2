"""Record store implementations."""

from .memory_store import InMemoryRecordStore
from .sql_store import RecordRow, SQLRecordStore, create_db_engine, init_schema

__all__ = [
    "InMemoryRecordStore",
    "RecordRow",
    "SQLRecordStore",
    "create_db_engine",
    "init_schema",
]
