"""
Test data factories: a settable clock and the reference data every shift test
runs against.

Reference data
    Time-table ``tt-day``: 07:00-08:00, 08:00-09:00 (tea, 15 min),
    09:00-10:00, 10:00-11:00 (lunch, 30 min).
    Lines ``line-1`` and ``line-2`` run ``tt-day``; ``line-3`` has no
    time-table.
    Personnel (employee number / credential): supervisor S001/1111, inactive
    supervisor S002/2222, mechanics M001/5555 and M002/6666, QC Q001/7777 and
    Q002/8888, operator E001 without a credential.
"""

from datetime import datetime, timedelta, timezone

from shiftline.domain.production.repositories.record_store import (
    BREAKS,
    LINES,
    PERSONNEL,
    STYLES,
    TIME_TABLES,
)
from shiftline.domain.shared.exceptions import PersistenceError

SHIFT_START = datetime(2024, 3, 4, 8, 30, tzinfo=timezone.utc)

SUPERVISOR = ("S001", "1111")
INACTIVE_SUPERVISOR = ("S002", "2222")
MECHANIC = ("M001", "5555")
OTHER_MECHANIC = ("M002", "6666")
QC = ("Q001", "7777")
OTHER_QC = ("Q002", "8888")


class FixedClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, hour: int, minute: int = 0) -> datetime:
        self.now = self.now.replace(hour=hour, minute=minute)
        return self.now


REFERENCE_DATA = {
    BREAKS: [
        {"id": "brk-tea", "break_type": "Tea", "duration": 15},
        {"id": "brk-lunch", "break_type": "Lunch", "duration": 30},
    ],
    TIME_TABLES: [
        {
            "id": "tt-day",
            "name": "Day shift",
            "line_id": "line-1",
            "slots": [
                {"id": "slot-1", "start_time": "07:00", "end_time": "08:00"},
                {
                    "id": "slot-2",
                    "start_time": "08:00",
                    "end_time": "09:00",
                    "break_id": "brk-tea",
                },
                {"id": "slot-3", "start_time": "09:00", "end_time": "10:00"},
                {
                    "id": "slot-4",
                    "start_time": "10:00",
                    "end_time": "11:00",
                    "break_id": "brk-lunch",
                },
            ],
        },
    ],
    LINES: [
        {"id": "line-1", "name": "Line 1", "active": True, "assigned_time_table_id": "tt-day"},
        {"id": "line-2", "name": "Line 2", "active": True, "assigned_time_table_id": "tt-day"},
        {"id": "line-3", "name": "Line 3", "active": True, "assigned_time_table_id": None},
    ],
    STYLES: [
        {
            "id": "style-a",
            "style_number": "ST-100",
            "style_name": "Polo shirt",
            "units_in_order": 100,
            "hourly_target": 60,
        },
        {
            "id": "style-b",
            "style_number": "ST-200",
            "style_name": "Chino",
            "units_in_order": 2,
            "hourly_target": 20,
        },
    ],
    PERSONNEL: [
        {
            "id": "sup-1",
            "name": "Sam",
            "surname": "Ndlovu",
            "employee_number": "S001",
            "role": "Supervisor",
            "credential": "1111",
            "has_credential": True,
            "active": True,
        },
        {
            "id": "sup-2",
            "name": "Ria",
            "surname": "Pillay",
            "employee_number": "S002",
            "role": "Supervisor",
            "credential": "2222",
            "has_credential": True,
            "active": False,
        },
        {
            "id": "mech-1",
            "name": "Thabo",
            "surname": "Mokoena",
            "employee_number": "M001",
            "role": "Mechanic",
            "credential": "5555",
            "has_credential": True,
            "active": True,
        },
        {
            "id": "mech-2",
            "name": "Lee",
            "surname": "Adams",
            "employee_number": "M002",
            "role": "Mechanic",
            "credential": "6666",
            "has_credential": True,
            "active": True,
        },
        {
            "id": "qc-1",
            "name": "Ayesha",
            "surname": "Khan",
            "employee_number": "Q001",
            "role": "QC",
            "credential": "7777",
            "has_credential": True,
            "active": True,
        },
        {
            "id": "qc-2",
            "name": "Pieter",
            "surname": "Botha",
            "employee_number": "Q002",
            "role": "QC",
            "credential": "8888",
            "has_credential": True,
            "active": True,
        },
        {
            "id": "op-1",
            "name": "Nomsa",
            "surname": "Dube",
            "employee_number": "E001",
            "role": "Operator",
            "credential": None,
            "has_credential": False,
            "active": True,
        },
    ],
}


async def seed_reference_data(store) -> None:
    """Load the reference collections into a record store."""
    for collection, records in REFERENCE_DATA.items():
        for record in records:
            await store.create(collection, dict(record))


def fail_next_create(monkeypatch, store, collection: str) -> None:
    """Make the store's next create in ``collection`` raise PersistenceError once."""
    original = store.create
    pending = [True]

    async def create(target, data, unique_key=None):
        if target == collection and pending:
            pending.clear()
            raise PersistenceError("create", "connection reset")
        return await original(target, data, unique_key=unique_key)

    monkeypatch.setattr(store, "create", create)
