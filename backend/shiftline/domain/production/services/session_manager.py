"""
Session Manager

Lifecycle of a shift session on a production line:
``no session -> open -> closed``. A closed session is terminal; a new shift
starts a new session.

At most one session is open per line. The rule is enforced by the store: the
session record is created holding the unique key ``line:<line_id>``, which is
released again when the session ends, so two terminals racing to start a shift
on the same line cannot both succeed.
"""

import logging

from ...shared.clock import Clock
from ...shared.events import EventPublisher
from ...shared.exceptions import (
    BusinessRuleError,
    ConflictError,
    DataIntegrityError,
    DuplicateKeyError,
    EntityNotFoundError,
    SessionNotActiveError,
    ValidationError,
)
from ..entities.session import Session
from ..events.domain_events import SessionEnded, SessionStarted
from ..repositories.record_store import SESSIONS, RecordStore
from ..repositories.reference_registry import ReferenceRegistry
from ..value_objects.enums import Role
from ..value_objects.reports import SessionView, SignIn
from .base import ShiftService
from .downtime_lifecycle import DowntimeLifecycle
from .production_recorder import ProductionRecorder
from .verification_gate import VerificationGate

logger = logging.getLogger(__name__)


def active_session_key(line_id: str) -> str:
    """Unique key held by the open session of a line."""
    return f"line:{line_id}"


class SessionManager(ShiftService):
    """Find, start, resume and end shift sessions."""

    def __init__(
        self,
        store: RecordStore,
        registry: ReferenceRegistry,
        gate: VerificationGate,
        recorder: ProductionRecorder,
        downtime: DowntimeLifecycle,
        publisher: EventPublisher | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        Initialize the session manager.

        Args:
            store: Record store holding sessions
            registry: Lines, styles and time-tables
            gate: Verification gate for supervisor sign-in
            recorder: Production recorder used to rehydrate outputs on resume
            downtime: Downtime lifecycle closing open downtime at session end
            publisher: Optional event publisher
            clock: Wall-clock source
        """
        super().__init__(store, publisher, clock)
        self._registry = registry
        self._gate = gate
        self._recorder = recorder
        self._downtime = downtime

    async def find_open_session(self, line_id: str) -> Session | None:
        """
        The open session of a line, if there is one.

        Raises:
            DataIntegrityError: If more than one open session exists for the line
        """
        records = await self._store.query(SESSIONS, line_id=line_id, active=True)
        if len(records) > 1:
            logger.error(
                "Line %s has %d open sessions: %s",
                line_id,
                len(records),
                ", ".join(record["id"] for record in records),
            )
            raise DataIntegrityError(
                f"Line {line_id} has more than one open session",
                {"line_id": line_id, "open_sessions": len(records)},
            )
        return Session.from_record(records[0]) if records else None

    async def sign_in(
        self, line_id: str, supervisor_identifier: str, credential: str
    ) -> SignIn:
        """
        Verify the supervisor and report the line's open session.

        The caller decides whether to resume the open session or force-close
        it; nothing is closed here.

        Raises:
            VerificationFailed: If the supervisor does not verify
        """
        supervisor = await self._gate.require(
            Role.SUPERVISOR, supervisor_identifier, credential
        )
        open_session = await self.find_open_session(line_id)
        return SignIn(supervisor=supervisor, open_session=open_session)

    async def start(
        self,
        line_id: str,
        supervisor_id: str,
        style_id: str,
        hourly_target: int,
    ) -> Session:
        """
        Open a new session on a line.

        The line's assigned time-table is captured on the session so later
        re-assignment does not move the slots of a running shift.

        Raises:
            ValidationError: If the hourly target is not positive
            EntityNotFoundError: If the line, style or time-table does not exist
            BusinessRuleError: If the line is inactive or has no time-table
            ConflictError: If the line already has an open session
        """
        if hourly_target <= 0:
            raise ValidationError(
                "hourly_target", hourly_target, "Hourly target must be a positive number"
            )

        line = await self._registry.get_line(line_id)
        if line is None:
            raise EntityNotFoundError("Line", line_id)
        if not line.active:
            raise BusinessRuleError("Line is not active", {"line_id": line_id})
        if not line.assigned_time_table_id:
            raise BusinessRuleError(
                "No time-table is assigned to this line", {"line_id": line_id}
            )
        if await self._registry.get_style(style_id) is None:
            raise EntityNotFoundError("Style", style_id)
        if await self._registry.get_time_table(line.assigned_time_table_id) is None:
            raise EntityNotFoundError("TimeTable", line.assigned_time_table_id)

        existing = await self.find_open_session(line_id)
        if existing is not None:
            raise ConflictError(line_id, existing.id)

        try:
            record = await self._store.create(
                SESSIONS,
                {
                    "line_id": line_id,
                    "supervisor_id": supervisor_id,
                    "style_id": style_id,
                    "hourly_target": hourly_target,
                    "time_table_id": line.assigned_time_table_id,
                    "start_time": self._now(),
                    "end_time": None,
                    "active": True,
                },
                unique_key=active_session_key(line_id),
            )
        except DuplicateKeyError as e:
            logger.info("Lost the race to start a session on line %s", line_id)
            raise ConflictError(line_id) from e

        session = Session.from_record(record)
        logger.info(
            "Session %s started on line %s by supervisor %s",
            session.id,
            line_id,
            supervisor_id,
        )
        await self._publish(
            SessionStarted(
                session_id=session.id,
                line_id=line_id,
                supervisor_id=supervisor_id,
                style_id=style_id,
                hourly_target=hourly_target,
            )
        )
        return session

    async def resume(self, session: Session) -> SessionView:
        """
        Rehydrate an open session with its outputs and balance. Writes nothing.

        Raises:
            SessionNotActiveError: If the session has ended
        """
        current = await self._require_active(session)
        table = await self._registry.get_time_table(current.time_table_id)
        if table is None:
            raise EntityNotFoundError("TimeTable", current.time_table_id)

        outputs = await self._recorder.outputs_by_slot(current, table)
        style = await self._registry.get_style(current.style_id)
        logger.info("Resumed session %s on line %s", current.id, current.line_id)
        return SessionView(
            session=current,
            time_table=table,
            outputs=tuple(outputs),
            order_quantity=style.units_in_order if style else 0,
        )

    async def end(self, session: Session) -> Session:
        """
        Close a session and every downtime still open on it.

        Open downtime is closed with the session's end time. Repeating the call
        on an ended session closes any downtime a failed earlier attempt left
        open and otherwise changes nothing.
        """
        updated = await self._store.update(
            SESSIONS,
            session.id,
            {"active": False, "end_time": self._now()},
            expected={"active": True},
            release_unique_key=True,
        )
        if updated is None:
            record = await self._store.get(SESSIONS, session.id)
            if record is None:
                raise EntityNotFoundError("Session", session.id)
            ended = Session.from_record(record)
            if ended.end_time is None:
                raise SessionNotActiveError(session.id)
            logger.debug("Session %s already ended", session.id)
        else:
            ended = Session.from_record(updated)

        closed = await self._downtime.close_for_session(ended, ended.end_time)

        if updated is not None:
            logger.info("Session %s ended on line %s", ended.id, ended.line_id)
            await self._publish(
                SessionEnded(
                    session_id=ended.id,
                    line_id=ended.line_id,
                    end_time=ended.end_time,
                    closed_downtime_ids=tuple(record.id for record in closed),
                )
            )
        return ended

    async def force_close(
        self, line_id: str, supervisor_identifier: str, credential: str
    ) -> Session | None:
        """
        Supervisor-verified close of whatever session is open on a line.

        Returns:
            The ended session, or None if the line had no open session
        """
        supervisor = await self._gate.require(
            Role.SUPERVISOR, supervisor_identifier, credential
        )
        open_session = await self.find_open_session(line_id)
        if open_session is None:
            return None
        logger.warning(
            "Supervisor %s force-closing session %s on line %s",
            supervisor.id,
            open_session.id,
            line_id,
        )
        return await self.end(open_session)
