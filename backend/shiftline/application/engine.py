"""
Shift engine composition root.

Wires every shift service to one record store, reference registry, event bus
and clock, and adds the read models a line terminal shows: the hourly board,
the recent-events feed and the downtime summary.
"""

from dataclasses import dataclass

from ..core.config import Settings, settings
from ..core.observability import get_logger
from ..core.security import build_credential_verifier
from ..domain.production.entities.session import Session
from ..domain.production.repositories.record_store import RecordStore
from ..domain.production.repositories.reference_registry import ReferenceRegistry
from ..domain.production.services.attendance_lifecycle import AttendanceLifecycle
from ..domain.production.services.downtime_lifecycle import DowntimeLifecycle
from ..domain.production.services.downtime_summary import (
    DowntimeTotals,
    MachineResponseStats,
    machine_response_stats,
    summarize,
)
from ..domain.production.services.efficiency_calculator import slot_report
from ..domain.production.services.metrics_aggregator import MetricsAggregator
from ..domain.production.services.production_recorder import ProductionRecorder
from ..domain.production.services.quality_event_lifecycle import QualityEventLifecycle
from ..domain.production.services.session_manager import SessionManager
from ..domain.production.services.time_table_resolver import slot_targets
from ..domain.production.services.verification_gate import (
    CredentialVerifier,
    VerificationGate,
)
from ..domain.production.value_objects.reports import RecentEvent, SlotReportRow
from ..domain.production.value_objects.time_table import TimeTable
from ..domain.shared.clock import Clock, system_clock
from ..domain.shared.exceptions import EntityNotFoundError
from ..infrastructure.events.event_bus import InMemoryEventBus
from ..infrastructure.persistence.memory_store import InMemoryRecordStore
from ..infrastructure.persistence.sql_store import (
    SQLRecordStore,
    create_db_engine,
    init_schema,
)
from ..infrastructure.registry.store_registry import StoreBackedRegistry
from .refreshers import MetricsPoller, SlotTicker

logger = get_logger(__name__)


@dataclass
class ShiftEngine:
    """Every shift service of one terminal, sharing store, registry, bus and clock."""

    config: Settings
    store: RecordStore
    registry: ReferenceRegistry
    bus: InMemoryEventBus
    clock: Clock
    gate: VerificationGate
    recorder: ProductionRecorder
    downtime: DowntimeLifecycle
    quality: QualityEventLifecycle
    attendance: AttendanceLifecycle
    sessions: SessionManager
    metrics: MetricsAggregator

    async def time_table(self, session: Session) -> TimeTable:
        table = await self.registry.get_time_table(session.time_table_id)
        if table is None:
            raise EntityNotFoundError("TimeTable", session.time_table_id)
        return table

    async def slot_targets(self, session: Session) -> list[int]:
        """Break-adjusted target of every slot of the session's time-table."""
        table = await self.time_table(session)
        breaks = await self.registry.get_breaks(
            [slot.break_id for slot in table.slots if slot.break_id]
        )
        return slot_targets(table, session.hourly_target, breaks)

    async def board(self, session: Session) -> list[SlotReportRow]:
        """Hourly production board: target, output and efficiencies per slot."""
        table = await self.time_table(session)
        targets = await self.slot_targets(session)
        outputs = await self.recorder.outputs_by_slot(session, table)
        return slot_report(table, outputs, targets)

    async def recent_events(
        self, session: Session, limit: int | None = None
    ) -> list[RecentEvent]:
        return await self.metrics.recent_events(
            session, limit or self.config.RECENT_EVENTS_LIMIT
        )

    async def downtime_summary(self, session: Session) -> DowntimeTotals:
        records = await self.downtime.session_downtimes(session)
        return summarize(records, self.clock())

    async def machine_response(self, session: Session) -> MachineResponseStats:
        records = await self.downtime.session_downtimes(session)
        return machine_response_stats(records)

    def metrics_poller(self, session: Session) -> MetricsPoller:
        return MetricsPoller(
            self.metrics,
            session,
            self.bus,
            interval=self.config.METRICS_REFRESH_INTERVAL_SECONDS,
        )

    def slot_ticker(self, time_table: TimeTable) -> SlotTicker:
        return SlotTicker(
            time_table,
            self.clock,
            self.bus,
            interval=self.config.SLOT_REFRESH_INTERVAL_SECONDS,
        )


def build_store(config: Settings) -> RecordStore:
    """SQL store when a database is configured, in-memory store otherwise."""
    if not config.DATABASE_URL:
        logger.info("record_store_selected", backend="memory")
        return InMemoryRecordStore()
    engine = create_db_engine(config.DATABASE_URL, echo=config.LOG_SQL)
    init_schema(engine)
    logger.info("record_store_selected", backend=engine.dialect.name)
    return SQLRecordStore(engine)


def build_engine(
    config: Settings | None = None,
    store: RecordStore | None = None,
    registry: ReferenceRegistry | None = None,
    clock: Clock | None = None,
    verifier: CredentialVerifier | None = None,
    bus: InMemoryEventBus | None = None,
) -> ShiftEngine:
    """
    Assemble a shift engine.

    Args:
        config: Settings (module settings by default)
        store: Record store (built from ``DATABASE_URL`` by default)
        registry: Reference registry (read from the store by default)
        clock: Wall clock (local time in ``TIMEZONE`` by default)
        verifier: Credential verifier (chosen by ``CREDENTIAL_SCHEME`` by default)
        bus: Event bus (a fresh in-memory bus by default)
    """
    config = config or settings
    store = store or build_store(config)
    registry = registry or StoreBackedRegistry(store)
    clock = clock or system_clock(config.tz)
    bus = bus or InMemoryEventBus()

    gate = VerificationGate(registry, verifier or build_credential_verifier(config))
    recorder = ProductionRecorder(store, registry, bus, clock)
    downtime = DowntimeLifecycle(store, gate, bus, clock)
    quality = QualityEventLifecycle(store, registry, gate, recorder, bus, clock)
    attendance = AttendanceLifecycle(store, registry, gate, bus, clock)
    sessions = SessionManager(store, registry, gate, recorder, downtime, bus, clock)
    metrics = MetricsAggregator(store, clock)

    return ShiftEngine(
        config=config,
        store=store,
        registry=registry,
        bus=bus,
        clock=clock,
        gate=gate,
        recorder=recorder,
        downtime=downtime,
        quality=quality,
        attendance=attendance,
        sessions=sessions,
        metrics=metrics,
    )
