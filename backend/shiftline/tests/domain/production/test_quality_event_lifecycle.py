"""
Unit tests for the quality event lifecycle.

Tests QC-verified booking of rejects and reworks, disposition transitions,
rework conversion provenance and output correction for scrapped rejects.
"""

import pytest

from shiftline.domain.production.entities.quality_event import QualityEventPayload
from shiftline.domain.production.events.domain_events import (
    QualityEventDisposed,
    QualityEventSubmitted,
)
from shiftline.domain.production.repositories.record_store import ADJUSTMENTS, QUALITY
from shiftline.domain.production.services.quality_event_lifecycle import (
    provenance_comment,
)
from shiftline.domain.production.value_objects.enums import (
    DispositionAction,
    QualityEventKind,
    QualityStatus,
)
from shiftline.domain.shared.exceptions import (
    AlreadyResolved,
    InvalidSlotError,
    PersistenceError,
    SessionNotActiveError,
    ValidationError,
    VerificationFailed,
)
from shiftline.tests.factories import MECHANIC, OTHER_QC, QC, fail_next_create


@pytest.fixture
def quality(engine):
    return engine.quality


def payload(**overrides) -> QualityEventPayload:
    data = {"reason": "Broken stitch", "operation": "Hemming", "count": 2}
    data.update(overrides)
    return QualityEventPayload(**data)


class TestSubmit:
    """Test booking rejects and reworks."""

    @pytest.mark.asyncio
    async def test_submit_reject(self, quality, session, event_bus):
        record = await quality.submit(session, QualityEventKind.REJECT, payload(), *QC)

        assert record.kind == QualityEventKind.REJECT
        assert record.status == QualityStatus.OPEN
        assert record.submitted_by == "qc-1"
        assert record.count == 2
        assert not record.recorded_as_produced
        assert len(event_bus.get_event_history(QualityEventSubmitted)) == 1

    @pytest.mark.asyncio
    async def test_failed_verification_writes_nothing(self, quality, session, store):
        with pytest.raises(VerificationFailed):
            await quality.submit(session, QualityEventKind.REWORK, payload(), "Q001", "0000")
        with pytest.raises(VerificationFailed):
            await quality.submit(session, QualityEventKind.REWORK, payload(), *MECHANIC)

        assert await store.query(QUALITY, session_id=session.id) == []

    @pytest.mark.asyncio
    async def test_produced_reject_is_tied_to_active_slot(self, quality, session):
        record = await quality.submit(
            session, QualityEventKind.REJECT, payload(recorded_as_produced=True), *QC
        )

        assert record.recorded_as_produced
        assert record.slot_id == "slot-2"

    @pytest.mark.asyncio
    async def test_produced_reject_with_unknown_slot_rejected(self, quality, session):
        with pytest.raises(InvalidSlotError):
            await quality.submit(
                session,
                QualityEventKind.REJECT,
                payload(recorded_as_produced=True, slot_id="slot-99"),
                *QC,
            )

    @pytest.mark.asyncio
    async def test_produced_flag_ignored_for_rework(self, quality, session):
        record = await quality.submit(
            session, QualityEventKind.REWORK, payload(recorded_as_produced=True), *QC
        )

        assert not record.recorded_as_produced

    @pytest.mark.asyncio
    async def test_submit_on_ended_session_rejected(self, engine, quality, session):
        await engine.sessions.end(session)

        with pytest.raises(SessionNotActiveError):
            await quality.submit(session, QualityEventKind.REJECT, payload(), *QC)

    def test_payload_requires_positive_count(self):
        with pytest.raises(ValueError):
            payload(count=0)


class TestDisposeReject:
    """Test reject dispositions."""

    @pytest.mark.asyncio
    async def test_mark_perfect(self, quality, session):
        record = await quality.submit(session, QualityEventKind.REJECT, payload(), *QC)

        disposed = await quality.dispose(record.id, DispositionAction.MARK_PERFECT, *OTHER_QC)

        assert disposed.status == QualityStatus.PERFECT
        assert disposed.disposed_by == "qc-2"
        assert disposed.closed_at is not None
        assert await quality.open_events(session, QualityEventKind.REJECT) == []

    @pytest.mark.asyncio
    async def test_close_produced_reject_corrects_output(self, engine, quality, session):
        for _ in range(5):
            await engine.recorder.record_unit(session)
        record = await quality.submit(
            session,
            QualityEventKind.REJECT,
            payload(count=2, recorded_as_produced=True),
            *QC,
        )

        await quality.dispose(record.id, DispositionAction.CLOSE, *QC, comments="Scrapped")

        assert await engine.recorder.outputs_by_slot(session) == [0, 3, 0, 0]

    @pytest.mark.asyncio
    async def test_close_unproduced_reject_leaves_output(self, engine, quality, session):
        for _ in range(5):
            await engine.recorder.record_unit(session)
        record = await quality.submit(session, QualityEventKind.REJECT, payload(), *QC)

        await quality.dispose(record.id, DispositionAction.CLOSE, *QC)

        assert await engine.recorder.outputs_by_slot(session) == [0, 5, 0, 0]

    @pytest.mark.asyncio
    async def test_convert_not_allowed_for_reject(self, quality, session):
        record = await quality.submit(session, QualityEventKind.REJECT, payload(), *QC)

        with pytest.raises(ValidationError):
            await quality.dispose(record.id, DispositionAction.CONVERT_TO_REJECT, *QC)

    @pytest.mark.asyncio
    async def test_dispose_twice_is_stale(self, quality, session, event_bus):
        record = await quality.submit(session, QualityEventKind.REJECT, payload(), *QC)
        await quality.dispose(record.id, DispositionAction.CLOSE, *QC)

        with pytest.raises(AlreadyResolved):
            await quality.dispose(record.id, DispositionAction.MARK_PERFECT, *OTHER_QC)

        assert len(event_bus.get_event_history(QualityEventDisposed)) == 1


class TestDisposeRework:
    """Test rework dispositions."""

    @pytest.mark.asyncio
    async def test_close_not_allowed_for_rework(self, quality, session):
        record = await quality.submit(session, QualityEventKind.REWORK, payload(), *QC)

        with pytest.raises(ValidationError):
            await quality.dispose(record.id, DispositionAction.CLOSE, *QC)

    @pytest.mark.asyncio
    async def test_convert_creates_open_reject(self, quality, session, event_bus):
        rework = await quality.submit(
            session, QualityEventKind.REWORK, payload(count=3, comments="Loose hem"), *QC
        )

        disposed = await quality.dispose(
            rework.id, DispositionAction.CONVERT_TO_REJECT, *OTHER_QC
        )
        reject = await quality.converted_from(rework.id)

        assert disposed.status == QualityStatus.REJECTED
        assert reject.kind == QualityEventKind.REJECT
        assert reject.status == QualityStatus.OPEN
        assert reject.count == 3
        assert reject.reason == rework.reason
        assert reject.source_rework_id == rework.id
        assert reject.submitted_by == "qc-2"
        assert reject.disposed_by is None
        assert reject.comments == f"Converted from rework #{rework.ref_number}: Loose hem"

        event = event_bus.get_event_history(QualityEventDisposed)[0]
        assert event.created_reject_id == reject.id

    @pytest.mark.asyncio
    async def test_converted_reject_is_disposed_separately(self, quality, session):
        rework = await quality.submit(session, QualityEventKind.REWORK, payload(), *QC)
        await quality.dispose(rework.id, DispositionAction.CONVERT_TO_REJECT, *QC)
        reject = await quality.converted_from(rework.id)

        open_rejects = await quality.open_events(session, QualityEventKind.REJECT)
        closed = await quality.dispose(reject.id, DispositionAction.CLOSE, *QC)

        assert [r.id for r in open_rejects] == [reject.id]
        assert closed.status == QualityStatus.CLOSED
        assert await quality.open_events(session, QualityEventKind.REWORK) == []

    @pytest.mark.asyncio
    async def test_mark_rework_perfect_creates_nothing(self, quality, session, store):
        rework = await quality.submit(session, QualityEventKind.REWORK, payload(), *QC)

        await quality.dispose(rework.id, DispositionAction.MARK_PERFECT, *QC)

        assert await quality.converted_from(rework.id) is None
        assert len(await store.query(QUALITY, session_id=session.id)) == 1



class TestInterruptedDisposition:
    """Test retrying a disposition whose follow-up write failed."""

    @pytest.mark.asyncio
    async def test_retry_creates_missing_converted_reject(
        self, quality, session, store, monkeypatch, event_bus
    ):
        rework = await quality.submit(session, QualityEventKind.REWORK, payload(), *QC)
        fail_next_create(monkeypatch, store, QUALITY)

        with pytest.raises(PersistenceError):
            await quality.dispose(rework.id, DispositionAction.CONVERT_TO_REJECT, *QC)
        assert await quality.converted_from(rework.id) is None

        disposed = await quality.dispose(
            rework.id, DispositionAction.CONVERT_TO_REJECT, *QC
        )
        reject = await quality.converted_from(rework.id)

        assert disposed.status == QualityStatus.REJECTED
        assert reject.status == QualityStatus.OPEN
        assert len(await store.query(QUALITY, session_id=session.id)) == 2
        assert event_bus.get_event_history(QualityEventDisposed)[0].created_reject_id == reject.id

        with pytest.raises(AlreadyResolved):
            await quality.dispose(rework.id, DispositionAction.CONVERT_TO_REJECT, *QC)
        with pytest.raises(AlreadyResolved):
            await quality.dispose(rework.id, DispositionAction.MARK_PERFECT, *QC)

    @pytest.mark.asyncio
    async def test_retry_books_missing_output_adjustment(
        self, engine, quality, session, store, monkeypatch
    ):
        await engine.recorder.record_unit(session)
        await engine.recorder.record_unit(session)
        reject = await quality.submit(
            session,
            QualityEventKind.REJECT,
            payload(count=1, recorded_as_produced=True),
            *QC,
        )
        fail_next_create(monkeypatch, store, ADJUSTMENTS)

        with pytest.raises(PersistenceError):
            await quality.dispose(reject.id, DispositionAction.CLOSE, *QC)
        assert await engine.recorder.outputs_by_slot(session) == [0, 2, 0, 0]

        await quality.dispose(reject.id, DispositionAction.CLOSE, *QC)

        assert await engine.recorder.outputs_by_slot(session) == [0, 1, 0, 0]
        with pytest.raises(AlreadyResolved):
            await quality.dispose(reject.id, DispositionAction.CLOSE, *QC)
        assert len(await store.query(ADJUSTMENTS, reject_id=reject.id)) == 1


class TestProvenanceComment:
    """Test the comment linking a converted reject to its rework."""

    @pytest.mark.asyncio
    async def test_without_comments(self, quality, session):
        rework = await quality.submit(session, QualityEventKind.REWORK, payload(), *QC)

        assert provenance_comment(rework) == f"Converted from rework #{rework.id[-4:]}"
