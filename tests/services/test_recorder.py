"""Tests for recording status changes."""

import pytest

from swiftship.db.models import utcnow
from swiftship.errors import (
    ConcurrentUpdate,
    InvalidTransition,
    NotFound,
    PartialUpdateFailure,
    PendingEvent,
    StoreUnavailable,
)
from swiftship.lifecycle.status import ShipmentStatus
from swiftship.lifecycle.timeline import as_utc, project_timeline
from swiftship.services.recorder import TrackingEventRecorder


def fail_appends(store, monkeypatch):
    """Make every tracking event append fail as if the database went away."""

    async def _append(*args, **kwargs):
        raise StoreUnavailable("database is locked")

    monkeypatch.setattr(store, "append_tracking_event", _append)


class TestRecord:
    """Test the status change and its tracking event."""

    @pytest.fixture
    def recorder(self, store):
        return TrackingEventRecorder(store, atomic=True)

    async def test_status_and_event_stay_in_step(self, store, recorder, make_shipment):
        """Test one new event with the new status per recorded change."""
        shipment = await make_shipment()
        before = await store.list_tracking_events(shipment.id)

        result = await recorder.record(shipment.id, ShipmentStatus.RECEIVED_AT_ORIGIN)

        reloaded = await store.get_shipment(shipment.id)
        events = await store.list_tracking_events(shipment.id)
        assert reloaded.status == ShipmentStatus.RECEIVED_AT_ORIGIN
        assert len(events) == len(before) + 1
        assert events[-1].status == ShipmentStatus.RECEIVED_AT_ORIGIN
        assert result.previous_status == ShipmentStatus.CREATED
        assert result.event.id == events[-1].id

    async def test_transit_with_location(self, store, recorder, make_shipment):
        """Test a created shipment moved straight to in transit."""
        shipment = await make_shipment()

        await recorder.record(shipment.id, ShipmentStatus.IN_TRANSIT, location="Phoenix, AZ")

        reloaded = await store.get_shipment(shipment.id)
        timeline = project_timeline(await store.list_tracking_events(shipment.id), reloaded.status)
        assert len(timeline) == 2
        assert timeline.current.status == ShipmentStatus.IN_TRANSIT
        assert timeline.current.location == "Phoenix, AZ"
        assert timeline.progress == 50
        assert reloaded.current_location == "Phoenix, AZ"

    async def test_backward_move_rejected(self, store, recorder, make_shipment):
        """Test a rejected change leaves the shipment and history untouched."""
        shipment = await make_shipment()
        await recorder.record(shipment.id, ShipmentStatus.OUT_FOR_DELIVERY)
        events_before = await store.list_tracking_events(shipment.id)

        with pytest.raises(InvalidTransition) as excinfo:
            await recorder.record(shipment.id, ShipmentStatus.CREATED)

        assert excinfo.value.current == ShipmentStatus.OUT_FOR_DELIVERY
        assert excinfo.value.next_status == ShipmentStatus.CREATED
        reloaded = await store.get_shipment(shipment.id)
        assert reloaded.status == ShipmentStatus.OUT_FOR_DELIVERY
        assert len(await store.list_tracking_events(shipment.id)) == len(events_before)

    async def test_exception_without_location(self, store, recorder, make_shipment):
        """Test an exception gets a default description and becomes current."""
        shipment = await make_shipment()
        await recorder.record(shipment.id, ShipmentStatus.IN_TRANSIT, location="Phoenix, AZ")

        result = await recorder.record(shipment.id, ShipmentStatus.EXCEPTION)

        assert result.event.description == "Exception"
        assert result.event.location is None
        timeline = project_timeline(await store.list_tracking_events(shipment.id))
        assert timeline.current.status == ShipmentStatus.EXCEPTION
        assert timeline.progress is None
        # The last known location is kept
        assert result.shipment.current_location == "Phoenix, AZ"

    async def test_delivered_sets_delivered_at(self, store, recorder, make_shipment):
        shipment = await make_shipment()
        assert shipment.delivered_at is None

        await recorder.record(shipment.id, ShipmentStatus.OUT_FOR_DELIVERY)
        await recorder.record(shipment.id, ShipmentStatus.DELIVERED, location="Denver")

        reloaded = await store.get_shipment(shipment.id)
        assert reloaded.delivered_at is not None
        assert as_utc(reloaded.delivered_at) >= as_utc(reloaded.created_at)

    async def test_same_status_rejected(self, recorder, make_shipment):
        shipment = await make_shipment()
        with pytest.raises(InvalidTransition):
            await recorder.record(shipment.id, ShipmentStatus.CREATED)

    async def test_unknown_shipment(self, recorder):
        with pytest.raises(NotFound):
            await recorder.record(999, ShipmentStatus.IN_TRANSIT)

    async def test_event_fields(self, recorder, make_shipment):
        shipment = await make_shipment()
        result = await recorder.record(
            shipment.id,
            ShipmentStatus.RECEIVED_AT_ORIGIN,
            location="Tucson Depot",
            description="Dropped off at counter",
            notes="Fragile",
        )
        assert result.event.description == "Dropped off at counter"
        assert result.event.notes == "Fragile"
        assert result.event.event_type == "received_at_origin"

    async def test_events_strictly_ordered(self, store, recorder, make_shipment):
        """Test quick successive changes still have distinct timestamps."""
        shipment = await make_shipment()
        await recorder.record(shipment.id, ShipmentStatus.RECEIVED_AT_ORIGIN)
        await recorder.record(shipment.id, ShipmentStatus.IN_TRANSIT)
        await recorder.record(shipment.id, ShipmentStatus.DELIVERED)

        times = [as_utc(e.created_at) for e in await store.list_tracking_events(shipment.id)]
        assert times == sorted(times)
        assert len(set(times)) == len(times)


class TestAtomicRecord:
    """Test that an atomic change is all or nothing."""

    async def test_failed_append_rolls_back_status(self, store, make_shipment, monkeypatch):
        shipment = await make_shipment()
        recorder = TrackingEventRecorder(store, atomic=True)
        fail_appends(store, monkeypatch)

        with pytest.raises(StoreUnavailable):
            await recorder.record(shipment.id, ShipmentStatus.IN_TRANSIT)

        monkeypatch.undo()
        await store.db.refresh(shipment)
        assert shipment.status == ShipmentStatus.CREATED
        assert len(await store.list_tracking_events(shipment.id)) == 1


class TestTwoStepRecord:
    """Test the mode where the status and the event are saved separately."""

    async def test_failed_append_reports_pending_event(self, store, make_shipment, monkeypatch):
        shipment = await make_shipment()
        recorder = TrackingEventRecorder(store, atomic=False)
        fail_appends(store, monkeypatch)

        with pytest.raises(PartialUpdateFailure) as excinfo:
            await recorder.record(shipment.id, ShipmentStatus.IN_TRANSIT, location="Phoenix, AZ")

        pending = excinfo.value.pending
        assert pending.shipment_id == shipment.id
        assert pending.status == ShipmentStatus.IN_TRANSIT
        assert pending.location == "Phoenix, AZ"
        assert pending.description == "In Transit"
        assert isinstance(excinfo.value.cause, StoreUnavailable)

        monkeypatch.undo()
        reloaded = await store.get_shipment(shipment.id)
        assert reloaded.status == ShipmentStatus.IN_TRANSIT
        assert len(await store.list_tracking_events(shipment.id)) == 1

    async def test_complete_appends_once(self, store, make_shipment, monkeypatch):
        """Test retrying the pending event twice records it only once."""
        shipment = await make_shipment()
        recorder = TrackingEventRecorder(store, atomic=False)
        fail_appends(store, monkeypatch)
        with pytest.raises(PartialUpdateFailure) as excinfo:
            await recorder.record(shipment.id, ShipmentStatus.IN_TRANSIT)
        monkeypatch.undo()

        first = await recorder.complete(excinfo.value.pending)
        second = await recorder.complete(excinfo.value.pending)

        events = await store.list_tracking_events(shipment.id)
        assert len(events) == 2
        assert first.id == second.id == events[-1].id
        assert events[-1].status == ShipmentStatus.IN_TRANSIT

    async def test_complete_rejects_status_the_shipment_is_not_at(self, store, make_shipment):
        shipment = await make_shipment()
        recorder = TrackingEventRecorder(store, atomic=False)
        pending = PendingEvent(
            shipment_id=shipment.id, status=ShipmentStatus.DELIVERED, created_at=utcnow()
        )

        with pytest.raises(InvalidTransition):
            await recorder.complete(pending)

        reloaded = await store.get_shipment(shipment.id)
        assert reloaded.status == ShipmentStatus.CREATED
        events = await store.list_tracking_events(shipment.id)
        assert [e.status for e in events] == [ShipmentStatus.CREATED]

    async def test_stale_complete_after_later_change(self, store, make_shipment, monkeypatch):
        """Test a pending event is refused once the shipment has moved on."""
        shipment = await make_shipment()
        recorder = TrackingEventRecorder(store, atomic=False)
        await recorder.record(shipment.id, ShipmentStatus.IN_TRANSIT)
        fail_appends(store, monkeypatch)
        with pytest.raises(PartialUpdateFailure) as excinfo:
            await recorder.record(shipment.id, ShipmentStatus.EXCEPTION)
        monkeypatch.undo()
        await recorder.record(shipment.id, ShipmentStatus.RETURNED)

        with pytest.raises(InvalidTransition):
            await recorder.complete(excinfo.value.pending)

        reloaded = await store.get_shipment(shipment.id)
        assert reloaded.status == ShipmentStatus.RETURNED
        events = await store.list_tracking_events(shipment.id)
        assert events[-1].status == ShipmentStatus.RETURNED
        assert [e.status for e in events].count(ShipmentStatus.EXCEPTION) == 0

    async def test_success(self, store, make_shipment):
        shipment = await make_shipment()
        recorder = TrackingEventRecorder(store, atomic=False)

        result = await recorder.record(shipment.id, ShipmentStatus.RECEIVED_AT_ORIGIN)

        assert result.shipment.status == ShipmentStatus.RECEIVED_AT_ORIGIN
        assert len(await store.list_tracking_events(shipment.id)) == 2


class TestConcurrentUpdate:
    """Test a change validated against a status that has since moved on."""

    async def test_stale_status_rejected(self, store, make_shipment):
        shipment = await make_shipment()
        await store.update_shipment_status(shipment.id, ShipmentStatus.IN_TRANSIT)

        with pytest.raises(ConcurrentUpdate):
            await store.update_shipment_status(
                shipment.id,
                ShipmentStatus.RECEIVED_AT_ORIGIN,
                expected_status=ShipmentStatus.CREATED,
            )

        reloaded = await store.get_shipment(shipment.id)
        assert reloaded.status == ShipmentStatus.IN_TRANSIT
