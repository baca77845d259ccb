"""Recording of shipment status changes as tracking events."""

from dataclasses import dataclass

import structlog

from swiftship.config import settings
from swiftship.db.models import Shipment, TrackingEvent, utcnow
from swiftship.errors import (
    InvalidTransition,
    PartialUpdateFailure,
    PendingEvent,
    StoreUnavailable,
)
from swiftship.lifecycle.status import ShipmentStatus, default_description, validate_transition
from swiftship.services.shipments import ShipmentStore

logger = structlog.get_logger(__name__)


@dataclass
class RecordedTransition:
    """Result of a successful status change."""

    shipment: Shipment
    event: TrackingEvent
    previous_status: ShipmentStatus


class TrackingEventRecorder:
    """Moves a shipment to a new status and appends the matching event.

    In atomic mode the status update and the event append share one database
    transaction. Otherwise they are two commits, and a failed append after a
    saved status raises `PartialUpdateFailure` carrying the missing event,
    which `complete()` can append on its own.
    """

    def __init__(self, store: ShipmentStore, atomic: bool | None = None):
        self.store = store
        self.atomic = settings.atomic_transitions if atomic is None else atomic

    async def record(
        self,
        shipment_id: int,
        next_status: ShipmentStatus | str,
        location: str | None = None,
        description: str | None = None,
        notes: str | None = None,
        branch_id: int | None = None,
    ) -> RecordedTransition:
        """Record a status change for a shipment.

        Raises:
            NotFound: the shipment does not exist.
            InvalidTransition: the change is not allowed from the current status.
            ConcurrentUpdate: another writer changed the status first.
            StoreUnavailable: nothing was saved.
            PartialUpdateFailure: the status was saved but the event was not.
        """
        shipment = await self.store.get_shipment(shipment_id)
        current = ShipmentStatus(shipment.status)
        next_status = validate_transition(current, next_status)

        now = utcnow()
        pending = PendingEvent(
            shipment_id=shipment_id,
            status=next_status,
            created_at=now,
            location=location or None,
            description=description or default_description(next_status),
            notes=notes or None,
            branch_id=branch_id,
        )

        if self.atomic:
            async with self.store.transaction():
                shipment = await self._update_status(pending, current)
                event = await self._append(pending)
        else:
            shipment = await self._update_status(pending, current)
            try:
                event = await self._append(pending)
            except StoreUnavailable as e:
                logger.error(
                    "Tracking event not recorded after status change",
                    shipment_id=shipment_id,
                    status=next_status.value,
                    error=str(e),
                )
                raise PartialUpdateFailure(pending, cause=e) from e

        logger.info(
            "Shipment status changed",
            shipment_id=shipment_id,
            tracking_number=shipment.tracking_number,
            previous_status=current.value,
            status=next_status.value,
            location=pending.location,
        )
        return RecordedTransition(shipment=shipment, event=event, previous_status=current)

    async def complete(self, pending: PendingEvent) -> TrackingEvent:
        """Append the event left behind by a `PartialUpdateFailure`.

        Safe to repeat: when the newest event already carries the pending
        status, that event is returned instead of a duplicate.

        Raises:
            NotFound: the shipment does not exist.
            InvalidTransition: the shipment is no longer at the pending status,
                so the event would not match its current state.
        """
        shipment = await self.store.get_shipment(pending.shipment_id)
        current = ShipmentStatus(shipment.status)
        if current != pending.status:
            raise InvalidTransition(current, pending.status)

        latest = await self.store.latest_tracking_event(pending.shipment_id)
        if latest is not None and ShipmentStatus(latest.status) == pending.status:
            return latest

        event = await self._append(pending)
        logger.info(
            "Missing tracking event appended",
            shipment_id=pending.shipment_id,
            status=pending.status.value,
        )
        return event

    async def _update_status(self, pending: PendingEvent, current: ShipmentStatus) -> Shipment:
        return await self.store.update_shipment_status(
            pending.shipment_id,
            pending.status,
            expected_status=current,
            delivered_at=pending.created_at
            if pending.status == ShipmentStatus.DELIVERED
            else None,
            current_location=pending.location,
            current_branch_id=pending.branch_id,
        )

    async def _append(self, pending: PendingEvent) -> TrackingEvent:
        return await self.store.append_tracking_event(
            pending.shipment_id,
            pending.status,
            location=pending.location,
            description=pending.description,
            notes=pending.notes,
            branch_id=pending.branch_id,
            created_at=pending.created_at,
        )
