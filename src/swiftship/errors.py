"""Errors raised by the shipment lifecycle and the shipment store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from swiftship.lifecycle.status import ShipmentStatus


class SwiftShipError(Exception):
    """Base class for all application errors."""


class InvalidTransition(SwiftShipError):
    """A status change that the lifecycle rules do not allow."""

    def __init__(self, current: ShipmentStatus, next_status: ShipmentStatus):
        self.current = current
        self.next_status = next_status
        if current == next_status:
            message = f"Shipment is already {current.value}"
        else:
            message = f"Cannot move shipment from {current.value} to {next_status.value}"
        super().__init__(message)


class NotFound(SwiftShipError):
    """A tracking number or id that does not resolve to a record."""

    def __init__(self, kind: str, key: Any):
        self.kind = kind
        self.key = key
        super().__init__(f"No {kind} found for {key!r}")


class InvalidTrackingNumber(SwiftShipError):
    """A tracking number too short to be worth looking up."""


class StoreUnavailable(SwiftShipError):
    """The database rejected or could not complete a read or write."""


class ConcurrentUpdate(SwiftShipError):
    """Another writer changed the shipment status after it was validated."""

    def __init__(self, shipment_id: int, expected: ShipmentStatus):
        self.shipment_id = shipment_id
        self.expected = expected
        super().__init__(
            f"Shipment {shipment_id} is no longer {expected.value}; reload and try again"
        )


@dataclass
class PendingEvent:
    """A tracking event that still has to be appended for a shipment."""

    shipment_id: int
    status: ShipmentStatus
    created_at: datetime
    location: str | None = None
    description: str | None = None
    notes: str | None = None
    branch_id: int | None = None


class PartialUpdateFailure(SwiftShipError):
    """The shipment status was saved but its tracking event was not.

    The shipment is out of step with its history until `pending` is appended.
    """

    def __init__(self, pending: PendingEvent, cause: Exception | None = None):
        self.pending = pending
        self.cause = cause
        super().__init__(
            f"Shipment {pending.shipment_id} moved to {pending.status.value} "
            "but its tracking event was not recorded"
        )
