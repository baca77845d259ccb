"""Shipment statuses and the rules for moving between them."""

from enum import Enum

from swiftship.errors import InvalidTransition


class ShipmentStatus(str, Enum):
    """Lifecycle status of a shipment.

    The first six members are the forward sequence, in order. The last three
    are side branches reachable from any non-terminal status.
    """

    CREATED = "created"
    RECEIVED_AT_ORIGIN = "received_at_origin"
    IN_TRANSIT = "in_transit"
    ARRIVED_AT_DESTINATION = "arrived_at_destination"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    EXCEPTION = "exception"  # Problem with the parcel, handling paused
    RETURNED = "returned"  # On its way back to the sender
    CANCELLED = "cancelled"

    @property
    def label(self) -> str:
        return status_label(self)


class ServiceLevel(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    SAME_DAY = "same_day"


class TransportMode(str, Enum):
    ROAD = "road"
    SEA = "sea"
    AIR = "air"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


FORWARD_SEQUENCE: tuple[ShipmentStatus, ...] = (
    ShipmentStatus.CREATED,
    ShipmentStatus.RECEIVED_AT_ORIGIN,
    ShipmentStatus.IN_TRANSIT,
    ShipmentStatus.ARRIVED_AT_DESTINATION,
    ShipmentStatus.OUT_FOR_DELIVERY,
    ShipmentStatus.DELIVERED,
)

SIDE_BRANCHES = frozenset(
    {ShipmentStatus.EXCEPTION, ShipmentStatus.RETURNED, ShipmentStatus.CANCELLED}
)

TERMINAL = frozenset({ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED})

# Side branches a shipment can resume forward handling from
RECOVERABLE = frozenset({ShipmentStatus.EXCEPTION, ShipmentStatus.RETURNED})

PROGRESS = {
    ShipmentStatus.CREATED: 10,
    ShipmentStatus.RECEIVED_AT_ORIGIN: 25,
    ShipmentStatus.IN_TRANSIT: 50,
    ShipmentStatus.ARRIVED_AT_DESTINATION: 75,
    ShipmentStatus.OUT_FOR_DELIVERY: 90,
    ShipmentStatus.DELIVERED: 100,
}

# Explicit labels where title-casing the value reads wrong
_LABEL_OVERRIDES = {
    ShipmentStatus.ARRIVED_AT_DESTINATION: "Arrived at Destination",
    ShipmentStatus.RECEIVED_AT_ORIGIN: "Received at Origin",
    ShipmentStatus.OUT_FOR_DELIVERY: "Out for Delivery",
}

BADGE_VARIANTS = {
    ShipmentStatus.CREATED: "pending",
    ShipmentStatus.RECEIVED_AT_ORIGIN: "pending",
    ShipmentStatus.IN_TRANSIT: "transit",
    ShipmentStatus.ARRIVED_AT_DESTINATION: "transit",
    ShipmentStatus.OUT_FOR_DELIVERY: "transit",
    ShipmentStatus.DELIVERED: "delivered",
    ShipmentStatus.EXCEPTION: "exception",
    ShipmentStatus.RETURNED: "exception",
    ShipmentStatus.CANCELLED: "exception",
}


def humanize(value: str) -> str:
    """Turn a snake_case value into Title Case words."""
    return " ".join(word.capitalize() for word in value.split("_") if word)


def status_label(status: ShipmentStatus | str) -> str:
    """Human-readable label for a status."""
    status = ShipmentStatus(status)
    return _LABEL_OVERRIDES.get(status, humanize(status.value))


def default_description(status: ShipmentStatus | str) -> str:
    """Description used for a tracking event recorded without one."""
    return humanize(ShipmentStatus(status).value)


def progress_for(status: ShipmentStatus | str) -> int | None:
    """Progress percentage for a status, or None for side-branch statuses."""
    return PROGRESS.get(ShipmentStatus(status))


def forward_index(status: ShipmentStatus) -> int | None:
    """Position of a status in the forward sequence, None for side branches."""
    try:
        return FORWARD_SEQUENCE.index(status)
    except ValueError:
        return None


def is_terminal(status: ShipmentStatus | str) -> bool:
    return ShipmentStatus(status) in TERMINAL


def can_transition(current: ShipmentStatus | str, next_status: ShipmentStatus | str) -> bool:
    """Check whether moving from `current` to `next_status` is allowed."""
    current = ShipmentStatus(current)
    next_status = ShipmentStatus(next_status)

    if current == next_status or current in TERMINAL:
        return False

    if next_status in SIDE_BRANCHES:
        return True

    if current in RECOVERABLE:
        # Resuming never goes back to before the first scan
        return next_status != ShipmentStatus.CREATED

    return forward_index(next_status) > forward_index(current)


def validate_transition(
    current: ShipmentStatus | str, next_status: ShipmentStatus | str
) -> ShipmentStatus:
    """Validate a status change and return the target status.

    Raises:
        InvalidTransition: if the move is not allowed, including a move to the
            status the shipment already has.
    """
    if not can_transition(current, next_status):
        raise InvalidTransition(ShipmentStatus(current), ShipmentStatus(next_status))
    return ShipmentStatus(next_status)


def allowed_transitions(current: ShipmentStatus | str) -> list[ShipmentStatus]:
    """List the statuses a shipment may move to next, in display order."""
    return [status for status in ShipmentStatus if can_transition(current, status)]
