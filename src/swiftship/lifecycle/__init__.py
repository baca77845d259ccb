"""Shipment lifecycle: statuses, transitions and timeline projection."""

from swiftship.lifecycle.status import (
    FORWARD_SEQUENCE,
    PaymentStatus,
    ServiceLevel,
    ShipmentStatus,
    TransportMode,
    allowed_transitions,
    can_transition,
    default_description,
    progress_for,
    status_label,
    validate_transition,
)
from swiftship.lifecycle.timeline import Timeline, TimelineEntry, as_utc, project_timeline

__all__ = [
    "FORWARD_SEQUENCE",
    "PaymentStatus",
    "ServiceLevel",
    "ShipmentStatus",
    "Timeline",
    "TimelineEntry",
    "TransportMode",
    "allowed_transitions",
    "as_utc",
    "can_transition",
    "default_description",
    "progress_for",
    "project_timeline",
    "status_label",
    "validate_transition",
]
