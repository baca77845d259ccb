"""Services package."""

from swiftship.services.recorder import RecordedTransition, TrackingEventRecorder
from swiftship.services.route_loader import RouteLoader
from swiftship.services.shipments import ShipmentStore
from swiftship.services.tracker import TrackerService, TrackingView

__all__ = [
    "RecordedTransition",
    "RouteLoader",
    "ShipmentStore",
    "TrackerService",
    "TrackingEventRecorder",
    "TrackingView",
]
