"""Service for looking up shipments and their tracking history."""

from dataclasses import dataclass, field

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.db.models import Shipment, TrackingEvent
from swiftship.lifecycle.status import ShipmentStatus, allowed_transitions
from swiftship.lifecycle.timeline import Timeline, project_timeline
from swiftship.services.route_loader import RouteLoader, route_loader
from swiftship.services.shipments import ShipmentStore, check_tracking_number
from swiftship.transport.base import Stop

logger = structlog.get_logger(__name__)


@dataclass
class TrackingView:
    """Everything the tracking page, detail page and report show."""

    shipment: Shipment
    events: list[TrackingEvent]
    timeline: Timeline
    stops: list[Stop] = field(default_factory=list)

    @property
    def progress(self) -> int | None:
        return self.timeline.progress

    @property
    def next_statuses(self) -> list[ShipmentStatus]:
        return allowed_transitions(self.shipment.status)


class TrackerService:
    """Service for shipment tracking lookups."""

    def __init__(self, db: AsyncSession, routes: RouteLoader | None = None):
        self.store = ShipmentStore(db)
        self.routes = routes or route_loader

    async def track(self, tracking_number: str) -> TrackingView:
        """Look up a shipment by a searched tracking number.

        Raises:
            InvalidTrackingNumber: the number is too short to search.
            NotFound: no shipment has this tracking number.
        """
        tracking_number = check_tracking_number(tracking_number)
        shipment = await self.store.get_shipment_by_tracking_number(tracking_number)
        logger.debug("Shipment tracked", tracking_number=tracking_number)
        return await self.view(shipment)

    async def view_shipment(self, shipment_id: int) -> TrackingView:
        shipment = await self.store.get_shipment(shipment_id)
        return await self.view(shipment)

    async def view(self, shipment: Shipment) -> TrackingView:
        events = await self.store.list_tracking_events(shipment.id)
        timeline = project_timeline(events, shipment.status)

        route = self.routes.get_route(shipment.transport_mode)
        stops = route.project_stops(shipment.status, events) if route else []

        return TrackingView(shipment=shipment, events=events, timeline=timeline, stops=stops)
