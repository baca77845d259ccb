"""Creating and editing shipments from the back office."""

from datetime import timedelta

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.config import settings
from swiftship.db.models import Shipment, utcnow
from swiftship.lifecycle.status import ShipmentStatus
from swiftship.schemas import ShipmentCreate, ShipmentUpdate
from swiftship.services.pricing import PricingService, Quote
from swiftship.services.recorder import TrackingEventRecorder
from swiftship.services.shipments import ShipmentStore, format_dimensions

logger = structlog.get_logger(__name__)


class BookingService:
    """Books new shipments and applies administrative edits."""

    def __init__(self, db: AsyncSession):
        self.store = ShipmentStore(db)
        self.pricing = PricingService(db)

    async def quote_for(self, data: ShipmentCreate) -> Quote:
        return await self.pricing.quote(
            weight=data.weight,
            service_level=data.service_level,
            declared_value=data.declared_value,
            origin_zone=data.sender_city,
            destination_zone=data.receiver_city,
        )

    async def create(self, data: ShipmentCreate) -> Shipment:
        """Price and store a new shipment with its initial tracking event."""
        quote = await self.quote_for(data)

        fields = data.model_dump(exclude={"length", "width", "height"})
        fields["dimensions"] = format_dimensions(data.length, data.width, data.height)
        fields["estimated_delivery"] = data.estimated_delivery or (
            utcnow() + timedelta(days=settings.default_delivery_days)
        )
        fields["current_location"] = data.sender_city
        fields.update(quote.charges())

        return await self.store.create_shipment(**fields)

    async def update(self, shipment_id: int, data: ShipmentUpdate) -> Shipment:
        """Apply an edit; a status change goes through the recorder.

        The status change is recorded first so a rejected transition leaves
        the other fields untouched. A status equal to the current one is
        left alone when other fields change, since edit forms resend it, and
        rejected as a no-op change when it is the only field sent.
        """
        fields = data.model_dump(exclude_none=True, exclude={"status"})
        shipment = await self.store.get_shipment(shipment_id)
        unchanged = data.status == ShipmentStatus(shipment.status)
        if data.status is not None and (not unchanged or not fields):
            await TrackingEventRecorder(self.store).record(
                shipment_id,
                data.status,
                location=data.current_location,
            )

        if fields:
            shipment = await self.store.update_shipment(shipment_id, **fields)
            logger.info("Shipment edited", shipment_id=shipment_id, fields=sorted(fields))
        return shipment
