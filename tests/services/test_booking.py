"""Tests for booking and editing shipments."""

from decimal import Decimal

import pytest

from swiftship.errors import InvalidTransition
from swiftship.lifecycle.status import PaymentStatus, ServiceLevel, ShipmentStatus
from swiftship.lifecycle.timeline import as_utc
from swiftship.schemas import ShipmentCreate, ShipmentUpdate
from swiftship.services.booking import BookingService


@pytest.fixture
def booking(db_session):
    return BookingService(db_session)


@pytest.fixture
def create_data():
    return ShipmentCreate(
        sender_name="Ada Sender",
        sender_phone="555-0100",
        sender_address="1 Origin Way",
        sender_city="Tucson",
        receiver_name="Ray Receiver",
        receiver_phone="555-0199",
        receiver_address="9 Destination Rd",
        receiver_city="Denver",
        weight=Decimal("2"),
        length=Decimal("30"),
        width=Decimal("20"),
        height=Decimal("10"),
        declared_value=Decimal("100"),
        service_level=ServiceLevel.EXPRESS,
    )


class TestBookingService:
    """Test creating and editing shipments."""

    async def test_create_prices_and_records(self, booking, create_data):
        shipment = await booking.create(create_data)

        assert shipment.status == ShipmentStatus.CREATED
        assert shipment.dimensions == "30×20×10"
        assert shipment.current_location == "Tucson"
        # 15 + 10, ×1.5 for express, plus 2% of 100 insured
        assert shipment.total_amount == Decimal("39.50")
        assert shipment.estimated_delivery is not None
        assert as_utc(shipment.estimated_delivery) > as_utc(shipment.created_at)
        events = await booking.store.list_tracking_events(shipment.id)
        assert len(events) == 1

    async def test_update_fields(self, booking, create_data):
        shipment = await booking.create(create_data)

        updated = await booking.update(
            shipment.id,
            ShipmentUpdate(payment_status=PaymentStatus.PAID, amount_paid=Decimal("39.50")),
        )

        assert updated.payment_status == PaymentStatus.PAID
        assert updated.status == ShipmentStatus.CREATED

    async def test_status_change_goes_through_recorder(self, booking, create_data):
        shipment = await booking.create(create_data)

        updated = await booking.update(
            shipment.id,
            ShipmentUpdate(status=ShipmentStatus.IN_TRANSIT, current_location="Phoenix"),
        )

        assert updated.status == ShipmentStatus.IN_TRANSIT
        events = await booking.store.list_tracking_events(shipment.id)
        assert [e.status for e in events] == [ShipmentStatus.CREATED, ShipmentStatus.IN_TRANSIT]
        assert events[-1].location == "Phoenix"

    async def test_rejected_status_change_keeps_fields(self, booking, create_data):
        shipment = await booking.create(create_data)
        await booking.update(shipment.id, ShipmentUpdate(status=ShipmentStatus.DELIVERED))

        with pytest.raises(InvalidTransition):
            await booking.update(
                shipment.id,
                ShipmentUpdate(status=ShipmentStatus.IN_TRANSIT, receiver_name="Someone Else"),
            )

        reloaded = await booking.store.get_shipment(shipment.id)
        assert reloaded.receiver_name == "Ray Receiver"

    async def test_same_status_alone_rejected(self, booking, create_data):
        shipment = await booking.create(create_data)

        with pytest.raises(InvalidTransition, match="already"):
            await booking.update(shipment.id, ShipmentUpdate(status=ShipmentStatus.CREATED))

        events = await booking.store.list_tracking_events(shipment.id)
        assert len(events) == 1

    async def test_same_status_with_other_fields_saves_fields(self, booking, create_data):
        """Test a resent current status does not block the rest of an edit."""
        shipment = await booking.create(create_data)

        updated = await booking.update(
            shipment.id,
            ShipmentUpdate(status=ShipmentStatus.CREATED, receiver_name="Someone Else"),
        )

        assert updated.receiver_name == "Someone Else"
        events = await booking.store.list_tracking_events(shipment.id)
        assert len(events) == 1


class TestShipmentSchemas:
    """Test input validation."""

    def test_blank_strings_are_missing(self):
        data = ShipmentUpdate.model_validate({"sender_email": "  ", "weight": ""})
        assert data.sender_email is None
        assert data.weight is None

    def test_invalid_dimensions(self):
        with pytest.raises(ValueError):
            ShipmentUpdate(dimensions="big")

    def test_weight_must_be_positive(self, create_data):
        fields = create_data.model_dump()
        fields["weight"] = 0
        with pytest.raises(ValueError):
            ShipmentCreate.model_validate(fields)
