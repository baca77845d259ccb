"""JSON API for staff tools."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.api.deps import require_admin
from swiftship.api.routes import tracking_out
from swiftship.db import get_db
from swiftship.errors import PendingEvent
from swiftship.lifecycle.status import ShipmentStatus
from swiftship.schemas import (
    PendingEventIn,
    QuoteOut,
    QuoteRequest,
    ShipmentCreate,
    ShipmentOut,
    ShipmentUpdate,
    TrackingEventOut,
    TrackingOut,
    TransitionOut,
    TransitionRequest,
)
from swiftship.services.booking import BookingService
from swiftship.services.pricing import PricingService
from swiftship.services.recorder import TrackingEventRecorder
from swiftship.services.shipments import ShipmentStore
from swiftship.services.tracker import TrackerService

router = APIRouter(prefix="/api", dependencies=[Depends(require_admin)])


@router.get("/shipments", response_model=list[ShipmentOut])
async def list_shipments(
    q: str | None = None,
    status: ShipmentStatus | None = None,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
):
    return await ShipmentStore(db).list_shipments(query=q, status=status, limit=limit)


@router.post("/shipments", response_model=ShipmentOut, status_code=201)
async def create_shipment(data: ShipmentCreate, db: AsyncSession = Depends(get_db)):
    """Book a shipment; it starts at `created` with one tracking event."""
    return await BookingService(db).create(data)


@router.get("/shipments/{shipment_id}", response_model=TrackingOut)
async def get_shipment(shipment_id: int, db: AsyncSession = Depends(get_db)):
    view = await TrackerService(db).view_shipment(shipment_id)
    return tracking_out(view)


@router.patch("/shipments/{shipment_id}", response_model=ShipmentOut)
async def update_shipment(
    shipment_id: int, data: ShipmentUpdate, db: AsyncSession = Depends(get_db)
):
    return await BookingService(db).update(shipment_id, data)


@router.delete("/shipments/{shipment_id}", status_code=204)
async def delete_shipment(shipment_id: int, db: AsyncSession = Depends(get_db)):
    await ShipmentStore(db).delete_shipment(shipment_id)
    return Response(status_code=204)


@router.post("/shipments/{shipment_id}/transitions", response_model=TransitionOut, status_code=201)
async def record_transition(
    shipment_id: int, data: TransitionRequest, db: AsyncSession = Depends(get_db)
):
    """Move a shipment to a new status and record the tracking event."""
    result = await TrackingEventRecorder(ShipmentStore(db)).record(
        shipment_id,
        data.status,
        location=data.location,
        description=data.description,
        notes=data.notes,
        branch_id=data.branch_id,
    )
    return TransitionOut(
        shipment=ShipmentOut.model_validate(result.shipment),
        event=TrackingEventOut.model_validate(result.event),
        previous_status=result.previous_status,
    )


@router.get("/shipments/{shipment_id}/events", response_model=list[TrackingEventOut])
async def list_events(shipment_id: int, db: AsyncSession = Depends(get_db)):
    store = ShipmentStore(db)
    await store.get_shipment(shipment_id)
    return await store.list_tracking_events(shipment_id)


@router.post("/shipments/{shipment_id}/events", response_model=TrackingEventOut, status_code=201)
async def complete_event(
    shipment_id: int, data: PendingEventIn, db: AsyncSession = Depends(get_db)
):
    """Append the tracking event returned by a partial update."""
    pending = PendingEvent(shipment_id=shipment_id, **data.model_dump())
    return await TrackingEventRecorder(ShipmentStore(db)).complete(pending)


@router.post("/quote", response_model=QuoteOut)
async def quote(data: QuoteRequest, db: AsyncSession = Depends(get_db)):
    """Price a parcel without booking it."""
    result = await PricingService(db).quote(
        weight=data.weight,
        service_level=data.service_level,
        declared_value=data.declared_value,
        origin_zone=data.origin_city,
        destination_zone=data.destination_city,
    )
    return QuoteOut(**asdict(result))
