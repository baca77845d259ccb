"""Shipment store: reads and writes of shipments and their tracking events."""

import re
import secrets
import string
import time
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, AsyncIterator

import structlog
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.config import settings
from swiftship.db.models import Shipment, TrackingEvent, utcnow
from swiftship.errors import (
    ConcurrentUpdate,
    InvalidTrackingNumber,
    NotFound,
    StoreUnavailable,
)
from swiftship.lifecycle.status import ShipmentStatus
from swiftship.lifecycle.timeline import as_utc

logger = structlog.get_logger(__name__)

_BASE36 = string.digits + string.ascii_uppercase
_DIMENSIONS = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s*[x×X]\s*(\d+(?:\.\d+)?)\s*[x×X]\s*(\d+(?:\.\d+)?)\s*$"
)

INITIAL_EVENT_DESCRIPTION = "Shipment created and awaiting pickup"

# Fields an administrative edit may not touch; status goes through the recorder
_PROTECTED_FIELDS = {"id", "tracking_number", "status", "delivered_at", "created_at"}


def _to_base36(number: int) -> str:
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits)) or "0"


def generate_tracking_number(prefix: str | None = None) -> str:
    """New tracking number: prefix, base-36 clock in ms, six random characters."""
    prefix = settings.tracking_number_prefix if prefix is None else prefix
    stamp = _to_base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{prefix}{stamp}{suffix}"


def normalise_tracking_number(tracking_number: str) -> str:
    return tracking_number.strip().upper()


def check_tracking_number(tracking_number: str, min_length: int | None = None) -> str:
    """Normalise a searched tracking number and reject ones too short to look up."""
    min_length = settings.tracking_number_min_length if min_length is None else min_length
    normalised = normalise_tracking_number(tracking_number)
    if len(normalised) < min_length:
        raise InvalidTrackingNumber(
            f"Tracking number must be at least {min_length} characters long"
        )
    return normalised


def format_dimensions(length: Any, width: Any, height: Any) -> str | None:
    """Encode package dimensions (cm) as "L×W×H"; None when any side is missing."""
    sides = [length, width, height]
    if any(side in (None, "") for side in sides):
        return None
    return "×".join(f"{Decimal(str(side)).normalize():f}" for side in sides)


def parse_dimensions(text: str | None) -> tuple[Decimal, Decimal, Decimal] | None:
    """Decode "L×W×H" (or "LxWxH") into three Decimals."""
    if not text:
        return None
    match = _DIMENSIONS.match(text)
    if not match:
        raise ValueError(f"Invalid dimensions: {text!r}")
    length, width, height = (Decimal(group) for group in match.groups())
    return length, width, height


class ShipmentStore:
    """Persistence for shipments and their tracking events.

    Every write commits on its own unless it runs inside `transaction()`, in
    which case the whole block commits or rolls back together. Database
    errors surface as `StoreUnavailable`.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self._in_transaction = False

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["ShipmentStore"]:
        """Group several writes into one commit."""
        if self._in_transaction:
            yield self
            return

        self._in_transaction = True
        try:
            yield self
        except Exception:
            await self.db.rollback()
            raise
        finally:
            self._in_transaction = False
        await self._commit()

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Store write failed", error=str(e))
            raise StoreUnavailable(f"Could not save changes: {e}") from e

    async def _write(self) -> None:
        """Commit now, or only flush when inside a transaction."""
        if not self._in_transaction:
            await self._commit()
            return
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Store write failed", error=str(e))
            raise StoreUnavailable(f"Could not save changes: {e}") from e

    async def _execute(self, statement):
        try:
            return await self.db.execute(statement)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Store query failed", error=str(e))
            raise StoreUnavailable(f"Could not read from the database: {e}") from e

    # Shipments

    async def get_shipment(self, shipment_id: int) -> Shipment:
        try:
            shipment = await self.db.get(Shipment, shipment_id)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Store query failed", error=str(e))
            raise StoreUnavailable(f"Could not read from the database: {e}") from e
        if shipment is None:
            raise NotFound("shipment", shipment_id)
        return shipment

    async def get_shipment_by_tracking_number(self, tracking_number: str) -> Shipment:
        tracking_number = normalise_tracking_number(tracking_number)
        result = await self._execute(
            select(Shipment).where(Shipment.tracking_number == tracking_number)
        )
        shipment = result.scalar_one_or_none()
        if shipment is None:
            raise NotFound("shipment", tracking_number)
        return shipment

    async def list_shipments(
        self,
        query: str | None = None,
        status: ShipmentStatus | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[Shipment]:
        """Shipments newest first, optionally searched and filtered."""
        statement = select(Shipment).order_by(Shipment.created_at.desc(), Shipment.id.desc())
        if query:
            pattern = f"%{query.strip()}%"
            statement = statement.where(
                or_(
                    Shipment.tracking_number.ilike(pattern),
                    Shipment.sender_name.ilike(pattern),
                    Shipment.receiver_name.ilike(pattern),
                )
            )
        if status:
            statement = statement.where(Shipment.status == ShipmentStatus(status))
        if since:
            statement = statement.where(Shipment.created_at >= since)
        if limit:
            statement = statement.limit(limit)

        result = await self._execute(statement)
        return list(result.scalars().all())

    async def create_shipment(self, tracking_number: str | None = None, **fields: Any) -> Shipment:
        """Create a shipment at `created` together with its first tracking event."""
        shipment = Shipment(
            tracking_number=normalise_tracking_number(tracking_number or generate_tracking_number()),
            status=ShipmentStatus.CREATED,
            **fields,
        )

        async with self.transaction():
            self.db.add(shipment)
            await self._write()
            await self.append_tracking_event(
                shipment.id,
                ShipmentStatus.CREATED,
                location=shipment.current_location,
                description=INITIAL_EVENT_DESCRIPTION,
            )

        logger.info(
            "Shipment created",
            shipment_id=shipment.id,
            tracking_number=shipment.tracking_number,
        )
        return shipment

    async def update_shipment(self, shipment_id: int, **fields: Any) -> Shipment:
        """Administrative edit of contact, package and payment fields."""
        protected = _PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise ValueError(f"Cannot edit {', '.join(sorted(protected))} directly")

        shipment = await self.get_shipment(shipment_id)
        for name, value in fields.items():
            if not hasattr(Shipment, name):
                raise ValueError(f"Unknown shipment field: {name}")
            setattr(shipment, name, value)
        await self._write()
        return shipment

    async def update_shipment_status(
        self,
        shipment_id: int,
        status: ShipmentStatus,
        expected_status: ShipmentStatus | None = None,
        delivered_at: datetime | None = None,
        current_location: str | None = None,
        current_branch_id: int | None = None,
    ) -> Shipment:
        """Set the shipment status.

        With `expected_status` the update only applies while the stored status
        still equals it; otherwise `ConcurrentUpdate` is raised.
        """
        values: dict[str, Any] = {"status": ShipmentStatus(status), "updated_at": utcnow()}
        if delivered_at is not None:
            values["delivered_at"] = delivered_at
        if current_location is not None:
            values["current_location"] = current_location
        if current_branch_id is not None:
            values["current_branch_id"] = current_branch_id

        statement = update(Shipment).where(Shipment.id == shipment_id)
        if expected_status is not None:
            statement = statement.where(Shipment.status == ShipmentStatus(expected_status))
        statement = statement.values(**values).execution_options(synchronize_session=False)

        result = await self._execute(statement)
        if result.rowcount == 0:
            await self.get_shipment(shipment_id)
            raise ConcurrentUpdate(shipment_id, ShipmentStatus(expected_status))

        await self._write()
        shipment = await self.get_shipment(shipment_id)
        await self.db.refresh(shipment)
        return shipment

    async def delete_shipment(self, shipment_id: int) -> None:
        """Delete a shipment and its tracking events."""
        shipment = await self.get_shipment(shipment_id)

        # Delete events first
        await self._execute(delete(TrackingEvent).where(TrackingEvent.shipment_id == shipment_id))
        await self.db.delete(shipment)
        await self._write()
        logger.info("Shipment deleted", shipment_id=shipment_id)

    # Tracking events

    async def list_tracking_events(self, shipment_id: int) -> list[TrackingEvent]:
        result = await self._execute(
            select(TrackingEvent)
            .where(TrackingEvent.shipment_id == shipment_id)
            .order_by(TrackingEvent.created_at, TrackingEvent.id)
        )
        return list(result.scalars().all())

    async def latest_tracking_event(self, shipment_id: int) -> TrackingEvent | None:
        result = await self._execute(
            select(TrackingEvent)
            .where(TrackingEvent.shipment_id == shipment_id)
            .order_by(TrackingEvent.created_at.desc(), TrackingEvent.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def append_tracking_event(
        self,
        shipment_id: int,
        status: ShipmentStatus,
        location: str | None = None,
        description: str | None = None,
        notes: str | None = None,
        branch_id: int | None = None,
        event_type: str | None = None,
        created_at: datetime | None = None,
    ) -> TrackingEvent:
        """Append one event to a shipment's history.

        `created_at` is kept strictly after the previous event so the newest
        event is always unambiguous.
        """
        await self.get_shipment(shipment_id)

        created_at = as_utc(created_at or utcnow())
        previous = await self.latest_tracking_event(shipment_id)
        if previous is not None and created_at <= as_utc(previous.created_at):
            created_at = as_utc(previous.created_at) + timedelta(microseconds=1)

        status = ShipmentStatus(status)
        event = TrackingEvent(
            shipment_id=shipment_id,
            status=status,
            event_type=event_type or status.value,
            location=location,
            branch_id=branch_id,
            description=description,
            notes=notes,
            created_at=created_at,
        )
        self.db.add(event)
        await self._write()
        return event

