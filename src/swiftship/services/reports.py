"""Operational reports over shipments."""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.db.models import Shipment
from swiftship.lifecycle.status import PaymentStatus, ShipmentStatus
from swiftship.lifecycle.timeline import as_utc

IN_TRANSIT = frozenset(
    {
        ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.ARRIVED_AT_DESTINATION,
        ShipmentStatus.OUT_FOR_DELIVERY,
    }
)
EXCEPTIONS = frozenset(
    {ShipmentStatus.EXCEPTION, ShipmentStatus.RETURNED, ShipmentStatus.CANCELLED}
)


@dataclass
class ShipmentReport:
    """Shipment figures for a period of days up to now."""

    period_days: int
    total: int = 0
    delivered: int = 0
    in_transit: int = 0
    exceptions: int = 0
    created_today: int = 0
    delivered_today: int = 0
    revenue: Decimal = Decimal("0")
    collected: Decimal = Decimal("0")
    status_counts: dict[ShipmentStatus, int] = field(default_factory=dict)

    @property
    def delivery_rate(self) -> int:
        """Delivered shipments as a rounded percentage of the total."""
        if not self.total:
            return 0
        return round(self.delivered * 100 / self.total)


def build_report(
    shipments: list[Shipment], period_days: int, now: datetime | None = None
) -> ShipmentReport:
    """Summarise shipments created within the period."""
    now = as_utc(now or datetime.now(timezone.utc))
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    report = ShipmentReport(period_days=period_days)
    counts: Counter[ShipmentStatus] = Counter()

    for shipment in shipments:
        status = ShipmentStatus(shipment.status)
        counts[status] += 1
        report.total += 1
        if status == ShipmentStatus.DELIVERED:
            report.delivered += 1
        elif status in IN_TRANSIT:
            report.in_transit += 1
        elif status in EXCEPTIONS:
            report.exceptions += 1

        if as_utc(shipment.created_at) >= today:
            report.created_today += 1
        if shipment.delivered_at and as_utc(shipment.delivered_at) >= today:
            report.delivered_today += 1

        report.revenue += Decimal(shipment.total_amount or 0)
        if shipment.payment_status == PaymentStatus.PAID:
            report.collected += Decimal(shipment.amount_paid or shipment.total_amount or 0)
        else:
            report.collected += Decimal(shipment.amount_paid or 0)

    # Keep lifecycle order for display
    report.status_counts = {status: counts[status] for status in ShipmentStatus if counts[status]}
    return report


class ReportService:
    """Builds reports from the database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def shipment_report(self, period_days: int = 7) -> ShipmentReport:
        now = datetime.now(timezone.utc)
        since = now - timedelta(days=period_days)
        result = await self.db.execute(select(Shipment).where(Shipment.created_at >= since))
        return build_report(list(result.scalars().all()), period_days, now)
