"""Database package."""

from swiftship.db.database import get_db, init_db
from swiftship.db.models import (
    Base,
    Branch,
    Customer,
    Driver,
    PricingRule,
    Setting,
    Shipment,
    TrackingEvent,
)

__all__ = [
    "Base",
    "Branch",
    "Customer",
    "Driver",
    "PricingRule",
    "Setting",
    "Shipment",
    "TrackingEvent",
    "get_db",
    "init_db",
]
