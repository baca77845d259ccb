"""Database models."""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from swiftship.lifecycle.status import (
    PaymentStatus,
    ServiceLevel,
    ShipmentStatus,
    TransportMode,
)

Money = Numeric(12, 2)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )


class Branch(TimestampMixin, Base):
    """A depot or office that handles parcels."""

    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    code: Mapped[str] = mapped_column(String(20), unique=True)
    address: Mapped[str] = mapped_column(String(255))
    city: Mapped[str] = mapped_column(String(100))
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str] = mapped_column(String(100), default="Nigeria")
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latitude: Mapped[float | None] = mapped_column(nullable=True)
    longitude: Mapped[float | None] = mapped_column(nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    drivers: Mapped[list["Driver"]] = relationship(back_populates="branch")


class Driver(TimestampMixin, Base):
    """A courier who carries parcels for a branch."""

    __tablename__ = "drivers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    phone: Mapped[str] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    license_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    vehicle_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    vehicle_plate: Mapped[str | None] = mapped_column(String(20), nullable=True)
    branch_id: Mapped[int | None] = mapped_column(
        ForeignKey("branches.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(default=True)

    branch: Mapped[Optional["Branch"]] = relationship(back_populates="drivers", lazy="selectin")


class Customer(TimestampMixin, Base):
    """A sender with an account."""

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    phone: Mapped[str] = mapped_column(String(50))
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str] = mapped_column(String(100), default="Nigeria")
    is_active: Mapped[bool] = mapped_column(default=True)


class PricingRule(TimestampMixin, Base):
    """Rates for shipments between two zones, or the default rates."""

    __tablename__ = "pricing_rules"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    # A rule without zones is the default rule
    origin_zone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    destination_zone: Mapped[str | None] = mapped_column(String(100), nullable=True)
    base_price: Mapped[Decimal] = mapped_column(Money)
    price_per_kg: Mapped[Decimal] = mapped_column(Money)
    express_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("1.5"))
    same_day_multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 2), default=Decimal("2.0"))
    is_active: Mapped[bool] = mapped_column(default=True)


class Setting(TimestampMixin, Base):
    """A named block of back-office settings stored as JSON."""

    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    key: Mapped[str] = mapped_column(String(100), unique=True)
    value: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Shipment(TimestampMixin, Base):
    """A parcel in transit."""

    __tablename__ = "shipments"

    id: Mapped[int] = mapped_column(primary_key=True)
    tracking_number: Mapped[str] = mapped_column(String(50), unique=True, index=True)

    # Sender
    sender_name: Mapped[str] = mapped_column(String(100))
    sender_phone: Mapped[str] = mapped_column(String(50))
    sender_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sender_address: Mapped[str] = mapped_column(String(255))
    sender_city: Mapped[str] = mapped_column(String(100))
    sender_state: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Receiver
    receiver_name: Mapped[str] = mapped_column(String(100))
    receiver_phone: Mapped[str] = mapped_column(String(50))
    receiver_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    receiver_address: Mapped[str] = mapped_column(String(255))
    receiver_city: Mapped[str] = mapped_column(String(100))
    receiver_state: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Final delivery address, when it differs from the receiver's
    delivery_address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    delivery_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    delivery_state: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Package
    package_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    weight: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    dimensions: Mapped[str | None] = mapped_column(String(50), nullable=True)  # "L×W×H" cm
    declared_value: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    service_level: Mapped[ServiceLevel] = mapped_column(default=ServiceLevel.STANDARD)
    transport_mode: Mapped[TransportMode] = mapped_column(default=TransportMode.ROAD)

    # Handling
    origin_branch_id: Mapped[int | None] = mapped_column(
        ForeignKey("branches.id", ondelete="SET NULL"), nullable=True
    )
    destination_branch_id: Mapped[int | None] = mapped_column(
        ForeignKey("branches.id", ondelete="SET NULL"), nullable=True
    )
    current_branch_id: Mapped[int | None] = mapped_column(
        ForeignKey("branches.id", ondelete="SET NULL"), nullable=True
    )
    assigned_driver_id: Mapped[int | None] = mapped_column(
        ForeignKey("drivers.id", ondelete="SET NULL"), nullable=True
    )
    customer_id: Mapped[int | None] = mapped_column(
        ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )

    # Charges
    base_price: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    weight_charge: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    service_charge: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    insurance_fee: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    payment_status: Mapped[PaymentStatus] = mapped_column(default=PaymentStatus.UNPAID)
    amount_paid: Mapped[Decimal | None] = mapped_column(Money, nullable=True)

    # Current status
    status: Mapped[ShipmentStatus] = mapped_column(default=ShipmentStatus.CREATED, index=True)
    current_location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    estimated_delivery: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    pickup_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    origin_branch: Mapped[Optional["Branch"]] = relationship(
        foreign_keys=[origin_branch_id], lazy="selectin"
    )
    destination_branch: Mapped[Optional["Branch"]] = relationship(
        foreign_keys=[destination_branch_id], lazy="selectin"
    )
    current_branch: Mapped[Optional["Branch"]] = relationship(
        foreign_keys=[current_branch_id], lazy="selectin"
    )
    assigned_driver: Mapped[Optional["Driver"]] = relationship(lazy="selectin")
    customer: Mapped[Optional["Customer"]] = relationship(lazy="selectin")
    events: Mapped[list["TrackingEvent"]] = relationship(
        back_populates="shipment",
        order_by="TrackingEvent.created_at",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    @property
    def status_label(self) -> str:
        return self.status.label


class TrackingEvent(Base):
    """One milestone in a shipment's history. Never updated once written."""

    __tablename__ = "tracking_events"

    id: Mapped[int] = mapped_column(primary_key=True)
    shipment_id: Mapped[int] = mapped_column(
        ForeignKey("shipments.id", ondelete="CASCADE"), index=True
    )

    # Event details
    status: Mapped[ShipmentStatus] = mapped_column()
    event_type: Mapped[str] = mapped_column(String(50))
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    branch_id: Mapped[int | None] = mapped_column(
        ForeignKey("branches.id", ondelete="SET NULL"), nullable=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    # Relationships
    shipment: Mapped["Shipment"] = relationship(back_populates="events")
