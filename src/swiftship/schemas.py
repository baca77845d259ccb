"""Request and response models."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from swiftship.lifecycle.status import (
    PaymentStatus,
    ServiceLevel,
    ShipmentStatus,
    TransportMode,
)
from swiftship.services.shipments import parse_dimensions


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class _Input(BaseModel):
    """Form and JSON input; blank strings count as missing."""

    model_config = ConfigDict(str_strip_whitespace=True)

    @model_validator(mode="before")
    @classmethod
    def _blanks(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: _blank_to_none(value) for key, value in data.items()}
        return data


class ShipmentCreate(_Input):
    sender_name: str = Field(min_length=1, max_length=100)
    sender_phone: str = Field(min_length=1, max_length=50)
    sender_email: str | None = None
    sender_address: str = Field(min_length=1, max_length=255)
    sender_city: str = Field(min_length=1, max_length=100)
    sender_state: str | None = None

    receiver_name: str = Field(min_length=1, max_length=100)
    receiver_phone: str = Field(min_length=1, max_length=50)
    receiver_email: str | None = None
    receiver_address: str = Field(min_length=1, max_length=255)
    receiver_city: str = Field(min_length=1, max_length=100)
    receiver_state: str | None = None

    delivery_address: str | None = None
    delivery_city: str | None = None
    delivery_state: str | None = None

    package_description: str | None = None
    weight: Decimal = Field(gt=0)
    length: Decimal | None = Field(default=None, gt=0)
    width: Decimal | None = Field(default=None, gt=0)
    height: Decimal | None = Field(default=None, gt=0)
    declared_value: Decimal | None = Field(default=None, ge=0)
    service_level: ServiceLevel = ServiceLevel.STANDARD
    transport_mode: TransportMode = TransportMode.ROAD

    origin_branch_id: int | None = None
    destination_branch_id: int | None = None
    assigned_driver_id: int | None = None
    customer_id: int | None = None

    estimated_delivery: datetime | None = None
    pickup_date: datetime | None = None
    notes: str | None = None


class ShipmentUpdate(_Input):
    """Administrative edit; every field is optional."""

    sender_name: str | None = None
    sender_phone: str | None = None
    sender_email: str | None = None
    sender_address: str | None = None
    sender_city: str | None = None
    sender_state: str | None = None

    receiver_name: str | None = None
    receiver_phone: str | None = None
    receiver_email: str | None = None
    receiver_address: str | None = None
    receiver_city: str | None = None
    receiver_state: str | None = None

    delivery_address: str | None = None
    delivery_city: str | None = None
    delivery_state: str | None = None

    package_description: str | None = None
    weight: Decimal | None = Field(default=None, gt=0)
    dimensions: str | None = None
    declared_value: Decimal | None = Field(default=None, ge=0)
    service_level: ServiceLevel | None = None
    transport_mode: TransportMode | None = None

    payment_status: PaymentStatus | None = None
    amount_paid: Decimal | None = Field(default=None, ge=0)

    current_location: str | None = None
    estimated_delivery: datetime | None = None
    assigned_driver_id: int | None = None
    notes: str | None = None

    status: ShipmentStatus | None = None

    @field_validator("dimensions")
    @classmethod
    def _check_dimensions(cls, value: str | None) -> str | None:
        parse_dimensions(value)
        return value


class TransitionRequest(_Input):
    status: ShipmentStatus
    location: str | None = None
    description: str | None = None
    notes: str | None = None
    branch_id: int | None = None


class QuoteRequest(_Input):
    weight: Decimal = Field(gt=0)
    service_level: ServiceLevel = ServiceLevel.STANDARD
    declared_value: Decimal | None = Field(default=None, ge=0)
    origin_city: str | None = None
    destination_city: str | None = None


class QuoteOut(BaseModel):
    base_price: Decimal
    weight_charge: Decimal
    service_charge: Decimal
    insurance_fee: Decimal
    total_amount: Decimal
    rule_name: str | None = None


class TimelineEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: ShipmentStatus
    label: str
    location: str | None
    timestamp: datetime
    description: str | None
    notes: str | None = None
    is_completed: bool
    is_current: bool


class StopOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    kind: str
    location: str
    description: str
    transport_mode: str
    completed: bool
    timestamp: datetime | None = None


class ShipmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tracking_number: str
    status: ShipmentStatus
    status_label: str
    service_level: ServiceLevel
    transport_mode: TransportMode
    sender_name: str
    sender_city: str
    receiver_name: str
    receiver_city: str
    weight: Decimal
    dimensions: str | None = None
    current_location: str | None = None
    estimated_delivery: datetime | None = None
    delivered_at: datetime | None = None
    total_amount: Decimal
    payment_status: PaymentStatus
    created_at: datetime


class TrackingOut(BaseModel):
    shipment: ShipmentOut
    progress: int | None
    timeline: list[TimelineEntryOut]
    stops: list[StopOut]


class TrackingEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    shipment_id: int
    status: ShipmentStatus
    event_type: str
    location: str | None
    description: str | None
    notes: str | None
    created_at: datetime


class TransitionOut(BaseModel):
    shipment: ShipmentOut
    event: TrackingEventOut
    previous_status: ShipmentStatus


class PendingEventIn(BaseModel):
    """A tracking event returned by a partial update, sent back to retry it."""

    model_config = ConfigDict(from_attributes=True)

    status: ShipmentStatus
    created_at: datetime
    location: str | None = None
    description: str | None = None
    notes: str | None = None
    branch_id: int | None = None



class BranchIn(_Input):
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=20)
    address: str = Field(min_length=1, max_length=255)
    city: str = Field(min_length=1, max_length=100)
    state: str | None = None
    phone: str | None = None
    email: str | None = None

    @field_validator("code")
    @classmethod
    def _upper_code(cls, value: str) -> str:
        return value.upper()


class DriverIn(_Input):
    name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=1, max_length=50)
    email: str | None = None
    license_number: str | None = None
    vehicle_type: str | None = None
    vehicle_plate: str | None = None
    branch_id: int | None = None


class CustomerIn(_Input):
    name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=1, max_length=50)
    email: str | None = None
    company: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None


class PricingRuleIn(_Input):
    name: str = Field(min_length=1, max_length=100)
    origin_zone: str | None = None
    destination_zone: str | None = None
    base_price: Decimal = Field(ge=0)
    price_per_kg: Decimal = Field(ge=0)
    express_multiplier: Decimal = Field(default=Decimal("1.5"), ge=1)
    same_day_multiplier: Decimal = Field(default=Decimal("2.0"), ge=1)
    is_active: bool = True


class CompanySettingsIn(_Input):
    name: str = Field(min_length=1, max_length=100)
    phone: str | None = None
    email: str | None = None
    address: str | None = None


class PricingSettingsIn(_Input):
    currency: str = Field(min_length=3, max_length=3)
    tax_rate: float = Field(ge=0, le=100)
    insurance_rate: float = Field(ge=0, le=100)
