"""Shipping charge calculation from pricing rules."""

from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.config import settings
from swiftship.db.models import PricingRule
from swiftship.errors import NotFound
from swiftship.lifecycle.status import ServiceLevel
from swiftship.services.app_settings import AppSettingsService

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Rates:
    """The rates a quote is computed with."""

    base_price: Decimal
    price_per_kg: Decimal
    express_multiplier: Decimal
    same_day_multiplier: Decimal
    insurance_rate: Decimal  # fraction of the declared value
    rule_name: str | None = None

    @classmethod
    def defaults(cls, insurance_rate: Decimal | None = None) -> "Rates":
        return cls(
            base_price=settings.default_base_price,
            price_per_kg=settings.default_price_per_kg,
            express_multiplier=settings.express_multiplier,
            same_day_multiplier=settings.same_day_multiplier,
            insurance_rate=(
                settings.default_insurance_rate if insurance_rate is None else insurance_rate
            ),
        )

    @classmethod
    def from_rule(cls, rule: PricingRule, insurance_rate: Decimal) -> "Rates":
        return cls(
            base_price=Decimal(rule.base_price),
            price_per_kg=Decimal(rule.price_per_kg),
            express_multiplier=Decimal(rule.express_multiplier),
            same_day_multiplier=Decimal(rule.same_day_multiplier),
            insurance_rate=insurance_rate,
            rule_name=rule.name,
        )

    def multiplier(self, service_level: ServiceLevel | str) -> Decimal:
        service_level = ServiceLevel(service_level)
        if service_level == ServiceLevel.EXPRESS:
            return self.express_multiplier
        if service_level == ServiceLevel.SAME_DAY:
            return self.same_day_multiplier
        return Decimal("1")


@dataclass(frozen=True)
class Quote:
    """Charges for one shipment."""

    base_price: Decimal
    weight_charge: Decimal
    service_charge: Decimal
    insurance_fee: Decimal
    total_amount: Decimal
    rule_name: str | None = None

    def charges(self) -> dict[str, Decimal]:
        """The charge fields as stored on a shipment."""
        fields = asdict(self)
        fields.pop("rule_name")
        return fields


def calculate_quote(
    rates: Rates,
    weight: Any,
    service_level: ServiceLevel | str = ServiceLevel.STANDARD,
    declared_value: Any = None,
) -> Quote:
    """Price a shipment.

    The service multiplier applies to base price plus weight charge; insurance
    is a share of the declared value.
    """
    weight = Decimal(str(weight or 0))
    declared_value = Decimal(str(declared_value or 0))

    base_price = to_money(rates.base_price)
    weight_charge = to_money(weight * rates.price_per_kg)
    service_charge = to_money((base_price + weight_charge) * (rates.multiplier(service_level) - 1))
    insurance_fee = to_money(declared_value * rates.insurance_rate)

    return Quote(
        base_price=base_price,
        weight_charge=weight_charge,
        service_charge=service_charge,
        insurance_fee=insurance_fee,
        total_amount=base_price + weight_charge + service_charge + insurance_fee,
        rule_name=rates.rule_name,
    )


def _same_zone(zone: str | None, city: str | None) -> bool:
    return bool(city) and zone.strip().lower() == city.strip().lower()


def select_rule(
    rules: Iterable[PricingRule],
    origin_zone: str | None = None,
    destination_zone: str | None = None,
) -> PricingRule | None:
    """Most specific active rule whose zones all match.

    A rule without zones is the default rule and matches everything.
    """
    best = None
    best_score = -1
    for rule in rules:
        if not rule.is_active:
            continue
        score = 0
        if rule.origin_zone:
            if not _same_zone(rule.origin_zone, origin_zone):
                continue
            score += 1
        if rule.destination_zone:
            if not _same_zone(rule.destination_zone, destination_zone):
                continue
            score += 1
        if score > best_score:
            best, best_score = rule, score
    return best


class PricingService:
    """Pricing rules and quotes."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_rules(self, active_only: bool = False) -> list[PricingRule]:
        query = select(PricingRule).order_by(PricingRule.created_at.desc(), PricingRule.id.desc())
        if active_only:
            query = query.where(PricingRule.is_active.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_rule(self, rule_id: int) -> PricingRule:
        rule = await self.db.get(PricingRule, rule_id)
        if rule is None:
            raise NotFound("pricing rule", rule_id)
        return rule

    async def save_rule(self, rule_id: int | None = None, **fields: Any) -> PricingRule:
        """Create a rule, or update it when `rule_id` is given."""
        rule = await self.get_rule(rule_id) if rule_id else PricingRule()
        for name, value in fields.items():
            setattr(rule, name, value)
        self.db.add(rule)
        await self.db.commit()
        return rule

    async def delete_rule(self, rule_id: int) -> None:
        rule = await self.get_rule(rule_id)
        await self.db.delete(rule)
        await self.db.commit()

    async def rates_for(
        self, origin_zone: str | None = None, destination_zone: str | None = None
    ) -> Rates:
        pricing = await AppSettingsService(self.db).pricing()
        insurance_rate = Decimal(str(pricing["insurance_rate"])) / 100

        rule = select_rule(await self.list_rules(active_only=True), origin_zone, destination_zone)
        if rule is None:
            return Rates.defaults(insurance_rate)
        return Rates.from_rule(rule, insurance_rate)

    async def quote(
        self,
        weight: Any,
        service_level: ServiceLevel | str = ServiceLevel.STANDARD,
        declared_value: Any = None,
        origin_zone: str | None = None,
        destination_zone: str | None = None,
    ) -> Quote:
        rates = await self.rates_for(origin_zone, destination_zone)
        return calculate_quote(rates, weight, service_level, declared_value)
