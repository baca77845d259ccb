"""Back-office settings stored in the database."""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.config import settings
from swiftship.db.models import Setting

COMPANY_DEFAULTS: dict[str, Any] = {
    "name": settings.app_name,
    "phone": "",
    "email": "",
    "address": "",
}

PRICING_DEFAULTS: dict[str, Any] = {
    "currency": settings.currency,
    "tax_rate": 7.5,
    # Percent of the declared value
    "insurance_rate": float(settings.default_insurance_rate * 100),
}


class AppSettingsService:
    """Reads and writes named settings blocks."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, key: str, defaults: dict[str, Any] | None = None) -> dict[str, Any]:
        """Stored value for `key`, layered over `defaults`."""
        result = await self.db.execute(select(Setting).where(Setting.key == key))
        setting = result.scalar_one_or_none()
        value = dict(defaults or {})
        if setting is not None:
            value.update(setting.value or {})
        return value

    async def set(self, key: str, value: dict[str, Any], description: str | None = None) -> Setting:
        result = await self.db.execute(select(Setting).where(Setting.key == key))
        setting = result.scalar_one_or_none()
        if setting is None:
            setting = Setting(key=key, value=value, description=description)
            self.db.add(setting)
        else:
            # Reassign so the JSON column is marked dirty
            setting.value = dict(value)
            if description is not None:
                setting.description = description
        await self.db.commit()
        return setting

    async def company(self) -> dict[str, Any]:
        return await self.get("company", COMPANY_DEFAULTS)

    async def pricing(self) -> dict[str, Any]:
        return await self.get("pricing", PRICING_DEFAULTS)
