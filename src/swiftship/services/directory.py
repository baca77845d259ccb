"""Branches, drivers and customers."""

from typing import Any, Generic, TypeVar

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from swiftship.db.models import Branch, Customer, Driver
from swiftship.errors import NotFound, SwiftShipError

logger = structlog.get_logger(__name__)

Record = TypeVar("Record", Branch, Driver, Customer)


class DuplicateRecord(SwiftShipError):
    """A record that clashes with a unique field of an existing one."""


class DirectoryService(Generic[Record]):
    """List, create, edit and remove one kind of directory record."""

    model: type[Record]
    kind: str
    search_fields: tuple[str, ...] = ("name",)

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_all(self, query: str | None = None, active_only: bool = False) -> list[Record]:
        statement = select(self.model).order_by(self.model.created_at.desc(), self.model.id.desc())
        if query:
            pattern = f"%{query.strip()}%"
            statement = statement.where(
                or_(*(getattr(self.model, name).ilike(pattern) for name in self.search_fields))
            )
        if active_only:
            statement = statement.where(self.model.is_active.is_(True))
        result = await self.db.execute(statement)
        return list(result.scalars().all())

    async def get(self, record_id: int) -> Record:
        record = await self.db.get(self.model, record_id)
        if record is None:
            raise NotFound(self.kind, record_id)
        return record

    async def save(self, record_id: int | None = None, **fields: Any) -> Record:
        """Create a record, or update it when `record_id` is given."""
        record = await self.get(record_id) if record_id else self.model()
        for name, value in fields.items():
            setattr(record, name, value)
        self.db.add(record)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise DuplicateRecord(f"A {self.kind} with these details already exists") from e
        logger.info(f"{self.kind.capitalize()} saved", record_id=record.id)
        return record

    async def set_active(self, record_id: int, active: bool) -> Record:
        record = await self.get(record_id)
        record.is_active = active
        await self.db.commit()
        return record

    async def delete(self, record_id: int) -> None:
        record = await self.get(record_id)
        await self.db.delete(record)
        await self.db.commit()
        logger.info(f"{self.kind.capitalize()} deleted", record_id=record_id)


class BranchService(DirectoryService[Branch]):
    model = Branch
    kind = "branch"
    search_fields = ("name", "code", "city")


class DriverService(DirectoryService[Driver]):
    model = Driver
    kind = "driver"
    search_fields = ("name", "phone", "vehicle_plate")


class CustomerService(DirectoryService[Customer]):
    model = Customer
    kind = "customer"
    search_fields = ("name", "phone", "email", "company")
