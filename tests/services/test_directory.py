"""Tests for branches, drivers and customers."""

import pytest

from swiftship.errors import NotFound
from swiftship.services.directory import (
    BranchService,
    CustomerService,
    DriverService,
    DuplicateRecord,
)


async def add_branch(db_session, code="PHX", name="Phoenix Hub"):
    return await BranchService(db_session).save(
        name=name, code=code, address="100 Hub St", city="Phoenix"
    )


class TestDirectoryService:
    """Test listing and editing directory records."""

    async def test_create_and_list(self, db_session):
        branch = await add_branch(db_session)

        branches = await BranchService(db_session).list_all()
        assert [b.id for b in branches] == [branch.id]
        assert branch.is_active

    async def test_search(self, db_session):
        await add_branch(db_session, code="PHX", name="Phoenix Hub")
        tucson = await add_branch(db_session, code="TUS", name="Tucson Depot")

        found = await BranchService(db_session).list_all(query="tus")
        assert [b.id for b in found] == [tucson.id]

    async def test_duplicate_code(self, db_session):
        await add_branch(db_session, code="PHX")
        with pytest.raises(DuplicateRecord):
            await add_branch(db_session, code="PHX", name="Another")

    async def test_toggle_active(self, db_session):
        service = CustomerService(db_session)
        customer = await service.save(name="Acme", phone="555")

        await service.set_active(customer.id, False)

        assert await service.list_all(active_only=True) == []
        assert len(await service.list_all()) == 1

    async def test_driver_branch(self, db_session):
        branch = await add_branch(db_session)
        driver = await DriverService(db_session).save(
            name="Dee Driver", phone="555", branch_id=branch.id
        )
        await db_session.refresh(driver, ["branch"])
        assert driver.branch.code == "PHX"

    async def test_update(self, db_session):
        branch = await add_branch(db_session)
        updated = await BranchService(db_session).save(branch.id, city="Mesa")
        assert updated.id == branch.id
        assert updated.city == "Mesa"

    async def test_delete(self, db_session):
        service = DriverService(db_session)
        driver = await service.save(name="Dee Driver", phone="555")

        await service.delete(driver.id)

        with pytest.raises(NotFound):
            await service.get(driver.id)
