"""Tests for roles and startup seeding."""
import pytest

from vending.errors import ErrorKind, VendingError
from vending.models.role import Privilege


async def test_default_roles_are_seeded(container):
    roles = await container.role_service.get_roles()

    assert {role.name for role in roles} == {"Buyer", "Seller", "Admin"}
    admin = await container.role_service.find_role_by_name("Admin")
    assert admin.is_admin is True
    assert admin.privileges == [Privilege.ALL.value]


async def test_seeding_is_idempotent(container):
    await container.startup_service.seed()

    assert len(await container.role_service.get_roles()) == 3
    assert await container.access_client_service.find_client_by_name("Default") is not None


async def test_create_roles(container):
    created = await container.role_service.create_roles([
        {"name": "Auditor", "privileges": [Privilege.VIEW_PRODUCT]},
        {"name": "Restocker", "privileges": ["UPDATE_PRODUCT"]},
    ])

    assert [role.name for role in created] == ["Auditor", "Restocker"]
    assert created[1].privileges == ["UPDATE_PRODUCT"]


async def test_duplicate_role(container):
    with pytest.raises(VendingError) as exc_info:
        await container.role_service.create_role("Buyer", [Privilege.PURCHASE])

    assert exc_info.value.kind == ErrorKind.DUPLICATE


async def test_bootstrap_admin_created_from_settings(container):
    container.settings.ADMIN_USERNAME = "rootadmin"
    container.settings.ADMIN_PASSWORD = "rootadmin-pass"

    await container.startup_service.create_bootstrap_admin()

    user = await container.user_service.find_user_by_username("rootadmin")
    assert user.is_admin is True
