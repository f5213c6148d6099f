"""Tests for the product service."""
import pytest

from vending.errors import ErrorKind, VendingError
from vending.schemas.product import ProductCreate, ProductUpdate
from vending.utils.money import Amount


def _product_data(seller_id, **overrides):
    data = {
        "product_name": "Water",
        "amount_available": 3,
        "cost": Amount(value=25),
        "seller_id": seller_id,
    }
    data.update(overrides)
    return ProductCreate(**data)


async def test_create_product(container, seller):
    """Test creating a new product."""
    product = await container.product_service.create_product(_product_data(seller.user.id))

    assert product.id
    assert product.product_name == "Water"
    assert product.amount_available == 3
    assert product.cost == Amount(value=25)
    assert product.version == 1


@pytest.mark.parametrize(
    "overrides",
    [
        {"product_name": "   "},
        {"amount_available": -1},
        {"amount_available": None},
        {"cost": Amount(value=12)},
        {"cost": Amount(value=0)},
        {"cost": None},
    ],
)
async def test_create_product_invalid_data(container, seller, overrides):
    with pytest.raises(VendingError) as exc_info:
        await container.product_service.create_product(_product_data(seller.user.id, **overrides))

    assert exc_info.value.kind == ErrorKind.VALIDATION


async def test_create_product_unknown_seller(container):
    with pytest.raises(VendingError) as exc_info:
        await container.product_service.create_product(_product_data("missing-seller"))

    assert exc_info.value.kind == ErrorKind.NOT_FOUND


async def test_create_product_duplicate_name_for_seller(container, seller):
    await container.product_service.create_product(_product_data(seller.user.id))

    with pytest.raises(VendingError) as exc_info:
        await container.product_service.create_product(_product_data(seller.user.id))

    assert exc_info.value.kind == ErrorKind.DUPLICATE


async def test_update_product_bumps_version(container, product):
    updated = await container.product_service.update_product(
        product.id,
        ProductUpdate(amount_available=9, cost=Amount(value=15)),
    )

    assert updated.amount_available == 9
    assert updated.cost_value == 15
    assert updated.product_name == product.product_name
    assert updated.version == product.version + 1
    assert updated.date_updated is not None


async def test_update_product_allows_zero_stock(container, product):
    updated = await container.product_service.update_product(product.id, ProductUpdate(amount_available=0))

    assert updated.amount_available == 0


async def test_update_with_same_version_only_one_wins(container, product):
    """Two writers holding the same version: the second is rejected, not applied."""
    first = ProductUpdate(amount_available=4, version=product.version)
    second = ProductUpdate(amount_available=1, version=product.version)

    await container.product_service.update_product(product.id, first)
    with pytest.raises(VendingError) as exc_info:
        await container.product_service.update_product(product.id, second)

    assert exc_info.value.kind == ErrorKind.CONCURRENT_MODIFICATION
    stored = await container.product_service.find_product_by_id(product.id)
    assert stored.amount_available == 4


async def test_update_product_cannot_change_seller(container, product, register):
    other = await register("seller02", "Seller")

    with pytest.raises(VendingError) as exc_info:
        await container.product_service.update_product(product.id, ProductUpdate(seller_id=other.user.id))

    assert exc_info.value.kind == ErrorKind.VALIDATION


async def test_update_product_name_clash(container, seller, product):
    await container.product_service.create_product(_product_data(seller.user.id))

    with pytest.raises(VendingError) as exc_info:
        await container.product_service.update_product(product.id, ProductUpdate(product_name="Water"))

    assert exc_info.value.kind == ErrorKind.DUPLICATE


async def test_update_missing_product(container):
    with pytest.raises(VendingError) as exc_info:
        await container.product_service.update_product("nope", ProductUpdate(amount_available=1))

    assert exc_info.value.kind == ErrorKind.NOT_FOUND


async def test_delete_product(container, product):
    assert await container.product_service.delete_product(product.id) is True
    assert await container.product_service.find_product_by_id(product.id) is None

    with pytest.raises(VendingError) as exc_info:
        await container.product_service.delete_product(product.id)
    assert exc_info.value.kind == ErrorKind.NOT_FOUND


async def test_get_page_filters_by_search(container, seller, product):
    await container.product_service.create_product(_product_data(seller.user.id))

    items, total, total_pages = await container.product_service.get_page(search="wat")

    assert total == 1
    assert total_pages == 1
    assert items[0].product_name == "Water"
