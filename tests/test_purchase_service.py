"""Tests for the purchase transaction engine."""
from unittest.mock import AsyncMock, patch

import pytest

from vending.errors import ErrorKind, VendingError, concurrent_modification_error
from vending.models.purchase import Purchase, PurchaseStatus
from vending.schemas.product import ProductCreate, ProductUpdate
from vending.schemas.purchase import PurchaseFilter, PurchaseRequest
from vending.services.purchase_service import PurchaseService
from vending.utils.money import Amount


async def _purchase_rows(container):
    return await container.purchase_repository.find_all()


async def test_purchase_debits_deposit_and_stock(container, buyer, product):
    """Deposit 100, cost 10, quantity 1: stock drops by one and 90 comes back as change."""
    response = await container.purchase_service.create_purchase(
        product.id, PurchaseRequest(user_id=buyer.user.id, quantity=1)
    )

    assert response.total_spent == Amount(value=10)
    assert response.change.value == [20, 20, 50]
    assert response.product.amount_available == product.amount_available - 1
    assert response.buyer_id == buyer.user.id

    stored_product = await container.product_service.find_product_by_id(product.id)
    stored_buyer = await container.user_service.find_user_by_id(buyer.user.id)
    assert stored_product.amount_available == product.amount_available - 1
    assert stored_product.version == product.version + 1
    assert stored_buyer.deposit_value == 0

    purchases = await _purchase_rows(container)
    assert len(purchases) == 1
    assert purchases[0].id == response.id
    assert purchases[0].status == PurchaseStatus.COMPLETED
    assert purchases[0].seller_id == product.seller_id
    assert purchases[0].quantity == 1


async def test_purchase_of_several_units(container, buyer, product):
    response = await container.purchase_service.create_purchase(
        product.id, PurchaseRequest(user_id=buyer.user.id, quantity=3)
    )

    assert response.total_spent.value == 30
    assert response.change.value == [20, 50]
    assert response.product.amount_available == 2


async def test_insufficient_funds_changes_nothing(container, register, product):
    poor = await register("buyer02", "Buyer", deposit=5)

    with pytest.raises(VendingError) as exc_info:
        await container.purchase_service.create_purchase(
            product.id, PurchaseRequest(user_id=poor.user.id, quantity=1)
        )

    assert exc_info.value.kind == ErrorKind.INSUFFICIENT_FUNDS
    assert exc_info.value.status_code == 402
    assert await _purchase_rows(container) == []
    assert (await container.product_service.find_product_by_id(product.id)).amount_available == 5
    assert (await container.user_service.find_user_by_id(poor.user.id)).deposit_value == 5


async def test_out_of_stock_changes_nothing(container, buyer, product):
    await container.product_service.update_product(product.id, ProductUpdate(amount_available=0))

    with pytest.raises(VendingError) as exc_info:
        await container.purchase_service.create_purchase(
            product.id, PurchaseRequest(user_id=buyer.user.id, quantity=1)
        )

    assert exc_info.value.kind == ErrorKind.OUT_OF_STOCK
    assert exc_info.value.status_code == 409
    assert await _purchase_rows(container) == []
    assert (await container.user_service.find_user_by_id(buyer.user.id)).deposit_value == 100


async def test_quantity_above_stock_is_out_of_stock(container, buyer, product):
    with pytest.raises(VendingError) as exc_info:
        await container.purchase_service.create_purchase(
            product.id, PurchaseRequest(user_id=buyer.user.id, quantity=6)
        )

    assert exc_info.value.kind == ErrorKind.OUT_OF_STOCK


@pytest.mark.parametrize("quantity", [0, -1, None])
async def test_invalid_quantity_rejected_before_lookup(container, buyer, product, quantity):
    service = container.purchase_service
    with patch.object(service.user_service, "find_user_by_id", new=AsyncMock()) as find_user, \
            patch.object(service.product_service, "find_product_by_id", new=AsyncMock()) as find_product:
        with pytest.raises(VendingError) as exc_info:
            await service.create_purchase(product.id, PurchaseRequest(user_id=buyer.user.id, quantity=quantity))

    assert exc_info.value.kind == ErrorKind.VALIDATION
    find_user.assert_not_called()
    find_product.assert_not_called()


async def test_missing_user_id_rejected(container, product):
    with pytest.raises(VendingError) as exc_info:
        await container.purchase_service.create_purchase(product.id, PurchaseRequest(quantity=1))

    assert exc_info.value.kind == ErrorKind.VALIDATION


async def test_unknown_product_or_buyer(container, buyer, product):
    with pytest.raises(VendingError) as exc_info:
        await container.purchase_service.create_purchase(
            "missing", PurchaseRequest(user_id=buyer.user.id, quantity=1)
        )
    assert exc_info.value.kind == ErrorKind.NOT_FOUND

    with pytest.raises(VendingError) as exc_info:
        await container.purchase_service.create_purchase(
            product.id, PurchaseRequest(user_id="missing", quantity=1)
        )
    assert exc_info.value.kind == ErrorKind.NOT_FOUND


async def test_unmakeable_change_stays_in_deposit(container, register, product):
    """With only 50 and 100 cent coins the 90 cents owed cannot be paid out."""
    service = PurchaseService(
        container.database,
        container.purchase_repository,
        container.user_service,
        container.product_service,
        denominations=(50, 100),
    )
    buyer = await register("buyer03", "Buyer", deposit=100)

    response = await service.create_purchase(product.id, PurchaseRequest(user_id=buyer.user.id, quantity=1))

    assert response.change.value == []
    stored_buyer = await container.user_service.find_user_by_id(buyer.user.id)
    assert stored_buyer.deposit_value == 90
    assert (await container.product_service.find_product_by_id(product.id)).amount_available == 4


async def test_failed_stock_write_rolls_back_everything(container, buyer, product):
    service = container.purchase_service
    failing = AsyncMock(side_effect=concurrent_modification_error("Product was modified concurrently"))

    with patch.object(service.product_service, "update_product", new=failing):
        with pytest.raises(VendingError) as exc_info:
            await service.create_purchase(product.id, PurchaseRequest(user_id=buyer.user.id, quantity=1))

    assert exc_info.value.kind == ErrorKind.INTERNAL
    assert exc_info.value.status_code == 500
    assert await _purchase_rows(container) == []
    assert (await container.user_service.find_user_by_id(buyer.user.id)).deposit_value == 100
    assert (await container.product_service.find_product_by_id(product.id)).amount_available == 5


async def test_stale_buyer_snapshot_aborts_purchase(container, buyer, product):
    """A deposit landing between the snapshot and the write aborts the purchase."""
    service = container.purchase_service
    snapshot = await container.user_service.find_user_by_id(buyer.user.id)
    await container.user_service.make_deposit(buyer.user.id, Amount(value=5))

    with patch.object(service.user_service, "find_user_by_id", new=AsyncMock(return_value=snapshot)):
        with pytest.raises(VendingError) as exc_info:
            await service.create_purchase(product.id, PurchaseRequest(user_id=buyer.user.id, quantity=1))

    assert exc_info.value.kind == ErrorKind.INTERNAL
    assert await _purchase_rows(container) == []
    assert (await container.user_service.find_user_by_id(buyer.user.id)).deposit_value == 105
    assert (await container.product_service.find_product_by_id(product.id)).amount_available == 5


async def test_get_purchases_filters(container, buyer, product):
    await container.purchase_service.create_purchase(product.id, PurchaseRequest(user_id=buyer.user.id, quantity=1))

    items, total, _ = await container.purchase_service.get_purchases(PurchaseFilter(user_id=buyer.user.id))
    assert total == 1
    assert isinstance(items[0], Purchase)

    items, total, _ = await container.purchase_service.get_purchases(PurchaseFilter(user_id="someone-else"))
    assert total == 0
    assert items == []


async def test_product_in_other_currency_is_rejected(container, seller, buyer):
    """A USD deposit never pays for a EUR price."""
    euro_product = await container.product_service.create_product(
        ProductCreate(
            product_name="Espresso",
            amount_available=5,
            cost=Amount(value=10, currency="EUR"),
            seller_id=seller.user.id,
        )
    )

    with pytest.raises(VendingError) as exc_info:
        await container.purchase_service.create_purchase(
            euro_product.id, PurchaseRequest(user_id=buyer.user.id, quantity=1)
        )

    assert exc_info.value.kind == ErrorKind.VALIDATION
    assert await _purchase_rows(container) == []
    assert (await container.user_service.find_user_by_id(buyer.user.id)).deposit_value == 100
    assert (await container.product_service.find_product_by_id(euro_product.id)).amount_available == 5
