from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Sequence, Tuple
import asyncio
import logging

from vending.database import Database
from vending.errors import (
    ErrorKind,
    VendingError,
    insufficient_funds_error,
    internal_error,
    not_found_error,
    out_of_stock_error,
    validation_error,
)
from vending.models.product import Product
from vending.models.purchase import Purchase, PurchaseStatus
from vending.models.user import User
from vending.repositories.crud import CrudRepository
from vending.schemas.product import ProductResponse, ProductUpdate
from vending.schemas.purchase import PurchaseFilter, PurchaseRequest, PurchaseResponse
from vending.services.product_service import ProductService
from vending.services.user_service import UserService
from vending.utils.money import (
    ALLOWED_DENOMINATIONS,
    Amount,
    CompositeAmount,
    UnmakeableChangeError,
    make_change,
)

logger = logging.getLogger(__name__)


class PurchaseService:
    """
    Purchase transaction engine.

    CONSISTENCY STRATEGY:
    =====================
    Funds and stock are checked against a snapshot of the buyer and the
    product read before the transaction starts. The transaction then:

    1. Inserts the purchase as PENDING
    2. Computes the change owed to the buyer
    3. Writes the buyer's new deposit (compare-and-swap on the snapshot version)
    4. Writes the product's new stock (compare-and-swap on the snapshot version)
    5. Marks the purchase COMPLETED (compare-and-swap on its own version)

    If any write fails the whole transaction rolls back, including the
    PENDING row, and the caller sees a single INTERNAL error. Losing a race
    against another purchase of the same product or by the same buyer
    therefore aborts the purchase instead of overwriting the winner.

    No authorization happens here; callers are expected to have checked
    the buyer's permissions already.
    """

    def __init__(
        self,
        database: Database,
        purchase_repository: CrudRepository[Purchase],
        user_service: UserService,
        product_service: ProductService,
        denominations: Sequence[int] = ALLOWED_DENOMINATIONS,
    ):
        self.database = database
        self.purchases = purchase_repository
        self.user_service = user_service
        self.product_service = product_service
        self.denominations = tuple(denominations)

    async def create_purchase(self, product_id: str, request: PurchaseRequest) -> PurchaseResponse:
        """
        Buy ``request.quantity`` units of a product with the buyer's deposit.

        Raises:
            VendingError: VALIDATION for missing ids or a non-positive
                quantity (before any lookup) or a product priced in another
                currency than the deposit, NOT_FOUND for an unknown
                buyer or product, OUT_OF_STOCK, INSUFFICIENT_FUNDS, or
                INTERNAL if the transaction had to be rolled back
        """
        logger.debug(f"Creating purchase of product {product_id}: {request}")
        user_id = request.user_id
        quantity = request.quantity

        if not user_id or not product_id:
            raise validation_error("Invalid purchase data")
        if quantity is None or quantity <= 0:
            raise validation_error("Invalid quantity. Must be greater than 0")

        user, product = await asyncio.gather(
            self.user_service.find_user_by_id(user_id),
            self.product_service.find_product_by_id(product_id),
        )
        if user is None:
            raise not_found_error("User not found")
        if product is None:
            raise not_found_error("Product not found")

        if product.cost_currency != user.deposit_currency:
            raise validation_error(
                f"Invalid product currency. Expected {user.deposit_currency}, got {product.cost_currency}"
            )

        if product.amount_available < quantity:
            raise out_of_stock_error("Out of stock")

        total_spent = product.cost_value * quantity
        if user.deposit_value < total_spent:
            raise insufficient_funds_error("Insufficient funds")

        async def execute(session: AsyncSession) -> PurchaseResponse:
            return await self._execute(session, user, product, quantity, total_spent)

        return await self.database.run_in_transaction(execute)

    async def _execute(
        self,
        session: AsyncSession,
        user: User,
        product: Product,
        quantity: int,
        total_spent: int,
    ) -> PurchaseResponse:
        purchase = await self.purchases.create(
            Purchase(
                product_id=product.id,
                buyer_id=user.id,
                seller_id=product.seller_id,
                quantity=quantity,
                amount_value=total_spent,
                amount_currency=product.cost_currency,
                amount_unit=product.cost_unit,
                status=PurchaseStatus.PENDING,
            ),
            session=session,
        )
        logger.info(f"Purchase {purchase.id} created as PENDING")

        change_list, leftover = self._dispense_change(user.deposit_value - total_spent)
        remaining_stock = product.amount_available - quantity

        try:
            await self.user_service.update_deposit(
                user.id,
                Amount(value=leftover, currency=user.deposit_currency, unit=user.deposit_unit),
                session=session,
                expected_version=user.version,
            )
            logger.info(f"Purchase {purchase.id}: buyer {user.id} deposit set to {leftover}")

            await self.product_service.update_product(
                product.id,
                ProductUpdate(amount_available=remaining_stock, version=product.version),
                session=session,
            )
            logger.info(f"Purchase {purchase.id}: product {product.id} stock set to {remaining_stock}")
        except VendingError as e:
            if e.kind in (ErrorKind.CONCURRENT_MODIFICATION, ErrorKind.NOT_FOUND):
                logger.warning(f"Purchase {purchase.id} aborted: {e.message}")
                raise internal_error("Failed to complete purchase") from e
            raise

        finalized = await self.purchases.update(
            purchase.id,
            {"status": PurchaseStatus.COMPLETED},
            version=purchase.version,
            session=session,
        )
        if not finalized:
            logger.warning(f"Purchase {purchase.id} aborted: could not be finalized")
            raise internal_error("Failed to finalize purchase")

        logger.info(f"Purchase {purchase.id} completed")

        product_snapshot = ProductResponse.model_validate(product).model_copy(
            update={"amount_available": remaining_stock}
        )
        return PurchaseResponse(
            id=purchase.id,
            buyer_id=purchase.buyer_id,
            total_spent=purchase.amount,
            change=CompositeAmount(
                value=change_list,
                currency=user.deposit_currency,
                unit=user.deposit_unit,
            ),
            product=product_snapshot,
            date_created=purchase.date_created,
        )

    def _dispense_change(self, change: int) -> Tuple[List[int], int]:
        """
        Pay ``change`` out in coins.

        Returns:
            Tuple of (coins handed out, value left in the buyer's deposit).
            When the change cannot be paid exactly, no coins are handed out
            and the whole change stays in the deposit.
        """
        try:
            return make_change(self.denominations, change), 0
        except UnmakeableChangeError as e:
            logger.error(f"Failed to make change, buyer keeps {change} in deposit: {e}")
            return [], change

    async def get_purchases(
        self,
        purchase_filter: Optional[PurchaseFilter] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Tuple[List[Purchase], int, int]:
        """
        Get paginated list of purchases, newest first.

        Returns:
            Tuple of (purchases list, total count, total pages)
        """
        purchase_filter = purchase_filter or PurchaseFilter()
        return await self.purchases.find_page(
            page,
            page_size,
            product_id=purchase_filter.product_id,
            buyer_id=purchase_filter.user_id,
            seller_id=purchase_filter.seller_id,
            status=purchase_filter.status,
        )

    async def find_purchase_by_id(self, purchase_id: str) -> Optional[Purchase]:
        return await self.purchases.find_by_id(purchase_id)
