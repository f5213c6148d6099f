from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional, Tuple
import logging

from vending.errors import (
    concurrent_modification_error,
    duplicate_error,
    not_found_error,
    validation_error,
)
from vending.models.product import Product
from vending.repositories.crud import CrudRepository
from vending.schemas.product import ProductCreate, ProductUpdate
from vending.services.user_service import UserService
from vending.utils.money import Amount, SMALLEST_DENOMINATION, is_valid_cost

logger = logging.getLogger(__name__)


class ProductService:
    """
    Service class for Product operations.

    This service handles:
    - Creating products for an existing seller
    - Reading products (never cached, stock changes with every purchase)
    - Optimistic updates
    - Deleting products
    """

    def __init__(self, product_repository: CrudRepository[Product], user_service: UserService):
        self.products = product_repository
        self.user_service = user_service

    async def create_product(self, request: ProductCreate) -> Product:
        """
        Create a new product.

        Args:
            request: Product creation data

        Returns:
            Created product instance

        Raises:
            VendingError: VALIDATION for malformed fields, NOT_FOUND if the
                seller does not exist, DUPLICATE if the seller already
                lists a product with this name
        """
        logger.info(f"Creating product {request.product_name!r} for seller {request.seller_id}")

        if not request.product_name or not request.product_name.strip() or not request.seller_id:
            raise validation_error("Invalid product data")
        if request.amount_available is None or request.amount_available < 0:
            raise validation_error("Invalid amount available. Must be 0 or more")
        self._check_cost(request.cost)

        if await self.user_service.find_user_by_id(request.seller_id) is None:
            raise not_found_error("Seller not found")

        product_name = request.product_name.strip()
        if await self.find_one_by(product_name=product_name, seller_id=request.seller_id):
            raise duplicate_error("Product already exists")

        product = Product(
            product_name=product_name,
            product_description=request.product_description,
            amount_available=request.amount_available,
            cost_value=request.cost.value,
            cost_currency=request.cost.currency,
            cost_unit=request.cost.unit,
            seller_id=request.seller_id,
        )
        return await self.products.create(product)

    async def find_product_by_id(self, product_id: str, session: Optional[AsyncSession] = None) -> Optional[Product]:
        return await self.products.find_by_id(product_id, session=session)

    async def find_all_products(self, seller_id: Optional[str] = None) -> List[Product]:
        return await self.products.find_all(seller_id=seller_id)

    async def find_one_by(self, **filters) -> Optional[Product]:
        return await self.products.find_one_by(**filters)

    async def get_page(
        self,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        seller_id: Optional[str] = None,
    ) -> Tuple[List[Product], int, int]:
        """
        Get paginated list of products.

        Args:
            page: Page number (1-indexed)
            page_size: Number of items per page
            search: Optional search term for product name
            seller_id: Only products of this seller

        Returns:
            Tuple of (products list, total count, total pages)
        """
        return await self.products.find_page(
            page,
            page_size,
            search_field="product_name",
            search=search,
            seller_id=seller_id,
        )

    async def update_product(
        self,
        product_id: str,
        request: ProductUpdate,
        session: Optional[AsyncSession] = None,
    ) -> Product:
        """
        Update an existing product.

        Only fields present in ``request`` change. The write is a
        compare-and-swap on the version the client sent, or on the version
        just read when it sent none.

        Returns:
            The product as stored after the update

        Raises:
            VendingError: NOT_FOUND, VALIDATION (including any attempt to
                move the product to another seller), DUPLICATE on a name
                clash, CONCURRENT_MODIFICATION if the version moved on
        """
        changes = request.model_dump(exclude_unset=True)
        expected_version = changes.pop("version", None)
        seller_id = changes.pop("seller_id", None)

        if "product_name" in changes:
            name = changes["product_name"]
            if not name or not name.strip():
                raise validation_error("Product name cannot be empty")
            changes["product_name"] = name.strip()
        if "cost" in changes:
            self._check_cost(request.cost)
        if "amount_available" in changes:
            amount = changes["amount_available"]
            if amount is None or amount < 0:
                raise validation_error("Invalid amount available. Must be 0 or more")

        product = await self._get_expected_product(product_id, session=session)

        if seller_id and seller_id != product.seller_id:
            raise validation_error(
                "You cannot change the seller of a product. Please delete and create a new product."
            )

        if "product_name" in changes and changes["product_name"] != product.product_name:
            clash = await self.products.find_one_by(
                session=session,
                product_name=changes["product_name"],
                seller_id=product.seller_id,
            )
            if clash is not None:
                raise duplicate_error("Product already exists")

        values = self._to_columns(changes, request.cost)
        if not values:
            return product

        version = expected_version if expected_version is not None else product.version
        updated = await self.products.update(product_id, values, version=version, session=session)
        if not updated:
            logger.warning(f"Optimistic update of product {product_id} at version {version} rejected")
            raise concurrent_modification_error("Product was modified concurrently")

        return await self._get_expected_product(product_id, session=session)

    async def delete_product(self, product_id: str) -> bool:
        """
        Delete a product.

        Raises:
            VendingError: NOT_FOUND if the product does not exist
        """
        await self._get_expected_product(product_id)
        deleted = await self.products.remove(product_id)
        if deleted:
            logger.info(f"Product {product_id} deleted")
        return deleted

    async def _get_expected_product(self, product_id: str, session: Optional[AsyncSession] = None) -> Product:
        product = await self.products.find_by_id(product_id, session=session)
        if product is None:
            raise not_found_error("Product not found")
        return product

    @staticmethod
    def _check_cost(cost: Optional[Amount]) -> None:
        if cost is None or not is_valid_cost(cost.value):
            raise validation_error(f"Invalid cost. Only positive multiples of {SMALLEST_DENOMINATION} are allowed")

    @staticmethod
    def _to_columns(changes: Dict[str, Any], cost: Optional[Amount]) -> Dict[str, Any]:
        values = {
            field: changes[field]
            for field in ("product_name", "product_description", "amount_available")
            if field in changes
        }
        if "cost" in changes:
            values.update(
                cost_value=cost.value,
                cost_currency=cost.currency,
                cost_unit=cost.unit,
            )
        return values
