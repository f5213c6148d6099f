from fastapi import APIRouter, Depends, Query, status
from typing import Optional

from vending.api.deps import get_container, require_permissions
from vending.container import Container
from vending.errors import forbidden_error, not_found_error
from vending.schemas.auth import Caller
from vending.schemas.common import MessageResponse
from vending.schemas.product import (
    ProductCreate,
    ProductUpdate,
    ProductResponse,
    ProductListResponse,
)
from vending.schemas.purchase import (
    PurchaseFilter,
    PurchaseListResponse,
    PurchaseRecord,
    PurchaseRequest,
    PurchaseResponse,
)

router = APIRouter(prefix="/products", tags=["Products"])


@router.post(
    "/",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new product",
    description="List a new product for a seller. The seller defaults to the caller."
)
async def create_product(
    product_data: ProductCreate,
    caller: Caller = Depends(require_permissions(["seller"])),
    container: Container = Depends(get_container)
):
    """
    Create a new product.

    - **productName**: Product name, unique per seller (required)
    - **cost**: Unit cost, a positive multiple of 5 (required)
    - **amountAvailable**: Initial stock, must be non-negative (required)
    """
    if product_data.seller_id is None:
        product_data = product_data.model_copy(update={"seller_id": caller.user_id})
    elif product_data.seller_id != caller.user_id:
        raise forbidden_error("Products can only be listed for yourself")

    return await container.product_service.create_product(product_data)


@router.get(
    "/",
    response_model=ProductListResponse,
    summary="List all products",
    description="Get a paginated list of all products with optional search."
)
async def list_products(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by product name"),
    seller_id: Optional[str] = Query(None, alias="sellerId", description="Only this seller's products"),
    caller: Caller = Depends(require_permissions()),
    container: Container = Depends(get_container)
):
    """Get paginated list of products."""
    products, total, total_pages = await container.product_service.get_page(
        page, page_size, search, seller_id
    )

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product by ID",
    description="Get detailed information about a specific product."
)
async def get_product(
    product_id: str,
    caller: Caller = Depends(require_permissions()),
    container: Container = Depends(get_container)
):
    """Get a product by ID. Stock is always read fresh from the database."""
    product = await container.product_service.find_product_by_id(product_id)

    if not product:
        raise not_found_error("Product not found")

    return product


@router.put(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update a product",
    description="Update product details. Only provided fields will be updated."
)
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    caller: Caller = Depends(require_permissions(["seller"], only_owner=True, entity_name="product")),
    container: Container = Depends(get_container)
):
    """
    Update a product.

    Partial updates are supported - only include fields you want to change.
    Send the **version** you last read to make the update fail instead of
    overwriting a newer change.
    """
    return await container.product_service.update_product(product_id, product_data)


@router.delete(
    "/{product_id}",
    response_model=MessageResponse,
    summary="Delete a product",
    description="Delete a product by ID."
)
async def delete_product(
    product_id: str,
    caller: Caller = Depends(require_permissions(["seller"], only_owner=True, entity_name="product")),
    container: Container = Depends(get_container)
):
    """Delete a product."""
    deleted = await container.product_service.delete_product(product_id)
    return MessageResponse(success=deleted, data="Deleted" if deleted else "Failed")


@router.post(
    "/{product_id}/buy",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Buy a product",
    description="""
    Buy a product with the caller's deposit.

    **Consistency:**
    The buyer's deposit, the product's stock and the purchase record are
    written in one transaction with optimistic version checks. A purchase
    that loses a race against a concurrent one is rolled back and reported
    as a 500 error; nothing is partially applied.

    Change is returned as the fewest possible coins of 5, 10, 20, 50 and 100.
    """
)
async def buy_product(
    product_id: str,
    purchase_data: PurchaseRequest,
    caller: Caller = Depends(require_permissions(["buyer"])),
    container: Container = Depends(get_container)
):
    """
    Buy a product.

    - **userId**: Buyer, defaults to the caller (optional)
    - **quantity**: Number of items to buy, must be greater than 0 (required)
    """
    if purchase_data.user_id is None:
        purchase_data = purchase_data.model_copy(update={"user_id": caller.user_id})
    elif purchase_data.user_id != caller.user_id:
        raise forbidden_error("You can only buy with your own deposit")

    return await container.purchase_service.create_purchase(product_id, purchase_data)


@router.get(
    "/{product_id}/purchases",
    response_model=PurchaseListResponse,
    summary="List purchases of a product",
    description="Purchases of one product, visible to the seller who owns it."
)
async def list_product_purchases(
    product_id: str,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    caller: Caller = Depends(require_permissions(["seller"], only_owner=True, entity_name="product")),
    container: Container = Depends(get_container)
):
    """Get paginated list of purchases for a product."""
    purchases, total, total_pages = await container.purchase_service.get_purchases(
        PurchaseFilter(product_id=product_id), page, page_size
    )

    return PurchaseListResponse(
        items=[PurchaseRecord.model_validate(p) for p in purchases],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )
