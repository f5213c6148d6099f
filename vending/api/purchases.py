from fastapi import APIRouter, Depends, Query
from typing import Optional

from vending.api.deps import get_container, require_permissions
from vending.container import Container
from vending.errors import not_found_error
from vending.models.purchase import PurchaseStatus
from vending.schemas.auth import Caller
from vending.schemas.purchase import PurchaseFilter, PurchaseListResponse, PurchaseRecord

router = APIRouter(prefix="/purchases", tags=["Purchases"])


@router.get(
    "/",
    response_model=PurchaseListResponse,
    summary="List all purchases",
    description="Get a paginated list of purchases with optional filters. Admins only."
)
async def list_purchases(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(10, ge=1, le=100, description="Items per page"),
    product_id: Optional[str] = Query(None, alias="productId"),
    user_id: Optional[str] = Query(None, alias="userId", description="Buyer"),
    seller_id: Optional[str] = Query(None, alias="sellerId"),
    status: Optional[PurchaseStatus] = Query(None, description="Filter by purchase status"),
    caller: Caller = Depends(require_permissions(["admin"], read_only=True)),
    container: Container = Depends(get_container)
):
    """Get paginated list of purchases."""
    purchase_filter = PurchaseFilter(
        product_id=product_id,
        user_id=user_id,
        seller_id=seller_id,
        status=status,
    )
    purchases, total, total_pages = await container.purchase_service.get_purchases(
        purchase_filter, page, page_size
    )

    return PurchaseListResponse(
        items=[PurchaseRecord.model_validate(p) for p in purchases],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages
    )


@router.get(
    "/{purchase_id}",
    response_model=PurchaseRecord,
    summary="Get purchase by ID",
    description="Re-read a purchase, e.g. after a client-side timeout. Admins only."
)
async def get_purchase(
    purchase_id: str,
    caller: Caller = Depends(require_permissions(["admin"], read_only=True)),
    container: Container = Depends(get_container)
):
    purchase = await container.purchase_service.find_purchase_by_id(purchase_id)
    if not purchase:
        raise not_found_error("Purchase not found")
    return purchase
