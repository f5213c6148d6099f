from pydantic import Field
from datetime import datetime
from typing import Optional

from vending.models.purchase import PurchaseStatus
from vending.schemas.common import CamelModel
from vending.schemas.product import ProductResponse
from vending.utils.money import Amount, CompositeAmount


class PurchaseRequest(CamelModel):
    """Schema for buying a product."""
    user_id: Optional[str] = Field(None, description="Buyer, defaults to the caller")
    quantity: Optional[int] = Field(None, description="Units to buy, must be greater than 0")


class PurchaseResponse(CamelModel):
    """Result of a completed purchase."""
    id: str
    buyer_id: str
    total_spent: Amount
    change: CompositeAmount
    product: ProductResponse
    date_created: datetime


class PurchaseRecord(CamelModel):
    """Schema for a purchase ledger entry."""
    id: str
    product_id: str
    buyer_id: str
    seller_id: str
    quantity: int
    amount: Amount
    status: PurchaseStatus
    date_created: datetime
    date_updated: Optional[datetime] = None


class PurchaseFilter(CamelModel):
    """Optional filters for listing purchases."""
    product_id: Optional[str] = None
    user_id: Optional[str] = None
    seller_id: Optional[str] = None
    status: Optional[PurchaseStatus] = None


class PurchaseListResponse(CamelModel):
    """Schema for paginated purchase list response."""
    items: list[PurchaseRecord]
    total: int
    page: int
    page_size: int
    total_pages: int
