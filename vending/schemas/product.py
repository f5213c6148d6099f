from pydantic import Field
from datetime import datetime
from typing import Optional

from vending.schemas.common import CamelModel
from vending.utils.money import Amount


class ProductCreate(CamelModel):
    """
    Schema for creating a new product.

    Business rules (non-empty name, cost a positive multiple of 5, seller
    exists) are enforced by the product service.
    """
    product_name: Optional[str] = Field(None, max_length=255, description="Product name")
    product_description: Optional[str] = Field(None, description="Free text description")
    amount_available: Optional[int] = Field(None, description="Initial stock")
    cost: Optional[Amount] = Field(None, description="Unit cost")
    seller_id: Optional[str] = Field(None, description="Owning seller, defaults to the caller")


class ProductUpdate(CamelModel):
    """Schema for updating an existing product. All fields are optional."""
    product_name: Optional[str] = Field(None, max_length=255, description="Product name")
    product_description: Optional[str] = None
    amount_available: Optional[int] = Field(None, description="Available stock")
    cost: Optional[Amount] = None
    seller_id: Optional[str] = Field(None, description="Must match the current seller if given")
    version: Optional[int] = Field(None, description="Version the client last read")


class ProductResponse(CamelModel):
    """Schema for product response including all fields."""
    id: str
    product_name: str
    product_description: Optional[str] = None
    amount_available: int
    cost: Amount
    seller_id: str
    version: int
    date_created: datetime
    date_updated: Optional[datetime] = None


class ProductListResponse(CamelModel):
    """Schema for paginated product list response."""
    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
