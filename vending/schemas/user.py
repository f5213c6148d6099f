from pydantic import Field
from datetime import datetime
from typing import Optional

from vending.schemas.common import CamelModel
from vending.utils.money import Amount


class UserCreate(CamelModel):
    """Schema for registering a buyer, seller or admin."""
    username: Optional[str] = None
    password: Optional[str] = None
    deposit: Optional[Amount] = Field(None, description="Initial coin, buyers only")
    role: Optional[str] = Field(None, description="Role name, e.g. Buyer")
    machine: Optional[str] = Field(None, description="Name of the issuing vending machine")


class UserResponse(CamelModel):
    """Public view of a user; the password hash is never exposed."""
    id: str
    machine_id: Optional[str] = None
    username: str
    deposit: Amount
    role_id: str
    is_admin: bool = False
    date_created: datetime
    date_updated: Optional[datetime] = None


class DepositRequest(CamelModel):
    amount: Optional[Amount] = None


class DepositResponse(CamelModel):
    deposit: Amount


class RoleChangeRequest(CamelModel):
    role: Optional[str] = None


class PasswordChangeRequest(CamelModel):
    password: Optional[str] = None
