from fastapi import APIRouter, Depends, status
from typing import List

from vending.api.deps import get_container, require_permissions
from vending.container import Container
from vending.errors import not_found_error, validation_error
from vending.schemas.auth import Caller
from vending.schemas.common import MessageResponse
from vending.schemas.user import (
    DepositRequest,
    DepositResponse,
    PasswordChangeRequest,
    RoleChangeRequest,
    UserCreate,
    UserResponse,
)

router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a buyer or seller",
    description="Open registration. Buyers may insert one coin as their initial deposit."
)
async def create_user(
    user_data: UserCreate,
    container: Container = Depends(get_container)
):
    """
    Register a user.

    - **username**: 5-20 characters, unique (required)
    - **password**: at least 6 characters (required)
    - **role**: Buyer or Seller (required)
    - **machine**: Name of the vending machine (required)
    - **deposit**: One coin of 5, 10, 20, 50 or 100, buyers only (optional)
    """
    return await container.user_service.create_user(user_data)


@router.post(
    "/admin",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an admin",
    description="Create another administrator. Only admins may call this."
)
async def create_admin(
    user_data: UserCreate,
    caller: Caller = Depends(require_permissions(["admin"])),
    container: Container = Depends(get_container)
):
    return await container.user_service.create_admin(user_data)


@router.get(
    "/",
    response_model=List[UserResponse],
    summary="List all users",
    description="All registered users. Admins only."
)
async def list_users(
    caller: Caller = Depends(require_permissions(["admin"], read_only=True)),
    container: Container = Depends(get_container)
):
    return await container.user_service.find_all()


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get user by ID",
    description="A user may read their own account; admins may read any."
)
async def get_user(
    user_id: str,
    caller: Caller = Depends(require_permissions(only_owner=True, entity_name="user", read_only=True)),
    container: Container = Depends(get_container)
):
    user = await container.user_service.find_user_by_id(user_id)
    if not user:
        raise not_found_error("User not found")
    return user


@router.post(
    "/{user_id}/deposits",
    response_model=DepositResponse,
    summary="Insert a coin",
    description="Add one coin (5, 10, 20, 50 or 100) to the buyer's deposit."
)
async def make_deposit(
    user_id: str,
    deposit_data: DepositRequest,
    caller: Caller = Depends(require_permissions(["buyer"], only_owner=True, entity_name="user")),
    container: Container = Depends(get_container)
):
    if deposit_data.amount is None:
        raise validation_error("Invalid deposit data")
    deposit = await container.user_service.make_deposit(user_id, deposit_data.amount)
    return DepositResponse(deposit=deposit)


@router.post(
    "/{user_id}/deposits/reset",
    response_model=DepositResponse,
    summary="Reset deposit",
    description="Set the buyer's deposit back to zero."
)
async def reset_deposit(
    user_id: str,
    caller: Caller = Depends(require_permissions(["buyer"], only_owner=True, entity_name="user")),
    container: Container = Depends(get_container)
):
    deposit = await container.user_service.reset_deposit(user_id)
    return DepositResponse(deposit=deposit)


@router.patch(
    "/{user_id}/password",
    response_model=MessageResponse,
    summary="Change password"
)
async def change_password(
    user_id: str,
    password_data: PasswordChangeRequest,
    caller: Caller = Depends(require_permissions(only_owner=True, entity_name="user")),
    container: Container = Depends(get_container)
):
    changed = await container.user_service.change_password(user_id, password_data.password)
    return MessageResponse(success=changed, data="Password changed successfully")


@router.patch(
    "/{user_id}/roles",
    response_model=MessageResponse,
    summary="Change a user's role",
    description="Admins only."
)
async def update_role(
    user_id: str,
    role_data: RoleChangeRequest,
    caller: Caller = Depends(require_permissions(["admin"])),
    container: Container = Depends(get_container)
):
    updated = await container.user_service.update_role(user_id, role_data.role)
    return MessageResponse(success=updated, data="Role updated successfully")


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    summary="Delete a user",
    description="A user may delete their own account."
)
async def delete_user(
    user_id: str,
    caller: Caller = Depends(require_permissions(only_owner=True, entity_name="user")),
    container: Container = Depends(get_container)
):
    removed = await container.user_service.remove_user(user_id)
    return MessageResponse(success=removed, data="User deleted successfully" if removed else "Failed")
