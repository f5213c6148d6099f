from fastapi import APIRouter, Depends
from typing import List

from vending.api.deps import get_container, require_permissions
from vending.container import Container
from vending.schemas.auth import Caller
from vending.schemas.role import RoleResponse

router = APIRouter(prefix="/roles", tags=["Roles"])


@router.get(
    "/",
    response_model=List[RoleResponse],
    summary="List roles",
    description="Roles seeded at startup. Admins only."
)
async def list_roles(
    caller: Caller = Depends(require_permissions(["admin"], read_only=True)),
    container: Container = Depends(get_container)
):
    return await container.role_service.get_roles()
