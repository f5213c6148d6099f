from typing import Callable, Optional, Sequence

from fastapi import Depends, Request

from vending.container import Container
from vending.schemas.auth import Caller
from vending.services.authorization_service import PermissionRequirement

# Path parameter carrying the resource id, per resource kind.
RESOURCE_PARAMS = {"product": "product_id", "user": "user_id"}


def get_container(request: Request) -> Container:
    """Dependency returning the composition root built at startup."""
    return request.app.state.container


def bearer_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_permissions(
    roles: Sequence[str] = (),
    only_owner: bool = False,
    entity_name: Optional[str] = None,
    read_only: bool = False,
) -> Callable:
    """
    Build a dependency that authenticates the caller and checks permissions.

    Example:
        @router.put("/{product_id}")
        async def update_product(
            caller: Caller = Depends(require_permissions(["seller"], only_owner=True, entity_name="product"))
        ):
            ...
    """

    async def dependency(request: Request, container: Container = Depends(get_container)) -> Caller:
        authorization = container.authorization_service
        caller = await authorization.resolve_caller(bearer_token(request))
        resource_id = request.path_params.get(RESOURCE_PARAMS.get(entity_name, ""))
        await authorization.authorize(
            caller,
            PermissionRequirement(
                roles=tuple(roles),
                only_owner=only_owner,
                resource_kind=entity_name,
                resource_id=resource_id,
                read_only=read_only,
            ),
        )
        return caller

    return dependency
