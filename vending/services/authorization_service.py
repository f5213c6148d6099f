from dataclasses import dataclass
from typing import Optional, Tuple
import logging

from vending.errors import authentication_error, forbidden_error, not_found_error
from vending.schemas.auth import Caller
from vending.services.access_client_service import AccessClientService
from vending.services.product_service import ProductService
from vending.services.role_service import RoleService
from vending.services.token_service import TokenService
from vending.services.user_service import UserService

logger = logging.getLogger(__name__)

PRODUCT = "product"
USER = "user"


@dataclass(frozen=True)
class PermissionRequirement:
    """
    What a protected operation demands of its caller.

    Attributes:
        roles: Role names (lower case); the caller's scope must share one
        only_owner: The caller must own the resource being touched
        resource_kind: "product" or "user", required with only_owner
        resource_id: Identifier of the resource being touched
        read_only: Operation changes nothing; admins always pass
    """
    roles: Tuple[str, ...] = ()
    only_owner: bool = False
    resource_kind: Optional[str] = None
    resource_id: Optional[str] = None
    read_only: bool = False


class AuthorizationService:
    """
    Decides whether a caller may perform an operation.

    Token -> user -> role resolution happens on every call; nothing about
    the caller is remembered between requests except the cached token.
    """

    def __init__(
        self,
        token_service: TokenService,
        access_client_service: AccessClientService,
        user_service: UserService,
        role_service: RoleService,
        product_service: ProductService,
    ):
        self.token_service = token_service
        self.access_client_service = access_client_service
        self.user_service = user_service
        self.role_service = role_service
        self.product_service = product_service

    async def resolve_caller(self, token: Optional[str]) -> Caller:
        """
        Resolve a bearer token to the calling user.

        Raises:
            VendingError: AUTHENTICATION if the token, its client, its user
                or the user's role cannot be found, or the token expired
        """
        if not token:
            raise authentication_error("Unauthorized")

        info = await self.token_service.find_access_token(token)
        if info is None:
            logger.warning("Unknown or expired token presented")
            raise authentication_error("Unauthorized")

        client = await self.access_client_service.find_client_by_client_id(info.client_id)
        if client is None:
            logger.warning(f"Client {info.client_id} of token {info.id} not found")
            raise authentication_error("Unauthorized")

        user = await self.user_service.find_user_by_id(info.user_id)
        if user is None:
            logger.warning(f"User {info.user_id} of token {info.id} not found")
            raise authentication_error("Unauthorized")

        role = await self.role_service.find_role_by_id(user.role_id)
        if role is None:
            raise authentication_error("Unauthorized")

        return Caller(
            user_id=user.id,
            username=user.username,
            role_name=role.name,
            scope=[s.lower() for s in info.scope],
            is_admin=bool(user.is_admin or role.is_admin),
        )

    async def authorize(self, caller: Caller, requirement: PermissionRequirement) -> bool:
        """
        Check ``caller`` against ``requirement``.

        Returns:
            True when permitted

        Raises:
            VendingError: FORBIDDEN when the caller lacks the role or does
                not own the resource; NOT_FOUND when an owned product does
                not exist
        """
        if caller.is_admin and requirement.read_only:
            return True

        if requirement.roles:
            wanted = {r.lower() for r in requirement.roles}
            if not wanted.intersection(caller.scope):
                logger.warning(f"User {caller.user_id} lacks roles {sorted(wanted)}")
                raise forbidden_error("Access forbidden")

        if requirement.only_owner:
            await self._check_ownership(caller, requirement)

        return True

    async def check_permission(self, token: Optional[str], requirement: PermissionRequirement) -> bool:
        caller = await self.resolve_caller(token)
        return await self.authorize(caller, requirement)

    async def _check_ownership(self, caller: Caller, requirement: PermissionRequirement) -> None:
        if requirement.resource_kind == PRODUCT:
            product = await self.product_service.find_product_by_id(requirement.resource_id)
            if product is None:
                logger.warning(f"Product {requirement.resource_id} not found")
                raise not_found_error("Product not found")
            if product.seller_id != caller.user_id:
                logger.warning(f"Unauthorized product access: {requirement.resource_id} by {caller.user_id}")
                raise forbidden_error("Forbidden")
            return

        if requirement.resource_kind == USER:
            if requirement.resource_id != caller.user_id:
                logger.warning(f"Unauthorized user access: {requirement.resource_id} by {caller.user_id}")
                raise forbidden_error("Forbidden")
            return

        raise forbidden_error("Forbidden")
