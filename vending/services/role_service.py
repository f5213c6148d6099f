from typing import Dict, Iterable, List, Optional
import logging

from vending.errors import duplicate_error, validation_error
from vending.models.role import Privilege, Role
from vending.repositories.crud import CrudRepository

logger = logging.getLogger(__name__)


class RoleService:
    """Reference data for Buyer, Seller and Admin roles."""

    def __init__(self, role_repository: CrudRepository[Role]):
        self.roles = role_repository

    async def create_role(self, name: str, privileges: Iterable[Privilege], is_admin: bool = False) -> Role:
        logger.info(f"Creating role {name}")
        privileges = [Privilege(p).value for p in privileges or []]
        if not name or not privileges:
            raise validation_error("Invalid role data")

        if await self.roles.find_one_by(name=name):
            raise duplicate_error(f"Role {name} already exists")

        return await self.roles.create(Role(name=name, privileges=privileges, is_admin=is_admin))

    async def find_role_by_id(self, role_id: str) -> Optional[Role]:
        return await self.roles.find_by_id(role_id)

    async def find_role_by_name(self, name: str) -> Optional[Role]:
        """Role lookup by exact name; blank names match nothing."""
        if not name:
            return None
        return await self.roles.find_one_by(name=name)

    async def get_roles(self) -> List[Role]:
        return await self.roles.find_all()

    async def create_roles(self, definitions: Iterable[Dict]) -> List[Role]:
        """Create several roles; each definition holds the keyword arguments of ``create_role``."""
        return [await self.create_role(**definition) for definition in definitions]
