import logging
from typing import Dict, List

from vending.config import Settings
from vending.models.role import Privilege, Role
from vending.schemas.user import UserCreate
from vending.services.access_client_service import AccessClientService
from vending.services.role_service import RoleService
from vending.services.user_service import UserService

logger = logging.getLogger(__name__)

DEFAULT_ROLES: List[Dict] = [
    {
        "name": "Buyer",
        "privileges": [Privilege.VIEW_PRODUCT, Privilege.PURCHASE, Privilege.DEPOSIT],
        "is_admin": False,
    },
    {
        "name": "Seller",
        "privileges": [
            Privilege.VIEW_PRODUCT,
            Privilege.ADD_PRODUCT,
            Privilege.UPDATE_PRODUCT,
            Privilege.DELETE_PRODUCT,
        ],
        "is_admin": False,
    },
    {
        "name": "Admin",
        "privileges": [Privilege.ALL],
        "is_admin": True,
    },
]


class StartupService:
    """Seeds reference data; safe to run on every start."""

    def __init__(
        self,
        settings: Settings,
        role_service: RoleService,
        access_client_service: AccessClientService,
        user_service: UserService,
    ):
        self.settings = settings
        self.role_service = role_service
        self.access_client_service = access_client_service
        self.user_service = user_service

    async def seed(self) -> None:
        await self.create_default_roles()
        await self.create_default_client()
        await self.create_bootstrap_admin()
        logger.info("Startup seeding complete")

    async def create_default_roles(self) -> List[Role]:
        roles = []
        for definition in DEFAULT_ROLES:
            role = await self.role_service.find_role_by_name(definition["name"])
            if role is None:
                role = await self.role_service.create_role(**definition)
                logger.info(f"Default role {role.name} created")
            roles.append(role)
        return roles

    async def create_default_client(self) -> None:
        name = self.settings.DEFAULT_CLIENT_NAME
        if await self.access_client_service.find_client_by_name(name):
            logger.info(f"Default vending machine client {name} already exists")
            return
        await self.access_client_service.create_client(
            name=name,
            client_id=self.settings.DEFAULT_CLIENT_ID,
            client_secret=self.settings.DEFAULT_CLIENT_SECRET,
        )

    async def create_bootstrap_admin(self) -> None:
        username = self.settings.ADMIN_USERNAME
        if not username or not self.settings.ADMIN_PASSWORD:
            return
        if await self.user_service.find_user_by_username(username):
            return
        await self.user_service.create_admin(
            UserCreate(
                username=username,
                password=self.settings.ADMIN_PASSWORD,
                role="Admin",
                machine=self.settings.DEFAULT_CLIENT_NAME,
            )
        )
