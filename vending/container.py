import logging

from vending.config import Settings
from vending.database import Database
from vending.models.access import AccessClient, AccessToken
from vending.models.product import Product
from vending.models.purchase import Purchase
from vending.models.role import Role
from vending.models.user import User
from vending.repositories.crud import CrudRepository
from vending.services.access_client_service import AccessClientService
from vending.services.authorization_service import AuthorizationService
from vending.services.product_service import ProductService
from vending.services.purchase_service import PurchaseService
from vending.services.role_service import RoleService
from vending.services.startup_service import StartupService
from vending.services.token_service import TokenService
from vending.services.user_service import UserService
from vending.utils.cache import CacheService
from vending.utils.security import PasswordHasher

logger = logging.getLogger(__name__)


class Container:
    """
    Composition root.

    Builds infrastructure, then repositories, then services, handing each
    layer its collaborators explicitly.
    """

    def __init__(self, settings: Settings, database: Database = None, cache: CacheService = None):
        self.settings = settings
        self.database = database or Database.from_settings(settings)
        self.cache = cache or CacheService.from_settings(settings)
        self.hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)

        self.role_repository = CrudRepository(self.database, Role)
        self.client_repository = CrudRepository(self.database, AccessClient)
        self.token_repository = CrudRepository(self.database, AccessToken)
        self.user_repository = CrudRepository(self.database, User)
        self.product_repository = CrudRepository(self.database, Product)
        self.purchase_repository = CrudRepository(self.database, Purchase)

        self.role_service = RoleService(self.role_repository)
        self.access_client_service = AccessClientService(self.client_repository, self.hasher)
        self.user_service = UserService(
            self.user_repository,
            self.role_service,
            self.access_client_service,
            self.hasher,
            default_currency=settings.DEFAULT_CURRENCY,
            default_unit=settings.DEFAULT_UNIT,
        )
        self.product_service = ProductService(self.product_repository, self.user_service)
        self.purchase_service = PurchaseService(
            self.database,
            self.purchase_repository,
            self.user_service,
            self.product_service,
        )
        self.token_service = TokenService(
            self.token_repository,
            self.access_client_service,
            self.user_service,
            self.role_service,
            self.cache,
            access_token_ttl=settings.ACCESS_TOKEN_TTL,
            refresh_token_ttl=settings.REFRESH_TOKEN_TTL,
        )
        self.authorization_service = AuthorizationService(
            self.token_service,
            self.access_client_service,
            self.user_service,
            self.role_service,
            self.product_service,
        )
        self.startup_service = StartupService(
            settings,
            self.role_service,
            self.access_client_service,
            self.user_service,
        )

    async def startup(self) -> None:
        """Create tables and seed reference data."""
        # Registers every model on Base.metadata before create_all.
        import vending.models.registry  # noqa: F401

        logger.info("Creating database tables...")
        await self.database.create_all()
        logger.info("Database tables created successfully")
        await self.startup_service.seed()

    async def shutdown(self) -> None:
        await self.cache.close()
        await self.database.dispose()
