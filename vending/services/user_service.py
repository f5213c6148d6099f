from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Tuple
import asyncio
import logging

from vending.errors import (
    concurrent_modification_error,
    duplicate_error,
    not_found_error,
    validation_error,
)
from vending.models.access import AccessClient
from vending.models.role import Role
from vending.models.user import User
from vending.repositories.crud import CrudRepository
from vending.schemas.user import UserCreate
from vending.services.access_client_service import AccessClientService
from vending.services.concurrency import run_with_retry
from vending.services.role_service import RoleService
from vending.utils.money import Amount, validate_deposit
from vending.utils.security import PasswordHasher

logger = logging.getLogger(__name__)

BUYER_ROLE = "buyer"
MAX_PASSWORD_BYTES = 72


class UserService:
    """
    Service class for buyer, seller and admin accounts.

    This service handles:
    - Registration of users and admins
    - Deposit accounting (one accepted coin at a time)
    - Role and password changes
    - Removal

    Every mutation is an optimistic write against the version read just
    before it, so two concurrent writers to the same user never clobber
    each other silently.
    """

    def __init__(
        self,
        user_repository: CrudRepository[User],
        role_service: RoleService,
        access_client_service: AccessClientService,
        hasher: PasswordHasher,
        default_currency: str = "USD",
        default_unit: str = "cent",
    ):
        self.users = user_repository
        self.role_service = role_service
        self.access_client_service = access_client_service
        self.hasher = hasher
        self.default_currency = default_currency
        self.default_unit = default_unit

    async def create_user(self, request: UserCreate) -> User:
        """
        Register a buyer or seller.

        Only buyers may bring an initial deposit, and it must be a single
        accepted coin.

        Raises:
            VendingError: VALIDATION for bad credentials, an admin role or
                a bad coin; NOT_FOUND for an unknown role or machine;
                DUPLICATE if the username is taken
        """
        client, role = await self._resolve_registration(request)

        if role.is_admin:
            raise validation_error("Invalid role for user")

        if await self.find_user_by_username(request.username):
            raise duplicate_error("User already exists")

        deposit = Amount(value=0, currency=self.default_currency, unit=self.default_unit)
        if role.name.lower() == BUYER_ROLE and request.deposit is not None:
            validate_deposit(request.deposit)
            deposit = request.deposit

        user = User(
            username=request.username.strip(),
            password=self.hasher.hash(request.password),
            deposit_value=deposit.value,
            deposit_currency=deposit.currency,
            deposit_unit=deposit.unit,
            role_id=role.id,
            machine_id=client.id,
            is_admin=False,
        )
        created = await self.users.create(user)
        logger.info(f"User {created.id} created with role {role.name}")
        return created

    async def create_admin(self, request: UserCreate) -> User:
        """Register an administrator; the role must be an admin role."""
        client, role = await self._resolve_registration(request)

        if not role.is_admin:
            raise validation_error("Invalid role for admin")

        if await self.find_user_by_username(request.username):
            raise duplicate_error("Admin user already exists")

        user = User(
            username=request.username.strip(),
            password=self.hasher.hash(request.password),
            deposit_value=0,
            deposit_currency=self.default_currency,
            deposit_unit=self.default_unit,
            role_id=role.id,
            machine_id=client.id,
            is_admin=True,
        )
        created = await self.users.create(user)
        logger.info(f"Admin user {created.id} created")
        return created

    async def find_user_by_id(self, user_id: str, session: Optional[AsyncSession] = None) -> Optional[User]:
        return await self.users.find_by_id(user_id, session=session)

    async def find_user_by_username(self, username: Optional[str]) -> Optional[User]:
        if not username or not username.strip():
            return None
        return await self.users.find_one_by(username=username.strip())

    async def find_user_by_credentials(self, username: str, password: str) -> Optional[User]:
        """Return the user only if the password matches its stored hash."""
        if not username or not password:
            return None
        user = await self.find_user_by_username(username)
        if user is None or not self.hasher.verify(password, user.password):
            return None
        return user

    async def find_all(self) -> List[User]:
        return await self.users.find_all()

    async def make_deposit(self, user_id: str, amount: Amount) -> Amount:
        """
        Add one coin to the user's deposit.

        Returns:
            The deposit after the coin was added
        """
        validate_deposit(amount)

        async def attempt() -> Amount:
            user = await self._get_expected_user(user_id)
            if amount.currency != user.deposit_currency:
                raise validation_error(f"Invalid deposit currency. Expected {user.deposit_currency}")

            new_value = user.deposit_value + amount.value
            updated = await self.users.update(user_id, {"deposit_value": new_value}, version=user.version)
            if not updated:
                raise concurrent_modification_error("Failed to make deposit")
            return Amount(value=new_value, currency=user.deposit_currency, unit=user.deposit_unit)

        deposit = await run_with_retry(attempt)
        logger.info(f"User {user_id} deposit is now {deposit.value}")
        return deposit

    async def reset_deposit(self, user_id: str) -> Amount:
        """Set the deposit to zero, keeping its currency and unit."""

        async def attempt() -> Amount:
            user = await self._get_expected_user(user_id)
            updated = await self.users.update(user_id, {"deposit_value": 0}, version=user.version)
            if not updated:
                raise concurrent_modification_error("Failed to reset deposit")
            return Amount(value=0, currency=user.deposit_currency, unit=user.deposit_unit)

        return await run_with_retry(attempt)

    async def update_deposit(
        self,
        user_id: str,
        deposit: Amount,
        session: Optional[AsyncSession] = None,
        expected_version: Optional[int] = None,
    ) -> bool:
        """
        Overwrite the deposit with ``deposit``.

        Used by the purchase engine inside its transaction. When
        ``expected_version`` is given the write only applies if the user is
        still at that version.

        Raises:
            VendingError: NOT_FOUND if the user is gone,
                CONCURRENT_MODIFICATION if the version moved on
        """
        user = await self._get_expected_user(user_id, session=session)
        version = expected_version if expected_version is not None else user.version
        updated = await self.users.update(
            user_id,
            {
                "deposit_value": deposit.value,
                "deposit_currency": deposit.currency,
                "deposit_unit": deposit.unit,
            },
            version=version,
            session=session,
        )
        if not updated:
            raise concurrent_modification_error("Failed to update user")
        return True

    async def update_role(self, user_id: str, role_name: str) -> bool:
        logger.info(f"Updating role of user {user_id} to {role_name}")
        if not user_id or not role_name:
            raise validation_error("Invalid user data")

        user, role = await asyncio.gather(
            self._get_expected_user(user_id),
            self.role_service.find_role_by_name(role_name),
        )
        if role is None:
            raise not_found_error("Role not found")

        updated = await self.users.update(
            user_id,
            {"role_id": role.id, "is_admin": bool(role.is_admin)},
            version=user.version,
        )
        if not updated:
            raise concurrent_modification_error("Failed to update role")
        return True

    async def change_password(self, user_id: str, password: str) -> bool:
        if not user_id or not password:
            raise validation_error("Invalid user data")
        self._check_password(password)

        user = await self._get_expected_user(user_id)
        updated = await self.users.update(
            user_id,
            {"password": self.hasher.hash(password)},
            version=user.version,
        )
        if not updated:
            raise concurrent_modification_error("Failed to change password")
        return True

    async def remove_user(self, user_id: str) -> bool:
        if not user_id:
            raise validation_error("Invalid userId")
        await self._get_expected_user(user_id)
        removed = await self.users.remove(user_id)
        if removed:
            logger.info(f"User {user_id} removed")
        return removed

    async def _resolve_registration(self, request: UserCreate) -> Tuple[AccessClient, Role]:
        if not all([request.username, request.password, request.role, request.machine]):
            raise validation_error("Invalid user data, cannot be serviced")

        self._check_username(request.username)
        self._check_password(request.password)

        client, role = await asyncio.gather(
            self.access_client_service.find_client_by_name(request.machine),
            self.role_service.find_role_by_name(request.role),
        )
        if client is None:
            raise not_found_error("Machine not found")
        if role is None:
            raise not_found_error("Role not found")
        return client, role

    async def _get_expected_user(self, user_id: str, session: Optional[AsyncSession] = None) -> User:
        user = await self.users.find_by_id(user_id, session=session)
        if user is None:
            raise not_found_error("User not found")
        return user

    @staticmethod
    def _check_username(username: str) -> None:
        if not 5 <= len(username.strip()) <= 20:
            raise validation_error("Invalid username or password length (username: 5-20, password: 6+)")

    @staticmethod
    def _check_password(password: str) -> None:
        if len(password.strip()) < 6:
            raise validation_error("Invalid username or password length (username: 5-20, password: 6+)")
        # bcrypt only hashes the first 72 bytes
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise validation_error(f"Password too long. At most {MAX_PASSWORD_BYTES} bytes are allowed")
