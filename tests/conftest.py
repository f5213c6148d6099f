from dataclasses import dataclass
from typing import Dict

import pytest
from httpx import ASGITransport, AsyncClient

from vending.config import Settings
from vending.container import Container
from vending.main import create_app
from vending.models.user import User
from vending.schemas.auth import TokenRequest
from vending.schemas.product import ProductCreate
from vending.schemas.user import UserCreate
from vending.utils.money import Amount

PASSWORD = "secret-pass"


@dataclass
class Account:
    """A registered user together with a bearer token."""
    user: User
    token: str

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest.fixture(scope="function")
def settings(tmp_path):
    """Settings for a fresh SQLite database file per test, Redis switched off."""
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite3'}",
        REDIS_URL="",
        BCRYPT_ROUNDS=4,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture(scope="function")
async def container(settings):
    """Container with tables created and reference data seeded."""
    container = Container(settings)
    await container.startup()

    yield container

    await container.database.drop_all()
    await container.shutdown()


@pytest.fixture(scope="function")
async def client(settings, container):
    """Create async test client bound to the test container."""
    app = create_app(settings, container=container)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as test_client:
        yield test_client


@pytest.fixture(scope="function")
def register(settings, container):
    """Factory registering a user through the services and issuing a token."""

    async def _register(username: str, role: str, deposit: int = None) -> Account:
        request = UserCreate(
            username=username,
            password=PASSWORD,
            role=role,
            machine=settings.DEFAULT_CLIENT_NAME,
            deposit=Amount(value=deposit) if deposit is not None else None,
        )
        if role == "Admin":
            user = await container.user_service.create_admin(request)
        else:
            user = await container.user_service.create_user(request)

        token = await container.token_service.issue_token(
            TokenRequest(
                grant_type="password",
                client_id=settings.DEFAULT_CLIENT_ID,
                client_secret=settings.DEFAULT_CLIENT_SECRET,
                username=username,
                password=PASSWORD,
            )
        )
        return Account(user=user, token=token.access_token)

    return _register


@pytest.fixture(scope="function")
async def seller(register):
    return await register("seller01", "Seller")


@pytest.fixture(scope="function")
async def buyer(register):
    """Buyer who inserted a single 100 cent coin."""
    return await register("buyer01", "Buyer", deposit=100)


@pytest.fixture(scope="function")
async def admin(register):
    return await register("admin01", "Admin")


@pytest.fixture(scope="function")
async def product(container, seller):
    """Product costing 10 cents with 5 units in stock."""
    return await container.product_service.create_product(
        ProductCreate(
            product_name="Cola",
            product_description="Cold can",
            amount_available=5,
            cost=Amount(value=10),
            seller_id=seller.user.id,
        )
    )
