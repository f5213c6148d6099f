from typing import List, Optional
import logging

from vending.errors import duplicate_error, validation_error
from vending.models.access import AccessClient
from vending.repositories.crud import CrudRepository
from vending.utils.security import PasswordHasher

logger = logging.getLogger(__name__)

SUPPORTED_GRANTS: List[str] = ["password", "refresh_token"]


class AccessClientService:
    """OAuth2 clients, one per vending machine."""

    def __init__(self, client_repository: CrudRepository[AccessClient], hasher: PasswordHasher):
        self.clients = client_repository
        self.hasher = hasher

    async def find_client_by_name(self, name: str) -> Optional[AccessClient]:
        if not name:
            return None
        return await self.clients.find_one_by(name=name)

    async def find_client_by_client_id(self, client_id: str) -> Optional[AccessClient]:
        if not client_id:
            return None
        return await self.clients.find_one_by(client_id=client_id)

    async def verify_client(self, client_id: str, client_secret: str) -> Optional[AccessClient]:
        """Return the client when the secret matches, None otherwise."""
        client = await self.find_client_by_client_id(client_id)
        if client is None or not self.hasher.verify(client_secret, client.client_secret):
            return None
        return client

    async def create_client(
        self,
        name: str,
        client_id: str,
        client_secret: str,
        grants: Optional[List[str]] = None,
    ) -> AccessClient:
        if not name or not client_id or not client_secret:
            raise validation_error("Invalid client data")

        if await self.find_client_by_client_id(client_id):
            raise duplicate_error("Client already exists")

        client = AccessClient(
            name=name,
            client_id=client_id,
            client_secret=self.hasher.hash(client_secret),
            grants=list(grants or SUPPORTED_GRANTS),
        )
        created = await self.clients.create(client)
        logger.info(f"Access client {name} created with id {created.id}")
        return created
