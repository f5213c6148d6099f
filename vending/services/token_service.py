from typing import Optional
import logging

from vending.errors import authentication_error, validation_error
from vending.models.access import AccessToken
from vending.models.user import User
from vending.repositories.crud import CrudRepository
from vending.schemas.auth import TokenInfo, TokenRequest, TokenResponse
from vending.services.access_client_service import AccessClientService
from vending.services.role_service import RoleService
from vending.services.user_service import UserService
from vending.utils.cache import CacheService
from vending.utils.security import generate_token
from vending.utils.time_utils import epoch_seconds

logger = logging.getLogger(__name__)


class TokenService:
    """
    Issues and resolves bearer tokens.

    Access-token lookups go through the Redis cache; a cached entry never
    outlives the token it describes.
    """

    CACHE_PREFIX = "token"

    def __init__(
        self,
        token_repository: CrudRepository[AccessToken],
        access_client_service: AccessClientService,
        user_service: UserService,
        role_service: RoleService,
        cache: CacheService,
        access_token_ttl: int = 86400,
        refresh_token_ttl: int = 86400,
    ):
        self.tokens = token_repository
        self.access_client_service = access_client_service
        self.user_service = user_service
        self.role_service = role_service
        self.cache = cache
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttl = refresh_token_ttl

    async def issue_token(self, request: TokenRequest) -> TokenResponse:
        """
        Grant a token for the ``password`` or ``refresh_token`` grant.

        Raises:
            VendingError: AUTHENTICATION for a bad client, bad credentials
                or an unusable refresh token; VALIDATION for an unsupported
                grant type
        """
        client = await self.access_client_service.verify_client(request.client_id, request.client_secret)
        if client is None:
            logger.warning(f"Token request with invalid client {request.client_id}")
            raise authentication_error("Invalid client credentials")

        if request.grant_type not in (client.grants or []):
            raise validation_error(f"Unsupported grant type: {request.grant_type}")

        if request.grant_type == "password":
            user = await self.user_service.find_user_by_credentials(request.username, request.password)
            if user is None:
                raise authentication_error("Invalid username or password")
            return await self._grant(user, client.client_id)

        if request.grant_type == "refresh_token":
            stored = await self.tokens.find_one_by(refresh_token=request.refresh_token)
            if (
                stored is None
                or stored.client_id != client.client_id
                or stored.refresh_token_expires_at <= epoch_seconds()
            ):
                raise authentication_error("Invalid refresh token")
            user = await self.user_service.find_user_by_id(stored.user_id)
            if user is None:
                raise authentication_error("Invalid refresh token")
            await self._remove(stored)
            return await self._grant(user, client.client_id)

        raise validation_error(f"Unsupported grant type: {request.grant_type}")

    async def find_access_token(self, access_token: str) -> Optional[TokenInfo]:
        """Resolve a bearer token; expired or unknown tokens resolve to None."""
        if not access_token:
            return None

        now = epoch_seconds()
        cached = await self.cache.get(self.CACHE_PREFIX, access_token)
        if cached is not None:
            info = TokenInfo.model_validate(cached)
            return info if info.access_token_expires_at > now else None

        stored = await self.tokens.find_one_by(access_token=access_token)
        if stored is None or stored.access_token_expires_at <= now:
            return None

        info = self._to_info(stored)
        await self.cache.set(
            self.CACHE_PREFIX,
            access_token,
            info.model_dump(),
            ttl=max(1, min(self.cache.ttl, info.access_token_expires_at - now)),
        )
        return info

    async def revoke_token(self, token: str) -> bool:
        """Revoke by access or refresh token."""
        if not token:
            return False
        stored = await self.tokens.find_one_by(access_token=token)
        if stored is None:
            stored = await self.tokens.find_one_by(refresh_token=token)
        if stored is None:
            return False
        return await self._remove(stored)

    async def purge_expired_tokens(self) -> int:
        """Delete tokens whose refresh token has expired; returns the count."""
        removed = await self.tokens.remove_where(AccessToken.refresh_token_expires_at <= epoch_seconds())
        logger.info(f"Purged {removed} expired tokens")
        return removed

    async def _grant(self, user: User, client_id: str) -> TokenResponse:
        role = await self.role_service.find_role_by_id(user.role_id)
        scope = role.name.lower() if role else ""
        now = epoch_seconds()

        token = AccessToken(
            user_id=user.id,
            client_id=client_id,
            access_token=generate_token(),
            refresh_token=generate_token(),
            scope=scope,
            access_token_expires_at=now + self.access_token_ttl,
            refresh_token_expires_at=now + self.refresh_token_ttl,
        )
        await self.tokens.create(token)
        logger.info(f"Token issued for user {user.id} via client {client_id}")

        return TokenResponse(
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            expires_in=self.access_token_ttl,
            scope=scope,
        )

    async def _remove(self, stored: AccessToken) -> bool:
        await self.cache.delete(self.CACHE_PREFIX, stored.access_token)
        return await self.tokens.remove(stored.id)

    @staticmethod
    def _to_info(stored: AccessToken) -> TokenInfo:
        return TokenInfo(
            id=stored.id,
            user_id=stored.user_id,
            client_id=stored.client_id,
            scope=stored.scopes,
            access_token_expires_at=stored.access_token_expires_at,
            refresh_token_expires_at=stored.refresh_token_expires_at,
        )
