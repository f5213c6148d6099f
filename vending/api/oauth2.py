from fastapi import APIRouter, Depends

from vending.api.deps import get_container
from vending.container import Container
from vending.schemas.auth import RevokeRequest, TokenRequest, TokenResponse
from vending.schemas.common import MessageResponse

router = APIRouter(prefix="/oauth2", tags=["OAuth2"])


@router.post(
    "/token",
    response_model=TokenResponse,
    summary="Issue a token",
    description="Password and refresh_token grants for registered vending machines."
)
async def issue_token(
    token_request: TokenRequest,
    container: Container = Depends(get_container)
):
    return await container.token_service.issue_token(token_request)


@router.post(
    "/revoke",
    response_model=MessageResponse,
    summary="Revoke a token"
)
async def revoke_token(
    revoke_request: RevokeRequest,
    container: Container = Depends(get_container)
):
    revoked = await container.token_service.revoke_token(revoke_request.token)
    return MessageResponse(success=revoked, data="Revoked" if revoked else "Unknown token")
