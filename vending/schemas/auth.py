from pydantic import BaseModel, Field
from typing import List, Optional


class TokenRequest(BaseModel):
    """OAuth2 token request (password or refresh_token grant)."""
    grant_type: str = Field(..., description="password or refresh_token")
    client_id: str
    client_secret: str
    username: Optional[str] = None
    password: Optional[str] = None
    refresh_token: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    scope: str


class RevokeRequest(BaseModel):
    token: str


class TokenInfo(BaseModel):
    """Stored token as seen by the authorization check; also the cached form."""
    id: str
    user_id: str
    client_id: str
    scope: List[str] = Field(default_factory=list)
    access_token_expires_at: int
    refresh_token_expires_at: int


class Caller(BaseModel):
    """Identity resolved from a bearer token."""
    user_id: str
    username: str
    role_name: str
    scope: List[str] = Field(default_factory=list)
    is_admin: bool = False
