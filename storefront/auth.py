"""Supabase Auth bearer token verification for API routes."""
from typing import Optional

from fastapi import Depends, Header, HTTPException
from pydantic import BaseModel

from storefront.errors import ERROR_UNAUTHORIZED
from storefront.logging import get_logger
from storefront.services.database import get_database

logger = get_logger(__name__)


class AuthUser(BaseModel):
    """Authenticated shopper."""
    id: str


def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1]:
        return parts[1]
    return None


async def get_optional_user(
    authorization: str = Header(None, alias="Authorization"),
) -> Optional[AuthUser]:
    """Current user, or None for anonymous or invalid credentials."""
    token = _extract_bearer(authorization)
    if token is None:
        return None

    db = get_database()
    user_id = await db.get_user_id_from_token(token)
    if not user_id:
        return None
    return AuthUser(id=user_id)


async def verify_supabase_auth(
    user: Optional[AuthUser] = Depends(get_optional_user),
) -> AuthUser:
    """Require a valid Supabase access token."""
    if user is None:
        raise HTTPException(status_code=401, detail=ERROR_UNAUTHORIZED)
    return user
