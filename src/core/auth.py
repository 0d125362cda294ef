"""
Supabase JWT Authentication Module.

Marketplace shoppers sign in through Supabase Auth; the frontend forwards
the access token as a Bearer header. The recommendation endpoints accept
anonymous callers, so most routes use ``get_current_user`` and only the
refresh endpoint uses ``require_auth``.

Usage:
    from core.auth import get_current_user, SupabaseUser

    @router.get("/for-you")
    def for_you(user: Optional[SupabaseUser] = Depends(get_current_user)):
        user_id = user.id if user else None
"""

from dataclasses import dataclass
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import get_settings


security = HTTPBearer(
    scheme_name="Supabase JWT",
    description="Access token issued by Supabase Auth.",
    auto_error=False,
)


@dataclass
class SupabaseUser:
    """
    Authenticated user from a Supabase JWT.

    Attributes:
        id: User's UUID (``sub`` claim)
        email: User's email address
        role: Postgres role (usually 'authenticated')
        session_id: Supabase auth session UUID
        is_anonymous: True for Supabase anonymous sign-ins
    """
    id: str
    email: Optional[str] = None
    role: str = "authenticated"
    session_id: Optional[str] = None
    is_anonymous: bool = False


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    """
    Verify and decode a Supabase JWT.

    Raises:
        HTTPException: 401 if the token is invalid, expired, or cannot be
            verified because no JWT secret is configured.
    """
    settings = get_settings()
    if not settings.supabase_jwt_secret:
        raise _unauthorized("Token verification is not configured")

    try:
        return jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience="authenticated",
            options={"require": ["sub", "exp", "aud"]},
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidAudienceError:
        raise _unauthorized("Invalid token audience")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {str(e)}")


def extract_user(payload: dict) -> SupabaseUser:
    """Build a SupabaseUser from a verified JWT payload."""
    return SupabaseUser(
        id=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role", "authenticated"),
        session_id=payload.get("session_id"),
        is_anonymous=payload.get("is_anonymous", False),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[SupabaseUser]:
    """
    FastAPI dependency returning the caller, or None for anonymous requests.

    A present but invalid token is still rejected with 401.
    """
    if not credentials or not credentials.credentials:
        return None

    return extract_user(verify_jwt(credentials.credentials))


async def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> SupabaseUser:
    """FastAPI dependency that rejects anonymous callers with 401."""
    if not credentials or not credentials.credentials:
        raise _unauthorized("Authentication required")

    return extract_user(verify_jwt(credentials.credentials))
