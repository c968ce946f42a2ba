"""
Authentication dependencies for PurVita Backend
Validates Supabase session JWTs and provides user context
"""
import hmac
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from .config import settings
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)

SESSION_COOKIE = "sb-access-token"
CSRF_COOKIE = "csrf-token"
CSRF_HEADER = "X-CSRF-Token"

# Role hierarchy: admin > user > viewer
ROLE_HIERARCHY = {
    "admin": 3,
    "user": 2,
    "viewer": 1,
}


class TokenUser(BaseModel):
    """User data extracted from JWT token"""
    id: str
    email: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def decode_supabase_token(token: str) -> dict:
    """
    Decode and validate a Supabase session JWT.

    Supabase access tokens are HS256-signed with the project JWT secret:
    {
        "sub": "user_id",
        "email": "user@example.com",
        "aud": "authenticated",
        "role": "authenticated",
        "app_metadata": {"role": "admin"},
        "exp": 1234567890
    }
    """
    secret = settings.SUPABASE_JWT_SECRET
    if not secret:
        raise ConfigurationError("SUPABASE_JWT_SECRET not configured", missing_keys=["SUPABASE_JWT_SECRET"])

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience="authenticated",
        )
    except JWTError as e:
        error_msg = str(e).lower()
        if "expired" in error_msg:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"}
        )


def _extract_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if credentials:
        return credentials.credentials
    return request.cookies.get(SESSION_COOKIE)


def _user_from_payload(payload: dict) -> Optional[TokenUser]:
    user_id = payload.get("sub")
    if not user_id:
        return None

    app_metadata = payload.get("app_metadata") or {}
    return TokenUser(
        id=user_id,
        email=payload.get("email"),
        role=app_metadata.get("role", "user"),
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """
    Dependency that extracts and validates the current user from the session.

    Usage:
        @router.get("/protected")
        async def protected_route(user: TokenUser = Depends(get_current_user)):
            return {"message": f"Hello {user.email}"}
    """
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    user = _user_from_payload(decode_supabase_token(token))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing user id",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user


async def get_current_user_optional(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenUser]:
    """Optional authentication - returns None if no valid token provided."""
    token = _extract_token(request, credentials)
    if not token:
        return None

    try:
        return _user_from_payload(decode_supabase_token(token))
    except HTTPException:
        return None


def require_role(required_role: str):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.delete("/phase-levels/{level_id}")
        async def delete_level(level_id: str, user: TokenUser = Depends(require_role("admin"))):
            pass
    """
    async def role_checker(
        user: TokenUser = Depends(get_current_user)
    ) -> TokenUser:
        user_level = ROLE_HIERARCHY.get(user.role, 0)
        required_level = ROLE_HIERARCHY.get(required_role, 0)

        if user_level < required_level:
            logger.warning(f"Access denied for user {user.id}: role {user.role}, required {required_role}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {required_role}, your role: {user.role}"
            )

        return user

    return role_checker


require_admin = require_role("admin")


async def require_csrf_token(request: Request) -> None:
    """
    Double-submit CSRF check for state-changing browser requests.

    The X-CSRF-Token header must match the csrf-token cookie.
    """
    if not settings.CSRF_PROTECTION_ENABLED:
        return

    header_token = request.headers.get(CSRF_HEADER)
    cookie_token = request.cookies.get(CSRF_COOKIE)

    if not header_token or not cookie_token or not hmac.compare_digest(header_token, cookie_token):
        logger.warning(f"CSRF validation failed for {request.method} {request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid CSRF token"
        )
