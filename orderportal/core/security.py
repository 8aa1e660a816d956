"""
Bearer token verification and role checks.

Tokens are issued by the portal's auth service; this module only decodes them
into a caller context for the admin routes.
"""
from enum import Enum
from typing import Optional

from jose import jwt, JWTError
from fastapi import HTTPException, status, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from orderportal.core.config import settings

security = HTTPBearer()


class Role(str, Enum):
    ADMIN = "admin"
    CLIENT = "client"


def decode_token(token: str) -> dict:
    """Decode and validate JWT token."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def _parse_role(raw: Optional[str]) -> Role:
    try:
        return Role(raw or Role.CLIENT.value)
    except ValueError:
        return Role.CLIENT


async def get_current_user_context(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> dict:
    """Get current caller context: user id, username, role and company."""
    payload = decode_token(credentials.credentials)

    user_id_raw = payload.get("sub") or payload.get("id")
    if user_id_raw is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user identifier (sub)",
        )

    return {
        "user_id": int(user_id_raw),
        "username": payload.get("username") or str(user_id_raw),
        "role": _parse_role(payload.get("role")),
        "company_name": payload.get("companyName") or payload.get("company_name"),
    }


async def require_admin(user_context: dict = Depends(get_current_user_context)) -> dict:
    """Dependency that only lets admins through."""
    if user_context["role"] != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user_context
