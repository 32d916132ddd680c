"""FastAPI dependencies for authentication and authorization.

Usage:
    @router.get("/leads")
    def list_leads(user: User = Depends(require_right(Right.MANAGE_LEADS))):
        ...

    @router.post("/boms/{bom_id}/review")
    def review(user: User = Depends(require_roles(UserRole.ADMIN))):
        ...
"""

from typing import Callable
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from .jwt import decode_token
from .roles import Right, UserRole, has_right

security = HTTPBearer()


class AuthenticationError(Exception):
    """Token missing, invalid, expired or pointing at an unusable account."""

    def __init__(self, message: str, status_code: int = status.HTTP_401_UNAUTHORIZED):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def authenticate_token(token: str, db: Session) -> User:
    """Resolve a bearer token to an ACTIVE user.

    Shared by the HTTP dependency and the WebSocket handshake.

    Raises:
        AuthenticationError: 401 for bad tokens or unknown users, 403 for disabled accounts
    """
    try:
        payload = decode_token(token)
        user_id = UUID(payload["sub"])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationError(f"Invalid token: {e}")
    except (KeyError, ValueError) as e:
        raise AuthenticationError(f"Invalid token claims: {e}")

    user = db.get(User, user_id)
    if not user:
        raise AuthenticationError("User not found")

    if user.status != "ACTIVE":
        raise AuthenticationError("User account is disabled", status.HTTP_403_FORBIDDEN)

    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Validate the Bearer token and return the authenticated user.

    Raises:
        HTTPException 401: If token is invalid, expired, or user not found
        HTTPException 403: If user status is DISABLED
    """
    try:
        return authenticate_token(credentials.credentials, db)
    except AuthenticationError as e:
        headers = {"WWW-Authenticate": "Bearer"} if e.status_code == 401 else None
        raise HTTPException(status_code=e.status_code, detail=e.message, headers=headers)


def require_right(right: Right) -> Callable:
    """Create a dependency that requires the current user's role to hold `right`."""

    def right_dependency(current_user: User = Depends(get_current_user)) -> User:
        if not has_right(current_user.role, right):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required right: {right.value}",
            )
        return current_user

    return right_dependency


def require_roles(*roles: UserRole) -> Callable:
    """Create a dependency that requires the current user to have one of `roles`."""
    allowed = {r.value for r in roles}

    def role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {', '.join(sorted(allowed))}",
            )
        return current_user

    return role_dependency
