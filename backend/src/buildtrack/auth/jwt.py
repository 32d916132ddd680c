"""JWT token generation and validation

Tokens are issued by the login service; this backend only verifies them.
`create_access_token` exists for service-to-service calls and tests.

Claims:
- sub: User ID as UUID string
- role: One of the UserRole values ("admin", "site-engineer", ...)
- email: User's email address
- iat / exp: Issued-at and expiry as Unix timestamps

Algorithm: HS256 with the JWT_SECRET setting.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import jwt

from ..config import get_settings


def create_access_token(
    user_id: UUID,
    role: str,
    email: str,
    expires_in_minutes: Optional[int] = None,
) -> str:
    """Create a signed access token.

    Args:
        user_id: User's UUID
        role: User's role
        email: User's email address
        expires_in_minutes: Override for JWT_EXPIRY_MINUTES (negative values yield expired tokens)

    Returns:
        str: Signed JWT token
    """
    settings = get_settings()
    if expires_in_minutes is None:
        expires_in_minutes = settings.JWT_EXPIRY_MINUTES

    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user_id),
        'role': role,
        'email': email,
        'iat': int(now.timestamp()),
        'exp': int((now + timedelta(minutes=expires_in_minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
    """
    settings = get_settings()
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )
