"""
Security utilities.
JWT verification for tokens issued by the shop's identity provider.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from pydantic import BaseModel

from optiquote.core.config import settings


class TokenData(BaseModel):
    """Token payload data."""
    user_id: Optional[int] = None
    role: Optional[str] = None
    email: Optional[str] = None
    full_name: Optional[str] = None
    token_type: str = "access"


def create_access_token(
    user_id: int,
    role: str,
    expires_delta: Optional[timedelta] = None,
    email: Optional[str] = None,
    full_name: Optional[str] = None,
) -> str:
    """
    Create a signed access token.

    The identity provider issues tokens in production; this helper signs
    tokens with the same claims for local tooling and tests.

    Args:
        user_id: Subject of the token
        role: customer, staff or admin
        expires_delta: Token lifetime
        email: Optional email claim
        full_name: Optional display name claim

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    to_encode = {
        "sub": str(user_id),
        "role": role,
        "exp": expire,
        "iat": now,
        "type": "access",
    }
    if email:
        to_encode["email"] = email
    if full_name:
        to_encode["name"] = full_name

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


def decode_token(token: str) -> Optional[TokenData]:
    """
    Decode and validate JWT token.

    Args:
        token: JWT token to decode

    Returns:
        TokenData if valid, None otherwise
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
    except JWTError:
        return None

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None

    return TokenData(
        user_id=user_id,
        role=payload.get("role"),
        email=payload.get("email"),
        full_name=payload.get("name"),
        token_type=payload.get("type", "access"),
    )
