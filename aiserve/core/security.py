# ==============================================================================
# SECURITY MODULE - Bearer Token Authentication
# ==============================================================================
# JWT access tokens identifying API clients
# ==============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from jose import JWTError, jwt

from aiserve.core.settings import settings
from aiserve.core.exceptions import (
    TokenExpiredError,
    InvalidTokenError,
)


class TokenType:
    """Token type constants."""
    ACCESS = "access"


def create_access_token(
    subject: Union[str, Any],
    expires_delta: Optional[timedelta] = None,
    additional_claims: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Token subject (the client identifier)
        expires_delta: Custom expiration time (default from settings)
        additional_claims: Extra claims to include in token

    Returns:
        Encoded JWT access token string

    Example:
        >>> token = create_access_token(subject="client-123")
        >>> decode_token(token)["sub"]
        'client-123'
    """
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode: Dict[str, Any] = {
        "sub": str(subject),
        "exp": expire,
        "iat": now,
        "type": TokenType.ACCESS,
    }

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(
        to_encode,
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a JWT token.

    Verifies the token signature and expiration time.

    Raises:
        TokenExpiredError: If token has expired
        InvalidTokenError: If token is invalid or malformed
    """
    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError as e:
        raise InvalidTokenError(message=f"Invalid token: {str(e)}")


def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Verify that a token is a valid access token with a subject.

    Raises:
        InvalidTokenError: If token is not an access token or has no subject
        TokenExpiredError: If token has expired
    """
    payload = decode_token(token)

    if payload.get("type") != TokenType.ACCESS:
        raise InvalidTokenError(message="Invalid token type: expected access token")
    if not payload.get("sub"):
        raise InvalidTokenError(message="Invalid token payload")

    return payload
