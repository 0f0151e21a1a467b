# ==============================================================================
# SECURITY MODULE - Bearer Token Verification
# ==============================================================================
# JWT access tokens identify the calling user; issuance lives outside the
# ledger, create_access_token is kept for tooling and tests
# ==============================================================================

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from jose import JWTError, jwt

from walletwise.core.settings import settings
from walletwise.core.exceptions import (
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
        subject: Token subject (the account id)
        expires_delta: Custom expiration time (default from settings)
        additional_claims: Extra claims to include in token

    Returns:
        Encoded JWT access token string

    Example:
        >>> token = create_access_token(subject="0b0e...")
        >>> verify_access_token(token)["sub"]
        '0b0e...'
    """
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )

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
    Verify that a token is a valid access token carrying a subject.

    Raises:
        InvalidTokenError: If token is not an access token or has no subject
        TokenExpiredError: If token has expired
    """
    payload = decode_token(token)

    if payload.get("type") != TokenType.ACCESS:
        raise InvalidTokenError(message="Invalid token type: expected access token")
    if not isinstance(payload.get("sub"), str) or not payload["sub"]:
        raise InvalidTokenError(message="Token has no subject")

    return payload
