"""
Bearer tokens for the admin analytics endpoints.

Tokens are HS256 JWTs whose `sub` is the user id. The role is not trusted
from the token; it is re-read from the user record on every request.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from jose import JWTError, jwt

from storefront.core.config import settings
from storefront.core.logging import get_logger

logger = get_logger(__name__)


def create_access_token(
    subject: UUID | str,
    expires_delta: Optional[timedelta] = None,
    **claims: Any,
) -> str:
    """Issue a token for `subject`; extra keyword arguments become claims."""
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(hours=settings.jwt_expiration_hours)
    payload = {
        **claims,
        "sub": str(subject),
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[dict[str, Any]]:
    """Claims of a valid token, or None if it is malformed, forged or expired."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        logger.info("Rejected bearer token", reason=str(e))
        return None


def token_subject(token: str) -> Optional[UUID]:
    """User id carried by a valid token."""
    claims = decode_access_token(token)
    if not claims:
        return None
    try:
        return UUID(str(claims.get("sub")))
    except ValueError:
        return None
