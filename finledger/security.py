"""
Security utilities: password hashing and access tokens.

Passwords are hashed with Argon2id through passlib's CryptContext, so a
future scheme change only needs a new entry in ``schemes``.

Access tokens are HS256 JWTs (python-jose) carrying:
  - sub:  the user id
  - role: the user type at issue time (informational; authorization always
          re-reads the User row)
  - iat / exp
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from finledger.config import settings


pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Constant-time check of a plaintext password against its stored hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user_id: uuid.UUID,
    role: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue a signed access token for a user.

    Args:
        user_id: Stored in the "sub" claim.
        role: Optional user type, stored in the "role" claim.
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify a token and return the user id it was issued for.

    Raises:
        JWTError: Expired, tampered or malformed token, or no subject.
    """
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    subject = payload.get("sub")
    if subject is None:
        raise JWTError("Token has no subject")
    try:
        return uuid.UUID(subject)
    except ValueError as exc:
        raise JWTError("Token subject is not a user id") from exc
