"""
Authentication utilities: Password hashing and JWT token management
"""

import jwt
from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
from typing import Optional
from config import settings

# Password hashing context
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto"
)

# JWT configuration
ALGORITHM = "HS256"
TOKEN_TTL = timedelta(days=7)


def _require_secret() -> str:
    if not settings.jwt_secret_key:
        raise ValueError("JWT_SECRET_KEY is not set. Cannot sign or verify JWT tokens.")
    return settings.jwt_secret_key


def hash_password(password: str) -> str:
    """Hash a password using argon2"""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_jwt(user_id: str, expires_in: timedelta = TOKEN_TTL) -> str:
    """
    Create a session token for a user.

    A negative expires_in yields a token that is already expired.
    """
    secret = _require_secret()
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + expires_in,
    }
    return jwt.encode(payload, secret, algorithm=ALGORITHM)


def decode_jwt(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns None if invalid or expired."""
    secret = _require_secret()
    try:
        return jwt.decode(token, secret, algorithms=[ALGORITHM], options={"require": ["sub", "exp"]})
    except jwt.InvalidTokenError:
        return None


def get_token_subject(token: str) -> Optional[str]:
    """User id carried by a valid token, or None."""
    payload = decode_jwt(token)
    if not payload:
        return None
    subject = payload.get("sub")
    return str(subject) if subject else None
