"""
Security module for authentication.
Handles password hashing and signed session token creation/validation.
"""
import datetime as dt
import jwt  # PyJWT
from passlib.context import CryptContext

from microblog.config import settings

# Password hashing context
# bcrypt is salted and deliberately slow; the cost factor comes from BCRYPT_ROUNDS
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",   # Automatically handle deprecated schemes
    bcrypt__rounds=settings.bcrypt_rounds,
    bcrypt__truncate_error=True,  # refuse to hash past bcrypt's 72-byte input limit
)

# Session token configuration
JWT_SECRET = settings.jwt_secret  # Secret key for token signing (use strong secret in production)
SESSION_EXPIRE_MINUTES = settings.session_expire_minutes  # Token lifetime in minutes
JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Args:
        plain: Plain text password to verify
        hashed: Stored password hash

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain, hashed)


def dummy_verify() -> None:
    """Spend the same time as a real verification (used when the user is unknown)."""
    pwd_context.dummy_verify()


def create_session_token(username: str, expires_minutes: int | None = None) -> str:
    """
    Create a signed session token for the cookie.

    Token payload includes:
        - sub: Subject (username)
        - iat: Issued at timestamp
        - exp: Expiration timestamp
    """
    now = dt.datetime.now(dt.timezone.utc)
    minutes = SESSION_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    payload = {
        "sub": username,
        "iat": now,
        "exp": now + dt.timedelta(minutes=minutes),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_session_token(token: str) -> dict:
    """
    Decode and validate a session token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid, tampered or malformed
    """
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALG], options={"require": ["sub", "exp"]})
