"""
Credential store: registration and password verification.

Password hashes never leave this module; callers get a User with the
username and creation time only.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from microblog.core.errors import AuthenticationError, ConflictError, ValidationError
from microblog.core.security import dummy_verify, hash_password, verify_password
from microblog.core.timeutil import utc_now
from microblog.stores.base import UserBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    username: str
    created_at: datetime


# bcrypt only reads this many bytes of a password
MAX_PASSWORD_BYTES = 72


def _require_credentials(username, password) -> None:
    """
    Reject credentials that cannot be stored or checked.

    Runs before any store access, so a known and an unknown username get the
    same answer for the same bad input.

    Raises:
        ValidationError: username or password missing/empty, a NUL byte in
            either, or a password longer than MAX_PASSWORD_BYTES in UTF-8
    """
    if not isinstance(username, str) or not isinstance(password, str) or not username.strip() or not password:
        raise ValidationError("username+password required")
    if "\x00" in username or "\x00" in password:
        raise ValidationError("username and password must not contain NUL", code="INVALID_CREDENTIALS")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"password > {MAX_PASSWORD_BYTES} bytes", code="PASSWORD_TOO_LONG")


class CredentialStore:
    def __init__(self, users: UserBackend):
        self._users = users

    async def register(self, username: str, password: str) -> User:
        """
        Create a user. The first signup for a username wins.

        Raises:
            ValidationError: username or password missing, empty or unusable
            ConflictError: username already registered
            StoreUnavailable: backend failure
        """
        _require_credentials(username, password)
        if await self._users.get_user(username) is not None:
            raise ConflictError("user exists")
        # bcrypt is CPU bound; keep the event loop responsive
        pw_hash = await asyncio.to_thread(hash_password, password)
        row = await self._users.insert_user(username, pw_hash, utc_now())
        logger.info("[auth] registered user=%s", row.username)
        return User(username=row.username, created_at=row.created_at)

    async def verify(self, username: str, password: str) -> User:
        """
        Check a username/password pair.

        Unknown usernames and wrong passwords raise the same error so the
        response does not reveal which usernames exist.

        Args:
            username: Claimed username
            password: Plain text password

        Returns:
            The matching User

        Raises:
            ValidationError: unusable input, raised before the user lookup
            AuthenticationError: unknown user or wrong password
            StoreUnavailable: backend failure
        """
        _require_credentials(username, password)
        row = await self._users.get_user(username)
        if row is None:
            await asyncio.to_thread(dummy_verify)
            ok = False
        else:
            ok = await asyncio.to_thread(verify_password, password, row.password_hash)
        if not ok:
            logger.info("[auth] login failed user=%s", username)
            raise AuthenticationError("invalid credentials", code="AUTH_INVALID_CREDENTIALS")
        return User(username=row.username, created_at=row.created_at)

    async def exists(self, username: str) -> bool:
        """True if a user record exists for `username`."""
        return await self._users.get_user(username) is not None
