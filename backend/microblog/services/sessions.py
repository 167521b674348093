"""
Session resolver: stateless signed cookie tokens.

The cookie carries a signed token (see core.security) instead of the raw
username, so a client cannot forge a session by editing the cookie. There is
no server-side session table; logout clears the cookie.
"""
import jwt
from fastapi import Response

from microblog.core.security import create_session_token, decode_session_token
from microblog.services.credentials import CredentialStore


class SessionResolver:
    def __init__(
        self,
        credentials: CredentialStore,
        cookie_name: str = "session",
        secure: bool = False,
        max_age: int | None = None,
    ):
        self._credentials = credentials
        self.cookie_name = cookie_name
        self.secure = secure
        self.max_age = max_age

    def issue(self, username: str) -> str:
        """
        Create a session token for a verified user.

        Args:
            username: Username returned by CredentialStore.register/verify

        Returns:
            Signed token carrying sub, iat and exp
        """
        return create_session_token(username)

    async def resolve(self, token: str | None) -> str | None:
        """
        Return the username behind a token, or None when the token is missing,
        malformed, tampered with, expired, or names a user that no longer exists.

        Store failures propagate as StoreUnavailable.
        """
        if not token:
            return None
        try:
            payload = decode_session_token(token)
        except jwt.InvalidTokenError:
            return None
        username = payload.get("sub")
        if not isinstance(username, str) or not username:
            return None
        if not await self._credentials.exists(username):
            return None
        return username

    def attach(self, response: Response, token: str) -> None:
        """
        Set the session cookie on a response.

        The cookie is HttpOnly and SameSite=Lax; Secure follows COOKIE_SECURE.

        Args:
            response: Outgoing response
            token: Token from issue()
        """
        response.set_cookie(
            self.cookie_name,
            token,
            max_age=self.max_age,
            httponly=True,
            secure=self.secure,
            samesite="lax",
        )

    def revoke(self, response: Response) -> None:
        """Clear the session cookie (Max-Age=0) on a response."""
        response.delete_cookie(self.cookie_name, httponly=True, secure=self.secure, samesite="lax")
