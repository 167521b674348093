"""
Error taxonomy shared by the services and the HTTP layer.

Every error the API reports to a client derives from BlogError and carries the
HTTP status it maps to, a machine-readable code and a human-readable message.
The exception handlers in microblog.main turn these into JSON responses.
"""
from datetime import datetime


class BlogError(Exception):
    """Base class for errors reported to API clients."""

    status_code = 500
    code = "SERVER_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(BlogError):
    """Missing, empty or over-limit request fields."""

    status_code = 400
    code = "BAD_REQUEST"


class ConflictError(BlogError):
    """Username already taken."""

    status_code = 400
    code = "USERNAME_EXISTS"


class AuthenticationError(BlogError):
    """Not logged in, stale session, or invalid credentials."""

    status_code = 401
    code = "AUTH_REQUIRED"


class RateLimitError(BlogError):
    """Author is still inside the posting cooldown."""

    status_code = 429
    code = "COOLDOWN_ACTIVE"

    def __init__(self, retry_after: int):
        super().__init__(f"cooldown active {retry_after}s")
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retryAfter"] = self.retry_after
        return body


class StoreUnavailable(BlogError):
    """
    Persistence backend failure (I/O error, database unavailable, corrupt data).

    The message is for server logs only; clients get a generic body.
    """

    status_code = 500
    code = "STORE_UNAVAILABLE"

    def to_dict(self) -> dict:
        return {"error": "server error"}


# ----- store-level signals, translated by the admission policy -----

class AuthorThrottled(Exception):
    """Raised by a post store when the author's last post is inside the cooldown."""

    def __init__(self, last_post_at: datetime):
        super().__init__(f"last post at {last_post_at.isoformat()}")
        self.last_post_at = last_post_at


class UnknownAuthor(Exception):
    """Raised by a post store when the author has no user record."""
