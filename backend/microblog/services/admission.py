"""
Admission policy for new posts.

Decides whether a post is accepted, in this order:
  1. the author must be logged in
  2. trimmed content must be 1..char_limit characters
  3. unless the author is exempt, their previous post must be at least
     `cooldown` old

The cooldown is read from the post store rather than kept in process memory,
and the check and the insert happen in one store call (append_unless_throttled)
so concurrent requests from one author cannot both get through.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, Optional

from microblog.core.errors import (
    AuthenticationError,
    AuthorThrottled,
    RateLimitError,
    UnknownAuthor,
    ValidationError,
)
from microblog.stores.base import NewPost, PostStore, StoredPost

logger = logging.getLogger(__name__)

CHAR_LIMIT = 500
COOLDOWN = timedelta(minutes=15)

# str.strip() leaves the byte order mark alone
_BOM = "\ufeff"


def _trim(text: str) -> str:
    """Strip whitespace and byte order marks from both ends."""
    prev = None
    while text != prev:
        prev = text
        text = text.strip().strip(_BOM)
    return text


def remaining_seconds(last: datetime, now: datetime, cooldown: timedelta) -> int:
    """Whole seconds (rounded up) until `cooldown` has passed since `last`."""
    return max(1, math.ceil((cooldown - (now - last)).total_seconds()))


class AdmissionPolicy:
    def __init__(
        self,
        posts: PostStore,
        char_limit: int = CHAR_LIMIT,
        cooldown: timedelta = COOLDOWN,
        exempt_usernames: Iterable[str] = (),
    ):
        self._posts = posts
        self.char_limit = char_limit
        self.cooldown = cooldown
        self.exempt_usernames = frozenset(exempt_usernames)

    def clean_content(self, raw_content) -> str:
        """
        Trim and length-check post text.

        Args:
            raw_content: Text as received; anything but a str counts as empty

        Returns:
            The trimmed content

        Raises:
            ValidationError: EMPTY_CONTENT or CONTENT_TOO_LONG
        """
        content = _trim(raw_content) if isinstance(raw_content, str) else ""
        if not content:
            raise ValidationError("content required", code="EMPTY_CONTENT")
        if len(content) > self.char_limit:
            raise ValidationError(f"content > {self.char_limit} chars", code="CONTENT_TOO_LONG")
        return content

    async def admit(
        self,
        author: Optional[str],
        raw_content,
        now: datetime,
        image: Optional[str] = None,
    ) -> StoredPost:
        """
        Validate and store a post written at `now`.

        Args:
            author: Logged-in username, or None
            raw_content: Post text before trimming
            now: Admission time, stored as the post timestamp
            image: Optional public reference to an uploaded image

        Returns:
            The stored post

        Raises:
            AuthenticationError: no author, or the author has no user record
            ValidationError: empty or over-limit content
            RateLimitError: author inside the cooldown (carries retry_after)
            StoreUnavailable: backend failure
        """
        if not author:
            raise AuthenticationError("not logged in")
        content = self.clean_content(raw_content)

        cooldown = None if author in self.exempt_usernames else self.cooldown
        post = NewPost(author=author, content=content, timestamp=now, image=image)
        try:
            stored = await self._posts.append_unless_throttled(post, cooldown)
        except AuthorThrottled as e:
            left = remaining_seconds(e.last_post_at, now, self.cooldown)
            logger.info("[posts] throttled author=%s retry_after=%ss", author, left)
            raise RateLimitError(left) from e
        except UnknownAuthor as e:
            raise AuthenticationError("user not found", code="AUTH_USER_NOT_FOUND") from e

        logger.info("[posts] accepted id=%s author=%s", stored.id, stored.author)
        return stored
