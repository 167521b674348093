"""
Unit tests for the post admission policy.
Runs against the flat-file store so no database is needed.
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from microblog.core.errors import AuthenticationError, RateLimitError, ValidationError
from microblog.services.admission import COOLDOWN, AdmissionPolicy, remaining_seconds

pytestmark = pytest.mark.asyncio

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


async def _policy(store, *usernames, exempt=()):
    for name in usernames:
        await store.insert_user(name, "not-a-real-hash", T0)
    return AdmissionPolicy(store, char_limit=500, cooldown=COOLDOWN, exempt_usernames=exempt)


async def test_missing_author_rejected(json_store):
    policy = await _policy(json_store)
    with pytest.raises(AuthenticationError) as exc:
        await policy.admit(None, "hello", T0)
    assert exc.value.code == "AUTH_REQUIRED"
    assert await json_store.list_newest_first() == []


async def test_unregistered_author_rejected(json_store):
    policy = await _policy(json_store)
    with pytest.raises(AuthenticationError) as exc:
        await policy.admit("ghost", "hello", T0)
    assert exc.value.code == "AUTH_USER_NOT_FOUND"


async def test_content_is_trimmed_and_stored(json_store):
    policy = await _policy(json_store, "alice")
    post = await policy.admit("alice", "  hello  \n", T0)
    assert post.content == "hello"
    assert post.author == "alice"
    assert post.timestamp == T0
    assert post.image is None


async def test_byte_order_mark_is_trimmed(json_store):
    policy = await _policy(json_store, "alice")
    post = await policy.admit("alice", "\ufeff hello \ufeff\n", T0)
    assert post.content == "hello"


@pytest.mark.parametrize("raw", ["", "   ", "\n\t ", None, 42, "\ufeff", " \ufeff \ufeff\n"])
async def test_empty_content_rejected(json_store, raw):
    policy = await _policy(json_store, "alice")
    with pytest.raises(ValidationError) as exc:
        await policy.admit("alice", raw, T0)
    assert exc.value.code == "EMPTY_CONTENT"


async def test_content_length_boundary(json_store):
    policy = await _policy(json_store, "alice", "bob")
    with pytest.raises(ValidationError) as exc:
        await policy.admit("alice", "x" * 501, T0)
    assert exc.value.code == "CONTENT_TOO_LONG"

    post = await policy.admit("bob", "x" * 500, T0)
    assert len(post.content) == 500


async def test_length_counted_after_trim(json_store):
    policy = await _policy(json_store, "alice")
    post = await policy.admit("alice", "  " + "x" * 500 + "  ", T0)
    assert len(post.content) == 500


async def test_cooldown_boundary(json_store):
    policy = await _policy(json_store, "alice")
    await policy.admit("alice", "first", T0)

    with pytest.raises(RateLimitError) as exc:
        await policy.admit("alice", "too soon", T0 + COOLDOWN - timedelta(milliseconds=1))
    assert exc.value.retry_after == 1

    post = await policy.admit("alice", "on time", T0 + COOLDOWN)
    assert post.content == "on time"


async def test_cooldown_reports_remaining_seconds(json_store):
    policy = await _policy(json_store, "alice")
    await policy.admit("alice", "first", T0)
    with pytest.raises(RateLimitError) as exc:
        await policy.admit("alice", "again", T0 + timedelta(seconds=100, milliseconds=500))
    # 900 - 100.5 = 799.5 -> rounded up
    assert exc.value.retry_after == 800
    assert exc.value.to_dict()["retryAfter"] == 800


async def test_cooldown_is_per_author(json_store):
    policy = await _policy(json_store, "alice", "bob")
    await policy.admit("alice", "hi", T0)
    post = await policy.admit("bob", "hi too", T0)
    assert post.author == "bob"


async def test_exempt_user_bypasses_cooldown(json_store):
    policy = await _policy(json_store, "fries", exempt=["fries"])
    first = await policy.admit("fries", "one", T0)
    second = await policy.admit("fries", "two", T0)
    assert first.id != second.id


async def test_rejected_post_not_stored(json_store):
    policy = await _policy(json_store, "alice")
    await policy.admit("alice", "first", T0)
    with pytest.raises(RateLimitError):
        await policy.admit("alice", "second", T0 + timedelta(minutes=1))
    posts = await json_store.list_newest_first()
    assert [p.content for p in posts] == ["first"]


async def test_cooldown_survives_new_policy_instance(json_store):
    """Throttling state lives in the store, not in the policy object."""
    policy = await _policy(json_store, "alice")
    await policy.admit("alice", "first", T0)
    fresh = AdmissionPolicy(json_store)
    with pytest.raises(RateLimitError):
        await fresh.admit("alice", "second", T0 + timedelta(minutes=5))


async def test_concurrent_posts_admit_only_one(json_store):
    policy = await _policy(json_store, "alice")
    results = await asyncio.gather(
        *(policy.admit("alice", f"post {i}", T0) for i in range(5)),
        return_exceptions=True,
    )
    accepted = [r for r in results if not isinstance(r, Exception)]
    throttled = [r for r in results if isinstance(r, RateLimitError)]
    assert len(accepted) == 1
    assert len(throttled) == 4


def test_remaining_seconds_rounds_up():
    assert remaining_seconds(T0, T0, COOLDOWN) == 900
    assert remaining_seconds(T0, T0 + timedelta(seconds=899, microseconds=1), COOLDOWN) == 1
    assert remaining_seconds(T0, T0 + timedelta(seconds=1), COOLDOWN) == 899
