# microblog/api/deps.py
from datetime import timedelta
from functools import lru_cache

from fastapi import Depends, Header, Request

from microblog.config import settings
from microblog.services import AdmissionPolicy, CredentialStore, ImageUploads, SessionResolver
from microblog.stores import JsonFileStore, TortoiseStore, build_store


@lru_cache
def get_store() -> TortoiseStore | JsonFileStore:
    """The configured store backend (one instance per process)."""
    return build_store(settings)


@lru_cache
def get_image_uploads() -> ImageUploads:
    return ImageUploads(settings.upload_dir, settings.max_image_bytes)


def get_credential_store(store=Depends(get_store)) -> CredentialStore:
    return CredentialStore(store)


def get_session_resolver(credentials: CredentialStore = Depends(get_credential_store)) -> SessionResolver:
    return SessionResolver(
        credentials,
        cookie_name=settings.session_cookie_name,
        secure=settings.cookie_secure,
        max_age=settings.session_expire_minutes * 60,
    )


def get_admission_policy(store=Depends(get_store)) -> AdmissionPolicy:
    return AdmissionPolicy(
        store,
        char_limit=settings.char_limit,
        cooldown=timedelta(seconds=settings.cooldown_seconds),
        exempt_usernames=settings.exempt_usernames,
    )


def extract_token(request: Request, authorization: str | None, cookie_name: str) -> str | None:
    """
    Pull the session token from the request.

    1) HttpOnly session cookie
    2) Authorization: Bearer xxx (non-browser clients)
    """
    token = request.cookies.get(cookie_name)
    if not token and authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    return token or None


async def get_optional_username(
    request: Request,
    authorization: str | None = Header(default=None),
    sessions: SessionResolver = Depends(get_session_resolver),
) -> str | None:
    """
    Username of the logged-in user, or None.

    Store failures while re-validating the user propagate (StoreUnavailable -> 500).
    """
    token = extract_token(request, authorization, sessions.cookie_name)
    return await sessions.resolve(token)

