# microblog/api/routers/auth.py
import logging

from fastapi import APIRouter, Depends, Header, Request, Response

from microblog.api.deps import extract_token, get_credential_store, get_session_resolver
from microblog.core.errors import StoreUnavailable
from microblog.schemas.auth import AuthOut, CredentialsIn, MeOut, StatusOut
from microblog.services import CredentialStore, SessionResolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/signup", response_model=AuthOut)
async def signup(
    body: CredentialsIn,
    response: Response,
    credentials: CredentialStore = Depends(get_credential_store),
    sessions: SessionResolver = Depends(get_session_resolver),
):
    """
    Register a new user account and log it in.

    Returns:
        {"status": "ok", "user": <username>} and sets the session cookie

    Errors:
        400 BAD_REQUEST: missing username or password
        400 USERNAME_EXISTS: username already taken
        500: store failure
    """
    user = await credentials.register(body.username, body.password)
    sessions.attach(response, sessions.issue(user.username))
    return {"status": "ok", "user": user.username}


@router.post("/login", response_model=AuthOut)
async def login(
    body: CredentialsIn,
    response: Response,
    credentials: CredentialStore = Depends(get_credential_store),
    sessions: SessionResolver = Depends(get_session_resolver),
):
    """
    Authenticate and set the session cookie.

    Errors:
        400 BAD_REQUEST: missing username or password
        401 AUTH_INVALID_CREDENTIALS: unknown user or wrong password (not distinguished)
        500: store failure
    """
    user = await credentials.verify(body.username, body.password)
    sessions.attach(response, sessions.issue(user.username))
    return {"status": "ok", "user": user.username}


@router.post("/logout", response_model=StatusOut)
async def logout(response: Response, sessions: SessionResolver = Depends(get_session_resolver)):
    """
    Clear the session cookie. Always succeeds.

    The token itself stays valid until it expires; there is no server-side
    session to delete.
    """
    sessions.revoke(response)
    return {"status": "ok"}


@router.get("/me", response_model=MeOut)
async def me(
    request: Request,
    response: Response,
    authorization: str | None = Header(default=None),
    sessions: SessionResolver = Depends(get_session_resolver),
):
    """
    Current user, re-validated against the credential store.

    Never fails: a missing, invalid or stale session yields {"user": null}
    (and clears the cookie), as does a store failure.
    """
    token = extract_token(request, authorization, sessions.cookie_name)
    if not token:
        return {"user": None}
    try:
        username = await sessions.resolve(token)
    except StoreUnavailable:
        logger.exception("[auth] /me lookup failed")
        return {"user": None}
    if username is None:
        sessions.revoke(response)
        return {"user": None}
    return {"user": username}
