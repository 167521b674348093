"""
Pydantic schemas for authentication endpoints.
"""
from typing import Optional
from pydantic import BaseModel


class CredentialsIn(BaseModel):
    """
    Request body for /signup and /login.
    Fields are optional here so a missing one is reported as a 400 by the
    credential store instead of a schema error.
    """
    username: Optional[str] = None
    password: Optional[str] = None


class AuthOut(BaseModel):
    status: str = "ok"
    user: str


class StatusOut(BaseModel):
    status: str = "ok"


class MeOut(BaseModel):
    user: Optional[str] = None  # None when not logged in or the session is stale
