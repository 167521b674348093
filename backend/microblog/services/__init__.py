"""
Services Module

- CredentialStore: signup and password verification
- SessionResolver: signed session cookies
- AdmissionPolicy: validation and cooldown for new posts
- ImageUploads: optional post images
"""
from .credentials import CredentialStore, User
from .sessions import SessionResolver
from .admission import AdmissionPolicy, remaining_seconds
from .uploads import ImageUploads

__all__ = [
    "CredentialStore",
    "User",
    "SessionResolver",
    "AdmissionPolicy",
    "remaining_seconds",
    "ImageUploads",
]
