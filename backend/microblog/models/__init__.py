"""
Database models module initialization.
Exports the Tortoise ORM models used by the "db" store backend.

Models exported:
- User: User account and credentials
- Post: Feed entry written by a User
"""
from .user import User
from .post import Post
