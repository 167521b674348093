"""
Database model for users.
Represents a registered account: a unique username and its password hash.
"""
from tortoise import fields, models


class User(models.Model):
    """
    User database model.

    Security:
    - Password is stored as a bcrypt hash (never store plain text passwords)
    - Username must be unique across all users (case-sensitive)
    """
    id = fields.IntField(pk=True)
    username = fields.CharField(max_length=256, unique=True, index=True)  # Login name, also the post author key
    password_hash = fields.CharField(max_length=255)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"
