"""
Database model for posts.
Posts are immutable once created and reference their author by username.
"""
from tortoise import fields, models


class Post(models.Model):
    """
    Post database model.

    Relationships:
    - Belongs to a User through the username (author_id holds the username)
    """
    id = fields.IntField(pk=True)  # Monotonic, breaks timestamp ties in the feed
    author = fields.ForeignKeyField(
        "models.User",
        related_name="posts",
        to_field="username",
        on_delete=fields.CASCADE,
    )
    content = fields.TextField()
    created_at = fields.DatetimeField(index=True)  # Set by the admission policy, not the database
    image = fields.CharField(max_length=512, null=True)  # Public path of an uploaded image

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "posts"
