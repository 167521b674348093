"""
Pydantic schemas for the post feed.
"""
from typing import Optional
from pydantic import BaseModel


class PostOut(BaseModel):
    id: int
    author: str
    content: str
    timestamp: str  # ISO 8601, UTC
    image: Optional[str] = None  # /uploads/<name> when an image was attached


class PostCreatedOut(BaseModel):
    post: PostOut
