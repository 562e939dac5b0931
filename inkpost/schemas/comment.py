from typing import List, Optional
from urllib.parse import quote
import re

from pydantic import BaseModel, Field, field_validator


AVATAR_URL = "https://api.dicebear.com/7.x/initials/svg?seed={seed}"


def avatar_url(name: str) -> str:
    """initials avatar for a commenter, seeded by the name without whitespace"""
    return AVATAR_URL.format(seed=quote(re.sub(r"\s+", "", name or "")))


class CommentRecord(BaseModel):
    """A comment as stored: flat, with an optional reference to its parent."""
    id: str
    post_id: str
    parent_id: Optional[str] = None
    content: str
    author_name: str
    author_email: str = ""
    created_at: Optional[str] = None

    @field_validator("id", "post_id", "parent_id", mode="before")
    @classmethod
    def _ids_as_text(cls, v):
        # the backend hands out numeric or uuid ids; compare them as text
        if v is None or v == "":
            return None
        return str(v)


class CommentNode(CommentRecord):
    replies: List["CommentNode"] = Field(default_factory=list)


class CommentIn(BaseModel):
    content: str = ""
    author_name: str = ""
    author_email: str = ""
    parent_id: Optional[str] = None


class CommentOut(BaseModel):
    id: str
    parent_id: Optional[str] = None
    content: str
    author_name: str
    avatar_url: str
    created_at: Optional[str] = None
    replies: List["CommentOut"] = Field(default_factory=list)


class CommentThreadOut(BaseModel):
    post_id: str
    count: int
    comments: List[CommentOut]
    submit_count: int = 0
    error: Optional[str] = None
