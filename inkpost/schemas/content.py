from typing import List, Optional
from pydantic import BaseModel, Field


class PostIn(BaseModel):
    """Authoring form payload. The title is taken from the <title> element of `content`."""
    content: str
    is_published: bool = True
    column_id: Optional[str] = None


class ColumnIn(BaseModel):
    title: str = ""
    description: str = ""


class PostSummaryOut(BaseModel):
    id: str
    title: str = Field(..., description="Title shortened for list display")
    full_title: str
    excerpt: str
    created_at: Optional[str]


class ColumnOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    created_at: Optional[str] = None


class HomeOut(BaseModel):
    columns: List[ColumnOut]
    posts: List[PostSummaryOut]
    page: int
    has_more: bool
    error: Optional[str] = None


class PostDetailOut(BaseModel):
    id: str
    title: str
    content: str = Field(..., description="Body markup of the post")
    created_at: Optional[str]
    column_id: Optional[str] = None
    is_published: Optional[bool] = None
    can_edit: bool = False
    error: Optional[str] = None


class TocEntry(BaseModel):
    anchor: str
    label: str


class ColumnDetailOut(BaseModel):
    column: ColumnOut
    posts: List[PostSummaryOut]
    toc: List[TocEntry]
    error: Optional[str] = None


class WriteFormOut(BaseModel):
    columns: List[ColumnOut]
    editing: bool
    post_id: Optional[str] = None
    title: str = ""
    content: str = ""
    column_id: Optional[str] = None


class SavedOut(BaseModel):
    id: str
    status: str


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class LoginOut(BaseModel):
    access_token: str
    user: dict


class AboutOut(BaseModel):
    title: str
    body: str
