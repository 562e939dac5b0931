from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from inkpost.api.deps import AuthorContext, get_content_service, get_optional_user, require_author
from inkpost.config.settings import settings
from inkpost.core.exceptions.exceptions import (
    PostValidationError,
    RecordNotFoundError,
    RecordStoreError,
)
from inkpost.middleware.security import Security
from inkpost.schemas.content import PostDetailOut, PostIn, SavedOut, WriteFormOut
from inkpost.services.content_service import ContentService, column_out
from inkpost.services.excerpt import extract_body_content
from inkpost.utils.log import app_logger

router = APIRouter(tags=["Posts"])


@router.get("/posts/{post_id}", response_model=PostDetailOut)
async def post_detail(
    post_id: str,
    content: ContentService = Depends(get_content_service),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
) -> PostDetailOut:
    cell = await content.post_detail(post_id)
    if cell.data is None:
        if isinstance(cell.exception, RecordNotFoundError):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load post")

    post = cell.data
    return PostDetailOut(
        id=str(post.get("id")),
        title=post.get("title") or "",
        content=extract_body_content(post.get("content") or ""),
        created_at=post.get("created_at"),
        column_id=str(post["column_id"]) if post.get("column_id") else None,
        is_published=post.get("is_published"),
        can_edit=bool(user) and settings.ADMIN_ENABLED,
        error="Failed to load post" if cell.error else None,
    )


@router.get("/write", response_model=WriteFormOut)
async def write_form(
    edit: Optional[str] = None,
    content: ContentService = Depends(get_content_service),
    author: AuthorContext = Depends(require_author),
) -> WriteFormOut:
    """Authoring form model: column choices and, with ?edit=<id>, the post being edited."""
    try:
        columns = await content.column_choices()
    except RecordStoreError as e:
        if edit:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load post")
        app_logger.error("api.write.columns_failed", error=e.message)
        columns = []

    if not edit:
        return WriteFormOut(columns=[column_out(c) for c in columns], editing=False)

    try:
        post = await content.fetch_post(edit)
    except RecordNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except RecordStoreError as e:
        app_logger.error("api.write.post_failed", post_id=edit, error=e.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load post")

    return WriteFormOut(
        columns=[column_out(c) for c in columns],
        editing=True,
        post_id=str(post.get("id")),
        title=post.get("title") or "",
        content=post.get("content") or "",
        column_id=str(post["column_id"]) if post.get("column_id") else None,
    )


@router.post("/posts", response_model=SavedOut, status_code=status.HTTP_201_CREATED)
async def create_post(
    payload: PostIn,
    content: ContentService = Depends(get_content_service),
    author: AuthorContext = Depends(require_author),
) -> SavedOut:
    try:
        Security().validate_post(payload.content)
        created = await content.create_post(payload, access_token=author.access_token)
        return SavedOut(id=str(created.get("id")), status="created")
    except PostValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except RecordStoreError as e:
        app_logger.error("api.posts.create_failed", error=e.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to save post")
    except Exception as e:
        app_logger.error("api.posts.create_error", error=str(e), exc_info=e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save post")


@router.put("/posts/{post_id}", response_model=SavedOut)
async def update_post(
    post_id: str,
    payload: PostIn,
    content: ContentService = Depends(get_content_service),
    author: AuthorContext = Depends(require_author),
) -> SavedOut:
    try:
        Security().validate_post(payload.content)
        await content.update_post(post_id, payload, access_token=author.access_token)
        return SavedOut(id=post_id, status="updated")
    except PostValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except RecordNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except RecordStoreError as e:
        app_logger.error("api.posts.update_failed", post_id=post_id, error=e.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to save post")
    except Exception as e:
        app_logger.error("api.posts.update_error", post_id=post_id, error=str(e), exc_info=e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save post")


@router.delete("/posts/{post_id}", response_model=SavedOut)
async def delete_post(
    post_id: str,
    content: ContentService = Depends(get_content_service),
    author: AuthorContext = Depends(require_author),
) -> SavedOut:
    try:
        await content.delete_post(post_id, access_token=author.access_token)
        return SavedOut(id=post_id, status="deleted")
    except RecordNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    except RecordStoreError as e:
        app_logger.error("api.posts.delete_failed", post_id=post_id, error=e.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to delete post")
    except Exception as e:
        app_logger.error("api.posts.delete_error", post_id=post_id, error=str(e), exc_info=e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete post")
