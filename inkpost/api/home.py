import asyncio

from fastapi import APIRouter, Depends, HTTPException, status

from inkpost.api.deps import get_content_service
from inkpost.config.settings import settings
from inkpost.schemas.content import HomeOut
from inkpost.services.content_service import ContentService, column_out, summarize_post
from inkpost.utils.log import app_logger

router = APIRouter(tags=["Home"])

LOAD_FAILED = "Failed to load data"


@router.get("/", response_model=HomeOut)
async def home(
    page: int = 1,
    content: ContentService = Depends(get_content_service),
) -> HomeOut:
    """Columns followed by one page of published posts that are not part of a column."""
    if page < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid page")

    columns_cell, posts_cell = await asyncio.gather(content.home_columns(), content.home_posts(page))

    # columns are decoration on the home page; a failure there is only logged
    if columns_cell.error:
        app_logger.warning("api.home.columns_failed", error=columns_cell.error)

    if posts_cell.error and posts_cell.data is None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=LOAD_FAILED)

    posts = posts_cell.data or []
    return HomeOut(
        columns=[column_out(c) for c in columns_cell.data or []],
        posts=[summarize_post(p) for p in posts],
        page=page,
        has_more=len(posts) == settings.POSTS_PER_PAGE,
        error=LOAD_FAILED if posts_cell.error else None,
    )
