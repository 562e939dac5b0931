from fastapi import APIRouter, Depends, HTTPException, status

from inkpost.api.deps import AuthorContext, get_content_service, require_author
from inkpost.core.exceptions.exceptions import PostValidationError, RecordNotFoundError, RecordStoreError
from inkpost.middleware.security import Security
from inkpost.schemas.content import ColumnDetailOut, ColumnIn, SavedOut, TocEntry
from inkpost.services.content_service import ContentService, column_out, summarize_post
from inkpost.utils.log import app_logger

router = APIRouter(tags=["Columns"])


@router.get("/columns/{column_id}", response_model=ColumnDetailOut)
async def column_detail(
    column_id: str,
    content: ContentService = Depends(get_content_service),
) -> ColumnDetailOut:
    """A column, its published posts (newest first) and a table of contents over them."""
    cell = await content.column_detail(column_id)
    if cell.data is None:
        if isinstance(cell.exception, RecordNotFoundError):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Column not found")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to load column")

    posts = [summarize_post(p) for p in cell.data.get("posts") or []]
    toc = [
        TocEntry(anchor=f"post-{index}", label=f"{index}. {post.full_title}")
        for index, post in enumerate(posts, start=1)
    ]
    return ColumnDetailOut(
        column=column_out(cell.data["column"]),
        posts=posts,
        toc=toc,
        error="Failed to load column" if cell.error else None,
    )


@router.post("/columns", response_model=SavedOut, status_code=status.HTTP_201_CREATED)
async def create_column(
    payload: ColumnIn,
    content: ContentService = Depends(get_content_service),
    author: AuthorContext = Depends(require_author),
) -> SavedOut:
    try:
        Security().validate_column(payload.title, payload.description)
        created = await content.create_column(payload.title, payload.description,
                                              access_token=author.access_token)
        return SavedOut(id=str(created.get("id")), status="created")
    except PostValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except RecordStoreError as e:
        app_logger.error("api.columns.create_failed", error=e.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY,
                            detail="Failed to create column, please try again")
    except Exception as e:
        app_logger.error("api.columns.create_error", error=str(e), exc_info=e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail="Failed to create column, please try again")


@router.delete("/columns/{column_id}", response_model=SavedOut)
async def delete_column(
    column_id: str,
    content: ContentService = Depends(get_content_service),
    author: AuthorContext = Depends(require_author),
) -> SavedOut:
    try:
        await content.delete_column(column_id, access_token=author.access_token)
        return SavedOut(id=column_id, status="deleted")
    except RecordStoreError as e:
        app_logger.error("api.columns.delete_failed", column_id=column_id, error=e.message)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to delete column")
    except Exception as e:
        app_logger.error("api.columns.delete_error", column_id=column_id, error=str(e), exc_info=e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to delete column")
