from fastapi import APIRouter, Depends, HTTPException, status

from inkpost.api.deps import get_comment_sessions, get_session_id
from inkpost.core.exceptions.exceptions import (
    CommentValidationError,
    RateLimitExceededError,
    RecordStoreError,
)
from inkpost.schemas.comment import CommentIn, CommentThreadOut
from inkpost.services.comment_tree import render_comment
from inkpost.services.comments_service import CommentSessionRegistry, CommentThread
from inkpost.utils.log import app_logger

router = APIRouter(tags=["Comments"])

SUBMIT_FAILED = "Failed to post comment, please try again"


def thread_out(thread: CommentThread) -> CommentThreadOut:
    roots = thread.tree()
    return CommentThreadOut(
        post_id=thread.post_id,
        count=len(roots),
        comments=[render_comment(node) for node in roots],
        submit_count=thread.submit_count,
        error=thread.error,
    )


@router.get("/posts/{post_id}/comments", response_model=CommentThreadOut)
async def list_comments(
    post_id: str,
    session_id: str = Depends(get_session_id),
    sessions: CommentSessionRegistry = Depends(get_comment_sessions),
) -> CommentThreadOut:
    thread = sessions.get(session_id)
    await thread.open(post_id)
    return thread_out(thread)


@router.post("/posts/{post_id}/comments", response_model=CommentThreadOut,
             status_code=status.HTTP_201_CREATED)
async def submit_comment(
    post_id: str,
    payload: CommentIn,
    session_id: str = Depends(get_session_id),
    sessions: CommentSessionRegistry = Depends(get_comment_sessions),
) -> CommentThreadOut:
    """Post a comment, or a reply when `parent_id` is set; answers with the refreshed thread."""
    thread = sessions.get(session_id)
    if thread.post_id != post_id:
        await thread.open(post_id)

    try:
        await thread.submit(payload.content, payload.author_name, payload.author_email,
                            parent_id=payload.parent_id)
    except CommentValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except RateLimitExceededError as e:
        app_logger.info("api.comments.throttled", session_id=session_id, post_id=post_id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=e.message,
            headers={"Retry-After": str(max(1, int(round(e.retry_after))))},
        )
    except RecordStoreError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=SUBMIT_FAILED)
    except Exception as e:
        app_logger.error("api.comments.submit_error", post_id=post_id, error=str(e), exc_info=e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=SUBMIT_FAILED)
    return thread_out(thread)


@router.post("/posts/{post_id}/comments/reset", response_model=CommentThreadOut)
async def reset_comments(
    post_id: str,
    session_id: str = Depends(get_session_id),
    sessions: CommentSessionRegistry = Depends(get_comment_sessions),
) -> CommentThreadOut:
    """Clear this session's submit throttle and reload the comments."""
    thread = sessions.get(session_id)
    if thread.post_id != post_id:
        await thread.open(post_id)
    else:
        await thread.reset()
    return thread_out(thread)
