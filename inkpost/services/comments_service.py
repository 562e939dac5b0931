import asyncio
import time
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

from inkpost.clients.record_store_client import RecordStoreClient
from inkpost.config.settings import settings
from inkpost.core.exceptions.exceptions import RecordStoreError
from inkpost.middleware.security import Security
from inkpost.schemas.comment import CommentNode, CommentRecord
from inkpost.services.comment_tree import build_comment_tree
from inkpost.services.rate_limiter import SubmissionLimitConfig, SubmissionRateLimiter
from inkpost.services.sanitizer import sanitize_html
from inkpost.utils.log import app_logger

LOAD_FAILED = "Failed to load comments, please refresh and try again"


def limit_config_from_settings() -> SubmissionLimitConfig:
    return SubmissionLimitConfig(
        min_interval_seconds=settings.COMMENT_MIN_INTERVAL_SECONDS,
        max_submissions=settings.COMMENT_MAX_PER_WINDOW,
        window_seconds=settings.COMMENT_WINDOW_SECONDS,
    )


class CommentThread:
    """Comment state of one browsing session: the viewed post, its comments and the submit throttle.

    The throttle is reset whenever the session switches to a different post.
    """

    def __init__(
        self,
        store: RecordStoreClient,
        limiter: Optional[SubmissionRateLimiter] = None,
        security: Optional[Security] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.clock = clock
        self.limiter = limiter or SubmissionRateLimiter(limit_config_from_settings(), clock=clock)
        self.security = security or Security()
        self.post_id: Optional[str] = None
        self.records: List[CommentRecord] = []
        self.loading = False
        self.error: Optional[str] = None
        self._generation = 0
        # serializes check, write and record so concurrent submits see each other
        self._submit_lock = asyncio.Lock()

    @property
    def submit_count(self) -> int:
        return self.limiter.count

    def tree(self) -> List[CommentNode]:
        return build_comment_tree(self.records)

    async def open(self, post_id: str) -> None:
        """view `post_id`: switch (and reset the throttle) if it is a different post, then load"""
        if post_id != self.post_id:
            self.post_id = post_id
            self.records = []
            self.limiter.reset()
        await self.fetch_comments()

    async def fetch_comments(self) -> None:
        if self.post_id is None:
            return
        self._generation += 1
        generation = self._generation
        post_id = self.post_id

        self.loading = True
        self.error = None
        query = (
            self.store.table("comments").select("*")
            .eq("post_id", post_id)
            .order("created_at", ascending=True)
        )
        result = await asyncio.to_thread(query.execute)

        if generation != self._generation:
            app_logger.debug("comments.discarded", post_id=post_id)
            return
        self.loading = False
        if result.error:
            self.error = LOAD_FAILED
            app_logger.error("comments.load_failed", post_id=post_id, error=result.error)
            return
        self.records = [CommentRecord.model_validate(row) for row in result.data or []]

    async def submit(self, content: str, author_name: str, author_email: str,
                     parent_id: Optional[str] = None) -> None:
        """Validate, throttle, write, then reload the post's comments.

        Raises CommentValidationError / RateLimitExceededError before any write,
        RecordStoreError if the write fails.
        """
        if self.post_id is None:
            raise RuntimeError("no post opened")
        self.security.validate_comment(content, author_name, author_email)
        row = {
            "post_id": self.post_id,
            "parent_id": parent_id or None,
            "content": sanitize_html(content.strip()),
            "author_name": author_name.strip(),
            "author_email": author_email.strip(),
        }

        async with self._submit_lock:
            now = self.clock()
            self.limiter.check(now)

            query = self.store.table("comments").insert([row])
            result = await asyncio.to_thread(query.execute)
            if result.error:
                app_logger.error("comments.submit_failed", post_id=self.post_id, error=result.error)
                raise RecordStoreError("comments", result.error)

            self.limiter.record(now)
        app_logger.info("comments.submitted", post_id=self.post_id, parent_id=parent_id,
                        count=self.limiter.count)
        await self.fetch_comments()

    async def reply(self, parent_id: str, content: str, author_name: str, author_email: str) -> None:
        await self.submit(content, author_name, author_email, parent_id=parent_id)

    async def reset(self) -> None:
        """clear the throttle and reload"""
        self.limiter.reset()
        await self.fetch_comments()


class CommentSessionRegistry:
    """In-memory comment threads keyed by session id, oldest evicted first."""

    def __init__(self, factory: Callable[[], CommentThread], max_sessions: int = 1000):
        self._factory = factory
        self._max_sessions = max_sessions
        self._threads: "OrderedDict[str, CommentThread]" = OrderedDict()

    def get(self, session_id: str) -> CommentThread:
        thread = self._threads.get(session_id)
        if thread is None:
            thread = self._factory()
            self._threads[session_id] = thread
            while len(self._threads) > self._max_sessions:
                evicted, _ = self._threads.popitem(last=False)
                app_logger.debug("comments.session_evicted", session_id=evicted)
        else:
            self._threads.move_to_end(session_id)
        return thread

    def discard(self, session_id: str) -> None:
        self._threads.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._threads)

    def sessions(self) -> Dict[str, CommentThread]:
        return dict(self._threads)
