import asyncio
from typing import Any, Dict, Iterable, List, Optional

from inkpost.clients.record_store_client import RecordStoreClient, TableQuery
from inkpost.config.settings import settings
from inkpost.core.exceptions.exceptions import RecordNotFoundError, RecordStoreError
from inkpost.schemas.content import ColumnOut, PostIn, PostSummaryOut
from inkpost.services.cached_data import CachedData, now_ms
from inkpost.services.excerpt import extract_title, make_excerpt, truncate
from inkpost.utils.log import app_logger

HOMEPAGE_COLUMNS_KEY = "homepage_columns"
HOMEPAGE_POSTS_PREFIX = "homepage_posts:"


def homepage_posts_key(page: int) -> str:
    return f"{HOMEPAGE_POSTS_PREFIX}{page}"


def post_key(post_id: Any) -> str:
    return f"post:{post_id}"


def column_key(column_id: Any) -> str:
    return f"column:{column_id}"


def summarize_post(post: Dict[str, Any], excerpt_length: Optional[int] = None,
                   title_length: Optional[int] = None) -> PostSummaryOut:
    """list entry for a post: shortened title and plain-text excerpt"""
    title = post.get("title") or ""
    return PostSummaryOut(
        id=str(post.get("id")),
        title=truncate(title, title_length or settings.TITLE_LENGTH),
        full_title=title,
        excerpt=make_excerpt(post.get("content") or "", excerpt_length or settings.EXCERPT_LENGTH),
        created_at=post.get("created_at"),
    )


class ContentService:
    """Posts and columns: cached reads for the views, mutations with cache invalidation."""

    def __init__(self, store: Optional[RecordStoreClient] = None, storage=None, clock=now_ms):
        if storage is None:
            from inkpost.services.cache_storage import cache_storage as storage
        self.store = store or RecordStoreClient()
        self.storage = storage
        self.clock = clock

    async def _run(self, query: TableQuery) -> Any:
        result = await asyncio.to_thread(query.execute)
        if result.error:
            raise RecordStoreError(query.name, result.error)
        return result.data

    def _cell(self, key: str, producer, dependencies: Iterable[Any], ttl_ms: int,
              coalesce: bool = False) -> CachedData:
        return CachedData(key, producer, dependencies=tuple(dependencies), ttl_ms=ttl_ms,
                          storage=self.storage, clock=self.clock, coalesce=coalesce)

    # -- reads ---------------------------------------------------------------------
    async def fetch_columns(self) -> List[Dict[str, Any]]:
        query = self.store.table("columns").select("*").order("created_at", ascending=False)
        return await self._run(query) or []

    async def fetch_home_posts(self, page: int) -> List[Dict[str, Any]]:
        per_page = settings.POSTS_PER_PAGE
        query = (
            self.store.table("posts").select("*")
            .eq("is_published", True)
            .is_null("column_id")
            .order("created_at", ascending=False)
            .range((page - 1) * per_page, page * per_page - 1)
        )
        return await self._run(query) or []

    async def fetch_post(self, post_id: str) -> Dict[str, Any]:
        post = await self._run(self.store.table("posts").select("*").eq("id", post_id).single())
        if not post:
            raise RecordNotFoundError("posts", post_id)
        return post

    async def fetch_column_detail(self, column_id: str) -> Dict[str, Any]:
        column_query = self.store.table("columns").select("*").eq("id", column_id).single()
        posts_query = (
            self.store.table("posts").select("*")
            .eq("column_id", column_id)
            .eq("is_published", True)
            .order("created_at", ascending=False)
        )
        column, posts = await asyncio.gather(self._run(column_query), self._run(posts_query))
        if not column:
            raise RecordNotFoundError("columns", column_id)
        return {"column": column, "posts": posts or []}

    async def home_columns(self) -> CachedData:
        cell = self._cell(HOMEPAGE_COLUMNS_KEY, self.fetch_columns, (), settings.CACHE_TTL_COLUMNS_MS, coalesce=True)
        await cell.activate()
        return cell

    async def home_posts(self, page: int = 1) -> CachedData:
        cell = self._cell(homepage_posts_key(page), lambda: self.fetch_home_posts(page), (page,),
                          settings.CACHE_TTL_HOMEPAGE_POSTS_MS, coalesce=True)
        await cell.activate()
        return cell

    async def post_detail(self, post_id: str) -> CachedData:
        cell = self._cell(post_key(post_id), lambda: self.fetch_post(post_id), (post_id,),
                          settings.CACHE_TTL_DETAIL_MS)
        await cell.activate()
        return cell

    async def column_detail(self, column_id: str) -> CachedData:
        cell = self._cell(column_key(column_id), lambda: self.fetch_column_detail(column_id), (column_id,),
                          settings.CACHE_TTL_DETAIL_MS)
        await cell.activate()
        return cell

    async def column_choices(self) -> List[Dict[str, Any]]:
        """id/title of every column for the authoring form, always fresh"""
        query = self.store.table("columns").select("id,title").order("created_at", ascending=False)
        return await self._run(query) or []

    # -- mutations -------------------------------------------------------------
    def _remove_keys(self, keys: Iterable[str], prefix: Optional[str] = None) -> None:
        for key in keys:
            self.storage.remove(key)
        if prefix:
            self.storage.remove_prefix(prefix)

    async def invalidate_post(self, post_id: Any, column_ids: Iterable[Any] = ()) -> None:
        keys = [post_key(post_id)] + [column_key(c) for c in {c for c in column_ids if c}]
        await asyncio.to_thread(self._remove_keys, keys, HOMEPAGE_POSTS_PREFIX)

    async def invalidate_column(self, column_id: Any = None) -> None:
        keys = [HOMEPAGE_COLUMNS_KEY] + ([column_key(column_id)] if column_id else [])
        await asyncio.to_thread(self._remove_keys, keys)

    @staticmethod
    def _post_values(payload: PostIn) -> Dict[str, Any]:
        return {
            "title": extract_title(payload.content),
            "content": payload.content,
            "is_published": payload.is_published,
            "column_id": payload.column_id or None,
        }

    async def create_post(self, payload: PostIn, access_token: Optional[str] = None) -> Dict[str, Any]:
        query = self.store.table("posts", access_token=access_token).insert([self._post_values(payload)]).single()
        created = await self._run(query)
        if not created:
            raise RecordStoreError("posts", "insert returned no row")
        await self.invalidate_post(created.get("id"), [payload.column_id])
        app_logger.info("posts.created", post_id=created.get("id"))
        return created

    async def update_post(self, post_id: str, payload: PostIn, access_token: Optional[str] = None) -> Dict[str, Any]:
        existing = await self.fetch_post(post_id)
        query = (
            self.store.table("posts", access_token=access_token)
            .update(self._post_values(payload)).eq("id", post_id).single()
        )
        updated = await self._run(query)
        if not updated:
            raise RecordNotFoundError("posts", post_id)
        await self.invalidate_post(post_id, [existing.get("column_id"), payload.column_id])
        app_logger.info("posts.updated", post_id=post_id)
        return updated

    async def delete_post(self, post_id: str, access_token: Optional[str] = None) -> None:
        existing = await self.fetch_post(post_id)
        await self._run(self.store.table("posts", access_token=access_token).delete().eq("id", post_id))
        await self.invalidate_post(post_id, [existing.get("column_id")])
        app_logger.info("posts.deleted", post_id=post_id)

    async def create_column(self, title: str, description: str, access_token: Optional[str] = None) -> Dict[str, Any]:
        query = (
            self.store.table("columns", access_token=access_token)
            .insert([{"title": title.strip(), "description": description.strip()}]).single()
        )
        created = await self._run(query)
        if not created:
            raise RecordStoreError("columns", "insert returned no row")
        await self.invalidate_column()
        app_logger.info("columns.created", column_id=created.get("id"))
        return created

    async def delete_column(self, column_id: str, access_token: Optional[str] = None) -> None:
        await self._run(self.store.table("columns", access_token=access_token).delete().eq("id", column_id))
        await self.invalidate_column(column_id)
        app_logger.info("columns.deleted", column_id=column_id)


def column_out(column: Dict[str, Any]) -> ColumnOut:
    return ColumnOut(
        id=str(column.get("id")),
        title=column.get("title") or "",
        description=column.get("description"),
        created_at=column.get("created_at"),
    )
