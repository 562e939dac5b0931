import time
from typing import Callable, Optional

from sqlalchemy.orm import Session
from sqlalchemy import delete
from sqlmodel import col, select

from inkpost.models.cache_entry import CacheEntryRow
from inkpost.services.database import SessionLocal
from inkpost.utils.log import app_logger


class CacheStorage:
    """Persistent string-keyed storage for cached page data.

    Behaves like a browser's origin storage: synchronous get/set/remove of
    text values, last write wins per key. Values are stored as given; decoding
    and freshness checks belong to the caller.
    """

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        with self._session_factory() as db:
            row = db.get(CacheEntryRow, key)
            return row.value if row is not None else None

    def set(self, key: str, value: str) -> None:
        with self._session_factory() as db:
            row = db.get(CacheEntryRow, key)
            now_ms = int(time.time() * 1000)
            if row is None:
                row = CacheEntryRow(key=key, value=value, stored_at_ms=now_ms)
            else:
                row.value = value
                row.stored_at_ms = now_ms
            db.add(row)
            db.commit()

    def remove(self, key: str) -> None:
        with self._session_factory() as db:
            db.execute(delete(CacheEntryRow).where(col(CacheEntryRow.key) == key))
            db.commit()
        app_logger.debug("cache.removed", key=key)

    def remove_prefix(self, prefix: str) -> int:
        """remove every key starting with `prefix` (paged listings); returns the count"""
        with self._session_factory() as db:
            keys = db.execute(
                select(CacheEntryRow.key).where(col(CacheEntryRow.key).startswith(prefix, autoescape=True))
            ).scalars().all()
            if keys:
                db.execute(delete(CacheEntryRow).where(col(CacheEntryRow.key).in_(keys)))
                db.commit()
        app_logger.debug("cache.removed_prefix", prefix=prefix, count=len(keys))
        return len(keys)


# module-level storage instance used by the app
cache_storage = CacheStorage()
