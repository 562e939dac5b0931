from sqlmodel import Field, SQLModel
from sqlalchemy import BigInteger, Column, Text


class CacheEntryRow(SQLModel, table=True):
    __tablename__ = "cache_entries"

    # opaque key of one logical query, e.g. "post:42"
    key: str = Field(primary_key=True, nullable=False)
    # serialized entry, kept as raw text so unreadable values can be detected on read
    value: str = Field(sa_column=Column(Text, nullable=False))
    stored_at_ms: int = Field(sa_column=Column(BigInteger, nullable=False))
