from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetimes on every backend.

    SQLite drops the offset on the way in and hands back naive values, so
    naive values are read as UTC and aware ones are converted to UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    pass


class EntityBase:
    """
    Columns every repository-managed entity carries.

    Mix in ahead of Base:

        class User(EntityBase, Base):
            __tablename__ = "users"
            name = Column(String, nullable=False)
    """

    id = Column(Integer, primary_key=True, autoincrement=True)  # Assigned by the database on first save
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=utcnow)  # None = never modified

    def __init__(self, **kwargs):
        # Stamped at construction, not at insert
        kwargs.setdefault("created_at", utcnow())
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"
