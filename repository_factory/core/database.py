import logging
import os
from typing import Any, Dict, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from repository_factory.core.config import settings
from repository_factory.models.base import Base

logger = logging.getLogger(__name__)


def _is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _is_memory_sqlite(url: str) -> bool:
    database = make_url(url).database
    return not database or database == ":memory:"


def _engine_args(url: str, echo: Optional[bool], overrides: Dict[str, Any]) -> Dict[str, Any]:
    engine_args: Dict[str, Any] = {
        "echo": settings.SQL_ECHO if echo is None else echo,
        "pool_pre_ping": settings.POOL_PRE_PING,
    }
    if _is_sqlite(url):
        if _is_memory_sqlite(url):
            # One shared connection, otherwise every checkout sees a fresh empty database
            engine_args.update({"poolclass": StaticPool, "connect_args": {"check_same_thread": False}})
        else:
            os.makedirs(os.path.dirname(os.path.abspath(make_url(url).database)), exist_ok=True)
    engine_args.update(overrides)
    return engine_args


def _install_sqlite_pragmas(sync_engine: Engine, memory: bool) -> None:
    @event.listens_for(sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not memory:
            # WAL mode reduces locking for file databases
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


def build_engine(url: Optional[str] = None, echo: Optional[bool] = None, **engine_kwargs) -> Engine:
    url = url or settings.DATABASE_URL
    engine = create_engine(url, **_engine_args(url, echo, engine_kwargs))
    if _is_sqlite(url):
        _install_sqlite_pragmas(engine, _is_memory_sqlite(url))
    logger.debug("Created engine for %s", engine.url.render_as_string(hide_password=True))
    return engine


def build_async_engine(url: Optional[str] = None, echo: Optional[bool] = None, **engine_kwargs) -> AsyncEngine:
    url = url or settings.ASYNC_DATABASE_URL
    engine = create_async_engine(url, **_engine_args(url, echo, engine_kwargs))
    if _is_sqlite(url):
        _install_sqlite_pragmas(engine.sync_engine, _is_memory_sqlite(url))
    logger.debug("Created async engine for %s", engine.url.render_as_string(hide_password=True))
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    # autoflush off: staged changes stay invisible to queries until save()
    return sessionmaker(engine, autoflush=False, expire_on_commit=False)


def build_async_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, autoflush=False, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    Base.metadata.create_all(engine)
    logger.info("Database schema created.")


def drop_schema(engine: Engine) -> None:
    Base.metadata.drop_all(engine)
    logger.info("Database schema dropped.")


async def create_schema_async(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema created.")


async def drop_schema_async(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Database schema dropped.")
