"""
Repository factories.

A factory owns exactly one session for its whole lifetime and mints
repositories bound to it. Every repository from the same factory shares that
session, so a change staged through one repository is committed by save() on
any other.

Thread-safety: none. A session (and therefore a factory and everything it
created) must only be used by one thread or one asyncio task at a time. Use
one factory per logical unit of work (request, job, command) and never share
it across concurrent callers.

Always release a factory, preferably with ``with`` / ``async with``:

    with RepositoryFactory(session_factory) as factory:
        users = factory.create_repository(User)
        users.add(User(name="John Doe"))
        users.save()
"""

import logging
from typing import Callable, Optional, Type, TypeVar

from sqlalchemy import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import Session

from repository_factory.adapters.persistence.sqlalchemy.base_repository import (
    AsyncSqlAlchemyRepository,
    SqlAlchemyRepository,
)
from repository_factory.adapters.persistence.sqlalchemy.context import (
    AsyncPersistenceContext,
    PersistenceContext,
)
from repository_factory.core import database
from repository_factory.core.config import Settings
from repository_factory.core.errors import ClosedResourceError, InvalidArgumentError

logger = logging.getLogger(__name__)

E = TypeVar("E")


class RepositoryFactory:
    def __init__(self, session_factory: Callable[[], Session], engine: Optional[Engine] = None):
        """
        session_factory: sessionmaker (or any zero-arg callable) producing the owned Session.
        engine: when given, the factory owns it too and disposes it on close().
        """
        if session_factory is None:
            raise InvalidArgumentError("session_factory", "session_factory must not be None")
        self._engine = engine
        self._closed = False
        # Eager: the session exists from construction on
        self.context = PersistenceContext(session_factory())
        logger.debug("RepositoryFactory opened a session.")

    @classmethod
    def from_url(cls, url: str, **engine_kwargs) -> "RepositoryFactory":
        engine = database.build_engine(url, **engine_kwargs)
        try:
            return cls(database.build_session_factory(engine), engine=engine)
        except Exception:
            engine.dispose()
            raise

    @classmethod
    def from_settings(cls, settings: Settings) -> "RepositoryFactory":
        return cls.from_url(settings.DATABASE_URL, echo=settings.SQL_ECHO)

    @property
    def closed(self) -> bool:
        return self._closed

    def create_repository(self, entity_cls: Type[E]) -> SqlAlchemyRepository[E]:
        if self._closed:
            raise ClosedResourceError("RepositoryFactory has been closed.")
        return SqlAlchemyRepository(self.context, entity_cls)

    def close(self) -> None:
        """Release the owned session (and engine). Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.context.close()
        if self._engine is not None:
            self._engine.dispose()
        logger.debug("RepositoryFactory closed.")

    def __enter__(self) -> "RepositoryFactory":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        try:
            if exc_type and not self.context.closed:
                self.context.session.rollback()
        finally:
            self.close()


class AsyncRepositoryFactory:
    def __init__(
        self,
        session_factory: Callable[[], AsyncSession],
        engine: Optional[AsyncEngine] = None,
    ):
        if session_factory is None:
            raise InvalidArgumentError("session_factory", "session_factory must not be None")
        self._engine = engine
        self._closed = False
        self.context = AsyncPersistenceContext(session_factory())
        logger.debug("AsyncRepositoryFactory opened a session.")

    @classmethod
    def from_url(cls, url: str, **engine_kwargs) -> "AsyncRepositoryFactory":
        engine = database.build_async_engine(url, **engine_kwargs)
        try:
            return cls(database.build_async_session_factory(engine), engine=engine)
        except Exception:
            # Nothing was checked out yet, so the sync pool can be released here
            engine.sync_engine.dispose()
            raise

    @classmethod
    def from_settings(cls, settings: Settings) -> "AsyncRepositoryFactory":
        return cls.from_url(settings.ASYNC_DATABASE_URL, echo=settings.SQL_ECHO)

    @property
    def closed(self) -> bool:
        return self._closed

    def create_repository(self, entity_cls: Type[E]) -> AsyncSqlAlchemyRepository[E]:
        if self._closed:
            raise ClosedResourceError("AsyncRepositoryFactory has been closed.")
        return AsyncSqlAlchemyRepository(self.context, entity_cls)

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.context.close()
        if self._engine is not None:
            await self._engine.dispose()
        logger.debug("AsyncRepositoryFactory closed.")

    async def __aenter__(self) -> "AsyncRepositoryFactory":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        try:
            if exc_type and not self.context.closed:
                await self.context.session.rollback()
        finally:
            await self.aclose()
