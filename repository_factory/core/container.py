import logging
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator, Optional

from sqlalchemy import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker
from sqlalchemy.orm import sessionmaker

from repository_factory.adapters.persistence.sqlalchemy.factory import (
    AsyncRepositoryFactory,
    RepositoryFactory,
)
from repository_factory.core import database
from repository_factory.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class Container:
    """
    Registration glue.

    Engines and session makers are lazy singletons; factories are scoped:
    every call to repository_factory() / scope() opens a fresh session that
    belongs to exactly one unit of work.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        # Lazy Singletons
        self._engine: Optional[Engine] = None
        self._async_engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._async_session_factory: Optional[async_sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = database.build_engine(self.settings.DATABASE_URL, echo=self.settings.SQL_ECHO)
        return self._engine

    @property
    def async_engine(self) -> AsyncEngine:
        if self._async_engine is None:
            self._async_engine = database.build_async_engine(
                self.settings.ASYNC_DATABASE_URL, echo=self.settings.SQL_ECHO
            )
        return self._async_engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = database.build_session_factory(self.engine)
        return self._session_factory

    @property
    def async_session_factory(self) -> async_sessionmaker:
        if self._async_session_factory is None:
            self._async_session_factory = database.build_async_session_factory(self.async_engine)
        return self._async_session_factory

    # --- Scoped ---

    def repository_factory(self) -> RepositoryFactory:
        """New factory on the shared engine; the caller must close it."""
        return RepositoryFactory(self.session_factory)

    def async_repository_factory(self) -> AsyncRepositoryFactory:
        return AsyncRepositoryFactory(self.async_session_factory)

    @contextmanager
    def scope(self) -> Iterator[RepositoryFactory]:
        with self.repository_factory() as factory:
            yield factory

    @asynccontextmanager
    async def async_scope(self) -> AsyncIterator[AsyncRepositoryFactory]:
        async with self.async_repository_factory() as factory:
            yield factory

    def dispose(self) -> None:
        """Dispose the sync engine. Use adispose() when an async engine was built."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None

    async def adispose(self) -> None:
        self.dispose()
        if self._async_engine is not None:
            await self._async_engine.dispose()
            self._async_engine = None
            self._async_session_factory = None
        logger.debug("Container engines disposed.")


# Global Container Instance
container = Container()


async def get_repository_factory() -> AsyncIterator[AsyncRepositoryFactory]:
    """
    Per-request dependency (e.g. FastAPI ``Depends``).
    The factory is closed when the request finishes.
    """
    async with container.async_scope() as factory:
        yield factory
