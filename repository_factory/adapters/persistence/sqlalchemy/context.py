import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from repository_factory.core.errors import ClosedResourceError

logger = logging.getLogger(__name__)


class PersistenceContext:
    """
    Holds the session shared by every repository minted from one factory.

    Repositories keep a non-owning reference to this object and go through
    ``session`` for every operation, so once the owner closes it they fail
    with ClosedResourceError instead of touching a released session.
    """

    def __init__(self, session: Session):
        self._session: Optional[Session] = session

    @property
    def closed(self) -> bool:
        return self._session is None

    @property
    def session(self) -> Session:
        if self._session is None:
            raise ClosedResourceError("Persistence context has been closed.")
        return self._session

    def close(self) -> None:
        if self._session is None:
            return
        session, self._session = self._session, None
        session.close()
        logger.debug("Session closed.")


class AsyncPersistenceContext:
    def __init__(self, session: AsyncSession):
        self._session: Optional[AsyncSession] = session

    @property
    def closed(self) -> bool:
        return self._session is None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise ClosedResourceError("Persistence context has been closed.")
        return self._session

    async def close(self) -> None:
        if self._session is None:
            return
        session, self._session = self._session, None
        await session.close()
        logger.debug("Async session closed.")
