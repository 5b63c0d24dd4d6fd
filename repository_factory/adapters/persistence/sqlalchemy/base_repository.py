import logging
from typing import Any, Generic, Iterable, List, Optional, Type, TypeVar, Union

from sqlalchemy import inspect
from sqlalchemy.exc import MultipleResultsFound
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from repository_factory.adapters.persistence.sqlalchemy import query
from repository_factory.adapters.persistence.sqlalchemy.context import (
    AsyncPersistenceContext,
    PersistenceContext,
)
from repository_factory.core.errors import InvalidArgumentError, MultipleResultsError
from repository_factory.domain.ports.repository import Filter, Include

logger = logging.getLogger(__name__)

E = TypeVar("E")


class _RepositoryBase(Generic[E]):
    """Checks shared by both flavours; none of them touch the database."""

    model_cls: Type[E]

    def _check_entity(self, entity: Any, argument: str = "entity") -> Any:
        query.require_entity(entity, argument)
        if not isinstance(entity, self.model_cls):
            raise InvalidArgumentError(
                argument, f"expected {self.model_cls.__name__}, got {type(entity).__name__}"
            )
        return entity

    def _check_batch(self, entities: Optional[Iterable[E]]) -> List[E]:
        batch = query.require_entities(entities)
        for entity in batch:
            self._check_entity(entity, "entities")
        return batch

    def _check_removable(self, entity: Any, argument: str = "entity") -> Any:
        self._check_entity(entity, argument)
        state = inspect(entity)
        if state.transient and getattr(entity, "id", None) is None:
            raise InvalidArgumentError(argument, f"{argument} was never stored")
        return entity

    def _stored(self, stored: Optional[E], entity: Any) -> E:
        if stored is None:
            raise InvalidArgumentError("entity", f"No stored {self.model_cls.__name__} with id {entity.id}")
        return stored

    def _log_fields(self, **fields: Any) -> dict:
        return {"entity": self.model_cls.__name__, **fields}

    def _multiple(self) -> MultipleResultsError:
        return MultipleResultsError(f"More than one {self.model_cls.__name__} matched the filter.")

    def __repr__(self) -> str:
        return f"<{type(self).__name__}[{self.model_cls.__name__}]>"


class SqlAlchemyRepository(_RepositoryBase[E]):
    """
    Generic repository over one mapped entity class and a shared Session.

    add/update/remove only stage changes in the session; nothing reaches the
    database until save() commits them as one unit.
    """

    def __init__(self, context: Union[PersistenceContext, Session], model_cls: Type[E]):
        if context is None:
            raise InvalidArgumentError("context", "context must not be None")
        query.check_entity_class(model_cls)
        if isinstance(context, Session):
            # Borrowed session: the caller stays responsible for closing it
            context = PersistenceContext(context)
        self.context = context
        self.model_cls = model_cls

    @property
    def session(self) -> Session:
        return self.context.session

    # -------------------- CREATE --------------------

    def add(self, entity: E) -> None:
        self._check_entity(entity)
        self.session.add(entity)

    def add_range(self, entities: Iterable[E]) -> None:
        batch = self._check_batch(entities)
        self.session.add_all(batch)
        logger.debug(
            "Staged %d %s for insert", len(batch), self.model_cls.__name__,
            extra=self._log_fields(staged=len(batch)),
        )

    # -------------------- READ --------------------

    def find(self, filter: Filter, include: Optional[Include] = None) -> Optional[E]:
        stmt = query.select_statement(self.model_cls, query.require_filter(filter), include)
        result = self.session.execute(stmt)
        try:
            return result.scalars().unique().one_or_none()
        except MultipleResultsFound as exc:
            raise self._multiple() from exc

    def get(
        self,
        filter: Optional[Filter] = None,
        page_number: int = 1,
        page_size: int = 10,
        include: Optional[Include] = None,
    ) -> List[E]:
        stmt = query.page_statement(self.model_cls, filter, page_number, page_size, include)
        result = self.session.execute(stmt)
        return list(result.scalars().unique().all())

    def count(self, filter: Optional[Filter] = None) -> int:
        stmt = query.count_statement(self.model_cls, filter)
        return self.session.execute(stmt).scalar_one()

    def exists(self, filter: Filter) -> bool:
        stmt = query.exists_statement(self.model_cls, filter)
        return bool(self.session.execute(stmt).scalar())

    # -------------------- UPDATE --------------------

    def update(self, entity: E) -> None:
        query.require_identified(self._check_entity(entity))
        session = self.session
        state = inspect(entity)
        if state.persistent or state.pending:
            # Already tracked; the session records attribute changes itself
            return
        if state.detached and session.identity_map.get(state.key) is None:
            session.add(entity)
            return
        stored = self._stored(session.get(self.model_cls, entity.id), entity)
        entity.created_at = stored.created_at
        session.merge(entity)

    # -------------------- DELETE --------------------

    def remove(self, entity: E) -> None:
        self._stage_delete(self._removal_target(entity))

    def remove_range(self, entities: Iterable[E]) -> None:
        batch = self._check_batch(entities)
        # Every row is resolved before the first delete is staged
        targets = [self._removal_target(entity, "entities") for entity in batch]
        for target in targets:
            self._stage_delete(target)
        logger.debug(
            "Staged %d %s for delete", len(targets), self.model_cls.__name__,
            extra=self._log_fields(staged=len(targets)),
        )

    def _removal_target(self, entity: Any, argument: str = "entity") -> E:
        self._check_removable(entity, argument)
        state = inspect(entity)
        if state.pending or state.persistent:
            return entity
        return self._stored(self.session.get(self.model_cls, entity.id), entity)

    def _stage_delete(self, target: E) -> None:
        session = self.session
        if inspect(target).persistent:
            session.delete(target)
        elif target in session:
            # Never flushed: dropping it from the session un-stages the insert
            session.expunge(target)

    # -------------------- SAVE / UNIT OF WORK --------------------

    def save(self) -> None:
        session = self.session
        try:
            session.commit()
        except Exception as exc:
            logger.error("Commit failed for %s: %s", self.model_cls.__name__, exc, extra=self._log_fields())
            try:
                session.rollback()
            except Exception:
                logger.exception("Rollback after failed commit also failed for %s", self.model_cls.__name__)
            raise


class AsyncSqlAlchemyRepository(_RepositoryBase[E]):
    """Async twin of SqlAlchemyRepository over an AsyncSession."""

    def __init__(self, context: Union[AsyncPersistenceContext, AsyncSession], model_cls: Type[E]):
        if context is None:
            raise InvalidArgumentError("context", "context must not be None")
        query.check_entity_class(model_cls)
        if isinstance(context, AsyncSession):
            context = AsyncPersistenceContext(context)
        self.context = context
        self.model_cls = model_cls

    @property
    def session(self) -> AsyncSession:
        return self.context.session

    async def add(self, entity: E) -> None:
        self._check_entity(entity)
        self.session.add(entity)

    async def add_range(self, entities: Iterable[E]) -> None:
        batch = self._check_batch(entities)
        self.session.add_all(batch)
        logger.debug(
            "Staged %d %s for insert", len(batch), self.model_cls.__name__,
            extra=self._log_fields(staged=len(batch)),
        )

    async def find(self, filter: Filter, include: Optional[Include] = None) -> Optional[E]:
        stmt = query.select_statement(self.model_cls, query.require_filter(filter), include)
        result = await self.session.execute(stmt)
        try:
            return result.scalars().unique().one_or_none()
        except MultipleResultsFound as exc:
            raise self._multiple() from exc

    async def get(
        self,
        filter: Optional[Filter] = None,
        page_number: int = 1,
        page_size: int = 10,
        include: Optional[Include] = None,
    ) -> List[E]:
        stmt = query.page_statement(self.model_cls, filter, page_number, page_size, include)
        result = await self.session.execute(stmt)
        return list(result.scalars().unique().all())

    async def count(self, filter: Optional[Filter] = None) -> int:
        stmt = query.count_statement(self.model_cls, filter)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def exists(self, filter: Filter) -> bool:
        stmt = query.exists_statement(self.model_cls, filter)
        result = await self.session.execute(stmt)
        return bool(result.scalar())

    async def update(self, entity: E) -> None:
        query.require_identified(self._check_entity(entity))
        session = self.session
        state = inspect(entity)
        if state.persistent or state.pending:
            return
        if state.detached and session.identity_map.get(state.key) is None:
            session.add(entity)
            return
        stored = self._stored(await session.get(self.model_cls, entity.id), entity)
        entity.created_at = stored.created_at
        await session.merge(entity)

    async def remove(self, entity: E) -> None:
        await self._stage_delete(await self._removal_target(entity))

    async def remove_range(self, entities: Iterable[E]) -> None:
        batch = self._check_batch(entities)
        targets = [await self._removal_target(entity, "entities") for entity in batch]
        for target in targets:
            await self._stage_delete(target)
        logger.debug(
            "Staged %d %s for delete", len(targets), self.model_cls.__name__,
            extra=self._log_fields(staged=len(targets)),
        )

    async def _removal_target(self, entity: Any, argument: str = "entity") -> E:
        self._check_removable(entity, argument)
        state = inspect(entity)
        if state.pending or state.persistent:
            return entity
        return self._stored(await self.session.get(self.model_cls, entity.id), entity)

    async def _stage_delete(self, target: E) -> None:
        session = self.session
        if inspect(target).persistent:
            await session.delete(target)
        elif target in session:
            session.expunge(target)

    async def save(self) -> None:
        session = self.session
        try:
            await session.commit()
        except Exception as exc:
            logger.error("Commit failed for %s: %s", self.model_cls.__name__, exc, extra=self._log_fields())
            try:
                await session.rollback()
            except Exception:
                logger.exception("Rollback after failed commit also failed for %s", self.model_cls.__name__)
            raise
