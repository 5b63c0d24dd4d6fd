from typing import Any, Callable, Iterable, List, Optional, Protocol, TypeVar, Union

from sqlalchemy.sql.expression import ColumnElement, Select

E = TypeVar("E")

# A boolean column expression, or a callable building one from the entity class
Filter = Union[ColumnElement[bool], Callable[[Any], ColumnElement[bool]]]
# Transforms the base SELECT (loader options, joins, ordering)
Include = Callable[[Select], Select]


class GenericRepository(Protocol[E]):
    """
    Generic Repository Interface.
    Staging (add/update/remove) is separated from committing (save).
    """

    # -------------------- CREATE --------------------

    def add(self, entity: E) -> None:
        """Stage a new entity for insertion."""
        ...

    def add_range(self, entities: Iterable[E]) -> None:
        """Stage a non-empty batch of new entities."""
        ...

    # -------------------- READ --------------------

    def find(self, filter: Filter, include: Optional[Include] = None) -> Optional[E]:
        """Single entity matching filter, or None."""
        ...

    def get(
        self,
        filter: Optional[Filter] = None,
        page_number: int = 1,
        page_size: int = 10,
        include: Optional[Include] = None,
    ) -> List[E]:
        """One page of matching entities."""
        ...

    def count(self, filter: Optional[Filter] = None) -> int:
        """Number of matching entities, ignoring pagination."""
        ...

    def exists(self, filter: Filter) -> bool:
        """True if at least one entity matches."""
        ...

    # -------------------- UPDATE --------------------

    def update(self, entity: E) -> None:
        """Stage a modification of an identified entity."""
        ...

    # -------------------- DELETE --------------------

    def remove(self, entity: E) -> None:
        ...

    def remove_range(self, entities: Iterable[E]) -> None:
        ...

    # -------------------- SAVE / UNIT OF WORK --------------------

    def save(self) -> None:
        """Commit all pending changes."""
        ...


class AsyncGenericRepository(Protocol[E]):
    """
    Async twin of GenericRepository.
    Same names, same semantics; every operation is awaited.
    """

    async def add(self, entity: E) -> None: ...

    async def add_range(self, entities: Iterable[E]) -> None: ...

    async def find(self, filter: Filter, include: Optional[Include] = None) -> Optional[E]: ...

    async def get(
        self,
        filter: Optional[Filter] = None,
        page_number: int = 1,
        page_size: int = 10,
        include: Optional[Include] = None,
    ) -> List[E]: ...

    async def count(self, filter: Optional[Filter] = None) -> int: ...

    async def exists(self, filter: Filter) -> bool: ...

    async def update(self, entity: E) -> None: ...

    async def remove(self, entity: E) -> None: ...

    async def remove_range(self, entities: Iterable[E]) -> None: ...

    async def save(self) -> None: ...
