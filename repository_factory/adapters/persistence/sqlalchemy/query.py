"""
Argument validation and statement composition shared by the sync and async
repositories.

Both flavours build their statements here and differ only in how they execute
them, so filter/include/pagination rules are defined exactly once:

* ``include`` receives ``select(Entity)`` and may add loader options, joins or
  an ``order_by``; the filter is applied on top of whatever it returns.
* pagination is offset based: skip ``(page_number - 1) * page_size`` rows and
  take ``page_size``.
* every check raises ``InvalidArgumentError`` before any I/O happens.
"""

from typing import Any, Iterable, List, Optional

from sqlalchemy import func, inspect, literal, select
from sqlalchemy.sql.expression import ClauseElement, ColumnElement, Select

from repository_factory.core.errors import InvalidArgumentError
from repository_factory.domain.ports.repository import Filter, Include

ENTITY_ATTRIBUTES = ("id", "created_at", "updated_at")


def check_entity_class(entity_cls: Any) -> None:
    """Reject classes that are not mapped or lack the entity columns."""
    mapper = inspect(entity_cls, raiseerr=False) if isinstance(entity_cls, type) else None
    if mapper is None:
        raise InvalidArgumentError("entity_cls", f"{entity_cls!r} is not a mapped entity class")
    missing = [name for name in ENTITY_ATTRIBUTES if name not in mapper.attrs]
    if missing:
        raise InvalidArgumentError(
            "entity_cls", f"{entity_cls.__name__} is missing entity attributes: {', '.join(missing)}"
        )


def require_entity(entity: Any, argument: str = "entity") -> Any:
    if entity is None:
        raise InvalidArgumentError(argument, f"{argument} must not be None")
    return entity


def require_identified(entity: Any, argument: str = "entity") -> Any:
    require_entity(entity, argument)
    if getattr(entity, "id", None) is None:
        raise InvalidArgumentError(argument, f"{argument} has no id; add and save it first")
    return entity


def require_entities(entities: Optional[Iterable[Any]], argument: str = "entities") -> List[Any]:
    """Materialize a batch once; None, empty or None-containing batches are rejected."""
    if entities is None:
        raise InvalidArgumentError(argument, "Entities collection is null or empty.")
    try:
        batch = list(entities)
    except TypeError as exc:
        raise InvalidArgumentError(argument, f"{argument} must be iterable") from exc
    if not batch:
        raise InvalidArgumentError(argument, "Entities collection is null or empty.")
    if any(entity is None for entity in batch):
        raise InvalidArgumentError(argument, f"{argument} must not contain None")
    return batch


def require_filter(filter: Optional[Filter]) -> Filter:
    if filter is None:
        raise InvalidArgumentError("filter", "filter must not be None")
    return filter


def _require_positive(value: Any, argument: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidArgumentError(argument, f"{argument} must be an integer >= 1, got {value!r}")
    return value


def require_page(page_number: Any, page_size: Any) -> None:
    _require_positive(page_number, "page_number")
    _require_positive(page_size, "page_size")


def resolve_filter(entity_cls: Any, filter: Optional[Filter]) -> Optional[ColumnElement[bool]]:
    if filter is None:
        return None
    clause = filter
    if not isinstance(clause, ClauseElement) and callable(clause):
        clause = clause(entity_cls)
    if not isinstance(clause, ClauseElement):
        # e.g. a plain Python bool from comparing an unmapped attribute
        raise InvalidArgumentError("filter", f"filter must be a SQL expression, got {type(clause).__name__}")
    return clause


def select_statement(entity_cls: Any, filter: Optional[Filter] = None, include: Optional[Include] = None) -> Select:
    stmt = select(entity_cls)
    if include is not None:
        stmt = include(stmt)
    clause = resolve_filter(entity_cls, filter)
    if clause is not None:
        stmt = stmt.where(clause)
    return stmt


def page_statement(
    entity_cls: Any,
    filter: Optional[Filter],
    page_number: int,
    page_size: int,
    include: Optional[Include],
) -> Select:
    require_page(page_number, page_size)
    stmt = select_statement(entity_cls, filter, include)
    return stmt.offset((page_number - 1) * page_size).limit(page_size)


def count_statement(entity_cls: Any, filter: Optional[Filter] = None) -> Select:
    stmt = select(func.count()).select_from(entity_cls)
    clause = resolve_filter(entity_cls, filter)
    if clause is not None:
        stmt = stmt.where(clause)
    return stmt


def exists_statement(entity_cls: Any, filter: Filter) -> Select:
    clause = resolve_filter(entity_cls, require_filter(filter))
    return select(select(literal(1)).select_from(entity_cls).where(clause).exists())
