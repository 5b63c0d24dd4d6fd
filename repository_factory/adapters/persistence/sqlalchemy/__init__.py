from repository_factory.adapters.persistence.sqlalchemy.base_repository import (
    AsyncSqlAlchemyRepository,
    SqlAlchemyRepository,
)
from repository_factory.adapters.persistence.sqlalchemy.context import (
    AsyncPersistenceContext,
    PersistenceContext,
)
from repository_factory.adapters.persistence.sqlalchemy.factory import (
    AsyncRepositoryFactory,
    RepositoryFactory,
)

__all__ = [
    "SqlAlchemyRepository",
    "AsyncSqlAlchemyRepository",
    "PersistenceContext",
    "AsyncPersistenceContext",
    "RepositoryFactory",
    "AsyncRepositoryFactory",
]
