"""
Generic repository and repository factory over SQLAlchemy.

    from repository_factory import RepositoryFactory

    with RepositoryFactory.from_url("sqlite:///app.db") as factory:
        users = factory.create_repository(User)
        if not users.exists(User.name == "John Doe"):
            users.add(User(name="John Doe", email=""))
            users.save()
"""

from repository_factory.adapters.persistence.sqlalchemy import (
    AsyncPersistenceContext,
    AsyncRepositoryFactory,
    AsyncSqlAlchemyRepository,
    PersistenceContext,
    RepositoryFactory,
    SqlAlchemyRepository,
)
from repository_factory.core.errors import (
    ClosedResourceError,
    InvalidArgumentError,
    MultipleResultsError,
    RepositoryError,
    StorageError,
)
from repository_factory.domain.ports import (
    AsyncGenericRepository,
    EntityContract,
    Filter,
    GenericRepository,
    Include,
)
from repository_factory.models import Base, EntityBase

__version__ = "0.1.0"

__all__ = [
    "AsyncGenericRepository",
    "AsyncPersistenceContext",
    "AsyncRepositoryFactory",
    "AsyncSqlAlchemyRepository",
    "Base",
    "ClosedResourceError",
    "EntityBase",
    "EntityContract",
    "Filter",
    "GenericRepository",
    "Include",
    "InvalidArgumentError",
    "MultipleResultsError",
    "PersistenceContext",
    "RepositoryError",
    "RepositoryFactory",
    "SqlAlchemyRepository",
    "StorageError",
]
