from repository_factory.domain.ports.entity import EntityContract
from repository_factory.domain.ports.repository import (
    AsyncGenericRepository,
    Filter,
    GenericRepository,
    Include,
)

__all__ = ["EntityContract", "GenericRepository", "AsyncGenericRepository", "Filter", "Include"]
