import os

import pytest
import pytest_asyncio

# Set test environment variables BEFORE any package imports
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_JSON", "false")

from repository_factory.adapters.persistence.sqlalchemy.factory import (
    AsyncRepositoryFactory,
    RepositoryFactory,
)
from repository_factory.core.database import (
    build_async_engine,
    build_async_session_factory,
    build_engine,
    build_session_factory,
    create_schema,
    create_schema_async,
)
from tests.models import Author, Book

DATABASE_URL = "sqlite://"
ASYNC_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def engine():
    engine = build_engine(DATABASE_URL, echo=False)
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def factory(session_factory):
    factory = RepositoryFactory(session_factory)
    yield factory
    factory.close()


@pytest.fixture
def other_factory(session_factory):
    """Second unit of work on the same database, for reading back committed state."""
    factory = RepositoryFactory(session_factory)
    yield factory
    factory.close()


@pytest.fixture
def authors(factory):
    return factory.create_repository(Author)


@pytest.fixture
def books(factory):
    return factory.create_repository(Book)


@pytest_asyncio.fixture
async def async_engine():
    engine = build_async_engine(ASYNC_DATABASE_URL, echo=False)
    await create_schema_async(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def async_session_factory(async_engine):
    return build_async_session_factory(async_engine)


@pytest_asyncio.fixture
async def async_factory(async_session_factory):
    factory = AsyncRepositoryFactory(async_session_factory)
    yield factory
    await factory.aclose()


@pytest_asyncio.fixture
async def async_other_factory(async_session_factory):
    factory = AsyncRepositoryFactory(async_session_factory)
    yield factory
    await factory.aclose()


@pytest.fixture
def async_authors(async_factory):
    return async_factory.create_repository(Author)


@pytest.fixture
def async_books(async_factory):
    return async_factory.create_repository(Book)
