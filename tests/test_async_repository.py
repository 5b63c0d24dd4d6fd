import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from repository_factory.adapters.persistence.sqlalchemy.base_repository import AsyncSqlAlchemyRepository
from repository_factory.adapters.persistence.sqlalchemy.factory import AsyncRepositoryFactory
from repository_factory.core.errors import InvalidArgumentError, MultipleResultsError
from tests.models import Author, Book


async def _seed(repo, count, prefix="Author"):
    await repo.add_range([Author(name=f"{prefix} {i:02d}") for i in range(count)])
    await repo.save()


@pytest.mark.asyncio
async def test_add_then_save_assigns_id(async_authors):
    await async_authors.add(Author(name="John Doe", email=""))
    await async_authors.save()

    found = await async_authors.find(Author.name == "John Doe")

    assert found is not None
    assert found.id is not None


@pytest.mark.asyncio
async def test_add_rejects_none(async_authors):
    with pytest.raises(InvalidArgumentError):
        await async_authors.add(None)


@pytest.mark.asyncio
async def test_add_is_staged_until_save(async_authors):
    await async_authors.add(Author(name="Pending"))

    assert await async_authors.exists(Author.name == "Pending") is False

    await async_authors.save()

    assert await async_authors.exists(Author.name == "Pending") is True


@pytest.mark.asyncio
async def test_add_range_persists_whole_batch(async_authors):
    await _seed(async_authors, 4)
    assert await async_authors.count() == 4


@pytest.mark.asyncio
@pytest.mark.parametrize("entities", [None, []])
async def test_add_range_rejects_missing_or_empty(async_authors, entities):
    with pytest.raises(InvalidArgumentError):
        await async_authors.add_range(entities)


@pytest.mark.asyncio
async def test_find_requires_filter(async_authors):
    # Same contract as the sync repository: no filter is a caller error
    with pytest.raises(InvalidArgumentError):
        await async_authors.find(None)


@pytest.mark.asyncio
async def test_find_returns_none_without_match(async_authors):
    assert await async_authors.find(Author.name == "Nobody") is None


@pytest.mark.asyncio
async def test_find_raises_on_multiple_matches(async_authors):
    await async_authors.add_range([Author(name="Twin"), Author(name="Twin")])
    await async_authors.save()

    with pytest.raises(MultipleResultsError):
        await async_authors.find(Author.name == "Twin")


@pytest.mark.asyncio
async def test_find_with_include_eager_loads(async_authors, async_factory):
    author = Author(name="Tolkien")
    author.books = [Book(title="The Hobbit")]
    await async_authors.add(author)
    await async_authors.save()
    async_factory.context.session.expunge_all()

    found = await async_authors.find(
        Author.name == "Tolkien", include=lambda q: q.options(selectinload(Author.books))
    )

    # A lazy load here would need an await; eager loading makes it plain attribute access
    assert [b.title for b in found.books] == ["The Hobbit"]


@pytest.mark.asyncio
async def test_get_paginates_with_offset(async_authors):
    await _seed(async_authors, 25)
    ordered = lambda q: q.order_by(Author.id)  # noqa: E731

    sizes = []
    for page_number in (1, 2, 3, 4):
        sizes.append(len(await async_authors.get(page_number=page_number, page_size=10, include=ordered)))

    assert sizes == [10, 10, 5, 0]


@pytest.mark.asyncio
async def test_pages_concatenate_to_count(async_authors):
    await _seed(async_authors, 11)
    ordered = lambda q: q.order_by(Author.id)  # noqa: E731

    seen = []
    page_number = 1
    while True:
        page = await async_authors.get(page_number=page_number, page_size=3, include=ordered)
        if not page:
            break
        seen.extend(page)
        page_number += 1

    assert len(seen) == await async_authors.count() == 11
    assert len({a.id for a in seen}) == 11


@pytest.mark.asyncio
@pytest.mark.parametrize("page_number, page_size", [(0, 10), (1, 0)])
async def test_get_rejects_invalid_paging(async_authors, page_number, page_size):
    with pytest.raises(InvalidArgumentError):
        await async_authors.get(page_number=page_number, page_size=page_size)


@pytest.mark.asyncio
async def test_count_with_and_without_filter(async_authors):
    await _seed(async_authors, 6)

    assert await async_authors.count() == 6
    assert await async_authors.count(Author.name.in_(["Author 00", "Author 05"])) == 2


@pytest.mark.asyncio
async def test_exists_requires_filter(async_authors):
    with pytest.raises(InvalidArgumentError):
        await async_authors.exists(None)


@pytest.mark.asyncio
async def test_update_tracked_entity(async_authors, async_other_factory):
    author = Author(name="Before")
    await async_authors.add(author)
    await async_authors.save()

    author.name = "After"
    await async_authors.update(author)
    await async_authors.save()

    fresh = await async_other_factory.create_repository(Author).find(Author.id == author.id)
    assert fresh.name == "After"
    assert author.updated_at is not None


@pytest.mark.asyncio
async def test_update_rejects_unidentified_entity(async_authors):
    with pytest.raises(InvalidArgumentError):
        await async_authors.update(Author(name="No id"))


@pytest.mark.asyncio
async def test_update_merges_transient_entity_with_id(async_authors, async_session_factory):
    original = Author(name="Stored", email="stored@example.com")
    await async_authors.add(original)
    await async_authors.save()

    async with AsyncRepositoryFactory(async_session_factory) as writer:
        repo = writer.create_repository(Author)
        await repo.update(Author(id=original.id, name="Renamed"))
        await repo.save()

    async with AsyncRepositoryFactory(async_session_factory) as reader:
        fresh = await reader.create_repository(Author).find(Author.id == original.id)
        assert fresh.name == "Renamed"
        assert fresh.email == "stored@example.com"


@pytest.mark.asyncio
async def test_remove_and_remove_range(async_authors):
    await _seed(async_authors, 4)
    first = await async_authors.find(Author.name == "Author 00")
    rest = await async_authors.get(Author.name != "Author 00")

    await async_authors.remove(first)
    await async_authors.save()
    assert await async_authors.count() == 3

    await async_authors.remove_range(rest)
    await async_authors.save()
    assert await async_authors.count() == 0


@pytest.mark.asyncio
async def test_remove_rejects_never_stored_entity(async_authors):
    with pytest.raises(InvalidArgumentError):
        await async_authors.remove(Author(name="Never stored"))


@pytest.mark.asyncio
@pytest.mark.parametrize("entities", [None, []])
async def test_remove_range_rejects_missing_or_empty(async_authors, entities):
    with pytest.raises(InvalidArgumentError):
        await async_authors.remove_range(entities)


@pytest.mark.asyncio
async def test_remove_range_with_unknown_id_stages_nothing(async_authors, async_factory):
    await _seed(async_authors, 2)
    stored = await async_authors.find(Author.name == "Author 00")

    with pytest.raises(InvalidArgumentError):
        await async_authors.remove_range([stored, Author(id=999, name="Ghost")])

    assert len(async_factory.context.session.deleted) == 0
    await async_authors.save()
    assert await async_authors.count() == 2


@pytest.mark.asyncio
async def test_remove_range_resolves_transient_entities_with_id(async_authors, async_other_factory):
    await _seed(async_authors, 3)
    ids = [author.id for author in await async_authors.get(Author.name != "Author 01")]

    repo = async_other_factory.create_repository(Author)
    await repo.remove_range([Author(id=author_id, name="Stand-in") for author_id in ids])
    await repo.save()

    assert await async_authors.count() == 1


@pytest.mark.asyncio
async def test_failed_rollback_does_not_mask_commit_error(async_authors, async_factory, monkeypatch):
    await async_authors.add(Author(name=None))

    async def broken_rollback():
        raise RuntimeError("rollback failed")

    monkeypatch.setattr(async_factory.context.session, "rollback", broken_rollback)
    with pytest.raises(IntegrityError):
        await async_authors.save()


@pytest.mark.asyncio
async def test_save_propagates_storage_errors(async_authors):
    await async_authors.add(Author(name=None))

    with pytest.raises(IntegrityError):
        await async_authors.save()

    await async_authors.add(Author(name="Recovered"))
    await async_authors.save()
    assert await async_authors.count() == 1


@pytest.mark.asyncio
async def test_repository_over_borrowed_session(async_session_factory):
    async with async_session_factory() as session:
        repo = AsyncSqlAlchemyRepository(session, Author)
        await repo.add(Author(name="Borrowed"))
        await repo.save()

        assert await repo.count() == 1


@pytest.mark.asyncio
async def test_john_doe_scenario(async_authors):
    assert await async_authors.exists(Author.name == "John Doe") is False

    await async_authors.add(Author(name="John Doe", email=""))
    await async_authors.save()

    assert await async_authors.exists(Author.name == "John Doe") is True
