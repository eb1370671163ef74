"""Tests covering both comic store backends directly."""

from __future__ import annotations

import sqlite3
from typing import AsyncIterator

import pytest
import pytest_asyncio

from comics_api import schemas
from comics_api.config import Settings
from comics_api.errors import InvalidIdError, NotFoundError, StoreError, ValidationError
from comics_api.seed import SEED_COMICS
from comics_api.store import (
    MAX_COMIC_ID,
    ComicStore,
    InMemoryComicStore,
    SQLiteComicStore,
    _write_transaction,
    build_store,
    parse_comic_id,
    text_contains,
)


@pytest_asyncio.fixture(params=["sqlite", "memory"])
async def store(request, tmp_path) -> AsyncIterator[ComicStore]:
    """An opened, empty store of each kind."""
    if request.param == "sqlite":
        backend: ComicStore = SQLiteComicStore(tmp_path / "comics.db")
    else:
        backend = InMemoryComicStore()
    await backend.open()
    try:
        yield backend
    finally:
        await backend.close()


def _request(**overrides) -> schemas.CreateComicRequest:
    fields = {"title": "T", "author": "A", "publisher": "P"} | overrides
    return schemas.CreateComicRequest(**fields)


def test_parse_comic_id_accepts_positive_integers():
    assert parse_comic_id("1") == 1
    assert parse_comic_id("000042") == 42
    assert parse_comic_id(7) == 7
    assert parse_comic_id(str(MAX_COMIC_ID)) == MAX_COMIC_ID


@pytest.mark.parametrize(
    "raw", ["", "abc", "-1", "0", "1.5", " 1", "64b1f0c2e4b0a1a2b3c4d5e6", True, 0]
)
def test_parse_comic_id_rejects_malformed(raw):
    with pytest.raises(InvalidIdError):
        parse_comic_id(raw)


def test_parse_comic_id_rejects_ids_beyond_sqlite_range():
    with pytest.raises(InvalidIdError):
        parse_comic_id(str(MAX_COMIC_ID + 1))


def test_text_contains_is_case_insensitive_and_literal():
    assert text_contains("Superhero", "SUPER")
    assert text_contains("Superhero", "hero")
    assert not text_contains("Superhero", "s.per")
    assert not text_contains(None, "x")


def test_build_store_selects_backend(tmp_path):
    assert isinstance(build_store(Settings(store="memory")), InMemoryComicStore)
    sqlite_store = build_store(Settings(store="sqlite", db_path=tmp_path / "x.db"))
    assert isinstance(sqlite_store, SQLiteComicStore)
    assert sqlite_store.db_path == tmp_path / "x.db"


@pytest.mark.asyncio()
async def test_create_assigns_ids_and_defaults(store: ComicStore):
    first = await store.create(_request())
    second = await store.create(_request(title="Second"))

    assert first.id != second.id
    assert first.genre == "Unknown"
    assert first.description == ""
    assert first.price == 0
    assert first.in_stock is True
    assert first.updated_at is None
    assert first.created_at.tzinfo is not None
    assert await store.count() == 2


@pytest.mark.asyncio()
async def test_create_rejects_before_persisting(store: ComicStore):
    with pytest.raises(ValidationError, match="required"):
        await store.create(schemas.CreateComicRequest(title="Only a title"))
    with pytest.raises(ValidationError, match="Price must be between"):
        await store.create(_request(price=-0.01))
    assert await store.count() == 0


@pytest.mark.asyncio()
async def test_get_round_trips_created_comic(store: ComicStore):
    created = await store.create(
        _request(year=1986, genre="Noir", description="d", price=12.5, in_stock=False)
    )
    fetched = await store.get(str(created.id))
    assert fetched == created


@pytest.mark.asyncio()
async def test_get_errors(store: ComicStore):
    with pytest.raises(NotFoundError):
        await store.get("999999")
    with pytest.raises(InvalidIdError):
        await store.get("not-an-id")


@pytest.mark.asyncio()
async def test_update_merges_and_stamps(store: ComicStore):
    created = await store.create(_request(genre="Horror"))
    updated = await store.update(
        created.id, schemas.UpdateComicRequest(title="Renamed", in_stock=False)
    )

    assert updated.id == created.id
    assert updated.title == "Renamed"
    assert updated.in_stock is False
    assert updated.genre == "Horror"
    assert updated.created_at == created.created_at
    assert updated.updated_at is not None
    assert await store.get(created.id) == updated


@pytest.mark.asyncio()
async def test_update_validates_only_supplied_fields(store: ComicStore):
    created = await store.create(_request())
    with pytest.raises(ValidationError, match="Year must be between"):
        await store.update(created.id, schemas.UpdateComicRequest(year=1899))
    with pytest.raises(ValidationError, match="must not be empty"):
        await store.update(created.id, schemas.UpdateComicRequest(author=" "))
    with pytest.raises(ValidationError, match="At least one field"):
        await store.update(created.id, schemas.UpdateComicRequest())

    unchanged = await store.get(created.id)
    assert unchanged == created


@pytest.mark.asyncio()
async def test_update_missing_and_invalid(store: ComicStore):
    with pytest.raises(NotFoundError):
        await store.update("424242", schemas.UpdateComicRequest(title="x"))
    with pytest.raises(InvalidIdError):
        await store.update("zzz", schemas.UpdateComicRequest(title="x"))


@pytest.mark.asyncio()
async def test_delete_is_permanent(store: ComicStore):
    created = await store.create(_request())
    deleted = await store.delete(created.id)
    assert deleted == created

    with pytest.raises(NotFoundError):
        await store.get(created.id)
    with pytest.raises(NotFoundError):
        await store.delete(created.id)
    with pytest.raises(InvalidIdError):
        await store.delete("-3")


@pytest.mark.asyncio()
async def test_ids_are_not_reused_after_delete(store: ComicStore):
    first = await store.create(_request())
    await store.delete(first.id)
    second = await store.create(_request())
    assert second.id != first.id


@pytest.mark.asyncio()
async def test_list_filters_and_counts(store: ComicStore):
    await store.create(_request(title="One", genre="Superhero", publisher="Marvel"))
    await store.create(_request(title="Two", genre="SUPERnatural", publisher="DC"))
    await store.create(
        _request(title="Three", genre="Romance", publisher="DC", in_stock=False)
    )

    page = await store.list_comics(schemas.ComicFilters())
    assert page.count == page.total == 3
    assert [comic.title for comic in page.comics] == ["Three", "Two", "One"]

    page = await store.list_comics(schemas.ComicFilters(genre="super"))
    assert [comic.title for comic in page.comics] == ["Two", "One"]
    assert page.count == 2
    assert page.total == 3

    page = await store.list_comics(schemas.ComicFilters(publisher="dc", in_stock=True))
    assert [comic.title for comic in page.comics] == ["Two"]

    page = await store.list_comics(schemas.ComicFilters(in_stock=False))
    assert [comic.title for comic in page.comics] == ["Three"]


@pytest.mark.asyncio()
async def test_seed_if_empty_is_idempotent(store: ComicStore):
    assert await store.seed_if_empty() == len(SEED_COMICS)
    assert await store.seed_if_empty() == 0
    assert await store.count() == len(SEED_COMICS)


@pytest.mark.asyncio()
async def test_closed_store_raises_store_error(store: ComicStore):
    await store.close()
    assert store.connected is False
    with pytest.raises(StoreError):
        await store.ping()
    with pytest.raises(StoreError):
        await store.count()


@pytest.mark.asyncio()
async def test_sqlite_schema_rejects_out_of_range_rows(tmp_path):
    backend = SQLiteComicStore(tmp_path / "comics.db")
    await backend.open()
    try:
        conn = backend._require_conn()
        with pytest.raises(sqlite3.IntegrityError):
            await conn.execute(
                "INSERT INTO comics (title, author, publisher, year, price, created_at)"
                " VALUES ('t', 'a', 'p', 2000, 5000, '2020-01-01T00:00:00+00:00')"
            )
    finally:
        await backend.close()


def _insert_from_second_connection(db_path) -> None:
    conn = sqlite3.connect(db_path, timeout=0)
    try:
        conn.execute(
            "INSERT INTO comics (title, author, publisher, year, created_at)"
            " VALUES ('Other', 'Writer', 'P', 2000, '2020-01-01T00:00:00+00:00')"
        )
        conn.commit()
    finally:
        conn.close()


@pytest.mark.asyncio()
async def test_sqlite_failed_update_releases_write_lock(tmp_path):
    db_path = tmp_path / "comics.db"
    backend = SQLiteComicStore(db_path)
    await backend.open()
    try:
        await backend.create(_request())
        with pytest.raises(NotFoundError):
            await backend.update("999", schemas.UpdateComicRequest(title="X"))

        _insert_from_second_connection(db_path)
        assert await backend.count() == 2
    finally:
        await backend.close()


@pytest.mark.asyncio()
async def test_sqlite_failed_write_rolls_back_and_releases_lock(tmp_path):
    db_path = tmp_path / "comics.db"
    backend = SQLiteComicStore(db_path)
    await backend.open()
    try:
        created = await backend.create(_request())
        conn = backend._require_conn()
        with pytest.raises(StoreError, match="update failed"):
            async with _write_transaction(conn, "update"):
                await conn.execute(
                    "UPDATE comics SET title = 'Changed' WHERE id = ?", (created.id,)
                )
                await conn.execute("UPDATE comics SET price = 5000")

        assert await backend.get(created.id) == created
        _insert_from_second_connection(db_path)
        assert await backend.count() == 2
    finally:
        await backend.close()
