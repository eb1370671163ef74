"""Storage backends for comics.

Two interchangeable stores implement the same ``ComicStore`` contract:
``SQLiteComicStore`` keeps comics in a SQLite file through ``aiosqlite`` and
``InMemoryComicStore`` keeps them in a lock-guarded dict for the lifetime of
the process. Both validate payloads before writing and raise the exceptions
from ``comics_api.errors``.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager, contextmanager
from datetime import UTC, datetime
from pathlib import Path
from threading import Lock
from typing import Any, AsyncIterator, Iterable, Iterator

import aiosqlite

from comics_api import schemas
from comics_api.config import STORE_MEMORY, Settings
from comics_api.errors import InvalidIdError, NotFoundError, StoreError
from comics_api.seed import SEED_COMICS
from comics_api.validation import (
    current_year,
    validate_comic_changes,
    validate_new_comic,
)

logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"[0-9]+")
# Largest value an SQLite INTEGER PRIMARY KEY can hold.
MAX_COMIC_ID = 2**63 - 1

_COLUMNS = (
    "id, title, author, publisher, year, genre, description, price, "
    "in_stock, created_at, updated_at"
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS comics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    author TEXT NOT NULL,
    publisher TEXT NOT NULL,
    year INTEGER NOT NULL CHECK (year >= 1900),
    genre TEXT NOT NULL DEFAULT 'Unknown',
    description TEXT NOT NULL DEFAULT '',
    price REAL NOT NULL DEFAULT 0 CHECK (price >= 0 AND price <= 1000),
    in_stock INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT
);
CREATE INDEX IF NOT EXISTS ix_comics_created_at ON comics (created_at);
"""


def parse_comic_id(raw: str | int) -> int:
    """Return the integer id for ``raw`` or raise ``InvalidIdError``."""
    if isinstance(raw, bool):
        raise InvalidIdError()
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and _ID_RE.fullmatch(raw):
        value = int(raw)
    else:
        raise InvalidIdError()
    if not 0 < value <= MAX_COMIC_ID:
        raise InvalidIdError()
    return value


def text_contains(haystack: str | None, needle: str) -> bool:
    """Case-insensitive literal substring match used by the list filters."""
    if haystack is None:
        return False
    return needle.casefold() in haystack.casefold()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ComicStore(ABC):
    """Contract shared by every comic backend."""

    kind: str

    @property
    @abstractmethod
    def connected(self) -> bool:
        """Whether the store can currently serve requests."""

    @abstractmethod
    async def open(self) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def ping(self) -> None:
        """Raise ``StoreError`` when the backing store is unreachable."""

    @abstractmethod
    async def count(self) -> int: ...

    @abstractmethod
    async def list_comics(self, filters: schemas.ComicFilters) -> schemas.ComicPage:
        """Return comics matching ``filters``, newest first."""

    @abstractmethod
    async def create(self, request: schemas.CreateComicRequest) -> schemas.Comic: ...

    @abstractmethod
    async def get(self, comic_id: str | int) -> schemas.Comic: ...

    @abstractmethod
    async def update(
        self, comic_id: str | int, request: schemas.UpdateComicRequest
    ) -> schemas.Comic: ...

    @abstractmethod
    async def delete(self, comic_id: str | int) -> schemas.Comic: ...

    async def seed_if_empty(
        self, records: Iterable[schemas.CreateComicRequest] = SEED_COMICS
    ) -> int:
        """Insert ``records`` only when the store holds no comics."""
        existing = await self.count()
        if existing:
            logger.debug("store already holds %s comics; skipping seed", existing)
            return 0
        inserted = 0
        for record in records:
            await self.create(record)
            inserted += 1
        logger.info("seeded %s comics into %s store", inserted, self.kind)
        return inserted

    @staticmethod
    def _new_comic_fields(request: schemas.CreateComicRequest) -> dict[str, Any]:
        """Validate a create payload and fill in defaults."""
        provided = request.model_dump(exclude_none=True)
        validate_new_comic(provided)
        fields: dict[str, Any] = {
            "title": provided["title"],
            "author": provided["author"],
            "publisher": provided["publisher"],
            "year": provided.get("year", current_year()),
            "genre": provided.get("genre", "Unknown"),
            "description": provided.get("description", ""),
            "price": provided.get("price", 0.0),
            "in_stock": provided.get("in_stock", True),
            "created_at": _utcnow(),
            "updated_at": None,
        }
        return fields

    @staticmethod
    def _changes(request: schemas.UpdateComicRequest) -> dict[str, Any]:
        changes = request.changes()
        validate_comic_changes(changes)
        return changes


class InMemoryComicStore(ComicStore):
    """Process-local store; contents vanish when the process exits."""

    kind = "memory"

    def __init__(self) -> None:
        self._comics: dict[int, schemas.Comic] = {}
        self._next_id = 1
        self._lock = Lock()
        self._open = False

    @property
    def connected(self) -> bool:
        return self._open

    async def open(self) -> None:
        self._open = True
        logger.info("in-memory comic store ready")

    async def close(self) -> None:
        self._open = False
        logger.info("in-memory comic store closed")

    async def ping(self) -> None:
        self._require_open()

    async def count(self) -> int:
        self._require_open()
        with self._lock:
            return len(self._comics)

    async def list_comics(self, filters: schemas.ComicFilters) -> schemas.ComicPage:
        self._require_open()
        with self._lock:
            everything = list(self._comics.values())
        matched = [comic for comic in everything if _matches(comic, filters)]
        matched.sort(key=lambda comic: (comic.created_at, comic.id), reverse=True)
        return schemas.ComicPage(
            comics=matched, count=len(matched), total=len(everything)
        )

    async def create(self, request: schemas.CreateComicRequest) -> schemas.Comic:
        self._require_open()
        fields = self._new_comic_fields(request)
        with self._lock:
            comic = schemas.Comic(id=self._next_id, **fields)
            self._comics[comic.id] = comic
            self._next_id += 1
        logger.info("created comic %s", comic.id)
        return comic

    async def get(self, comic_id: str | int) -> schemas.Comic:
        self._require_open()
        key = parse_comic_id(comic_id)
        with self._lock:
            comic = self._comics.get(key)
        if comic is None:
            raise NotFoundError()
        return comic

    async def update(
        self, comic_id: str | int, request: schemas.UpdateComicRequest
    ) -> schemas.Comic:
        self._require_open()
        key = parse_comic_id(comic_id)
        changes = self._changes(request)
        with self._lock:
            current = self._comics.get(key)
            if current is None:
                raise NotFoundError()
            updated = current.model_copy(
                update={**changes, "updated_at": _utcnow()}
            )
            self._comics[key] = updated
        logger.info("updated comic %s fields=%s", key, sorted(changes))
        return updated

    async def delete(self, comic_id: str | int) -> schemas.Comic:
        self._require_open()
        key = parse_comic_id(comic_id)
        with self._lock:
            comic = self._comics.pop(key, None)
        if comic is None:
            raise NotFoundError()
        logger.info("deleted comic %s", key)
        return comic

    def _require_open(self) -> None:
        if not self._open:
            raise StoreError("comic store is not open")


def _matches(comic: schemas.Comic, filters: schemas.ComicFilters) -> bool:
    if filters.genre and not text_contains(comic.genre, filters.genre):
        return False
    if filters.publisher and not text_contains(comic.publisher, filters.publisher):
        return False
    if filters.in_stock is not None and comic.in_stock != filters.in_stock:
        return False
    return True


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Translate sqlite failures into ``StoreError``."""
    try:
        yield
    except sqlite3.Error as exc:
        logger.exception("sqlite %s failed", action)
        raise StoreError(f"{action} failed: {exc}") from exc


@asynccontextmanager
async def _write_transaction(
    conn: aiosqlite.Connection, action: str
) -> AsyncIterator[None]:
    """Commit the statements run inside the block, or roll them back on error."""
    try:
        with _store_errors(action):
            yield
            await conn.commit()
    except BaseException:
        await conn.rollback()
        raise


class SQLiteComicStore(ComicStore):
    """Durable store backed by a single SQLite file."""

    kind = "sqlite"

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def connected(self) -> bool:
        return self._conn is not None

    async def open(self) -> None:
        if self._conn is not None:
            return
        with _store_errors(f"opening {self._db_path}"):
            conn = await aiosqlite.connect(self._db_path)
            try:
                conn.row_factory = aiosqlite.Row
                await conn.create_function(
                    "text_contains", 2, text_contains, deterministic=True
                )
                await conn.executescript(_SCHEMA)
                await conn.commit()
            except sqlite3.Error:
                await conn.close()
                raise
        self._conn = conn
        logger.info("opened comic database at %s", self._db_path)

    async def close(self) -> None:
        conn = self._conn
        if conn is None:
            return
        self._conn = None
        await conn.close()
        logger.info("closed comic database at %s", self._db_path)

    async def ping(self) -> None:
        conn = self._require_conn()
        with _store_errors("ping"):
            async with conn.execute("SELECT 1") as cursor:
                await cursor.fetchone()

    async def count(self) -> int:
        conn = self._require_conn()
        with _store_errors("count"):
            async with conn.execute("SELECT COUNT(*) FROM comics") as cursor:
                row = await cursor.fetchone()
        return int(row[0])

    async def list_comics(self, filters: schemas.ComicFilters) -> schemas.ComicPage:
        conn = self._require_conn()
        clauses: list[str] = []
        params: list[Any] = []
        if filters.genre:
            clauses.append("text_contains(genre, ?)")
            params.append(filters.genre)
        if filters.publisher:
            clauses.append("text_contains(publisher, ?)")
            params.append(filters.publisher)
        if filters.in_stock is not None:
            clauses.append("in_stock = ?")
            params.append(int(filters.in_stock))
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        with _store_errors("list"):
            async with conn.execute(
                f"""
                SELECT {_COLUMNS}
                FROM comics
                {where}
                ORDER BY created_at DESC, id DESC
                """,
                params,
            ) as cursor:
                rows = await cursor.fetchall()
            async with conn.execute("SELECT COUNT(*) FROM comics") as cursor:
                total_row = await cursor.fetchone()

        comics = [_row_to_comic(row) for row in rows]
        return schemas.ComicPage(
            comics=comics, count=len(comics), total=int(total_row[0])
        )

    async def create(self, request: schemas.CreateComicRequest) -> schemas.Comic:
        conn = self._require_conn()
        fields = self._new_comic_fields(request)
        params = fields | {"created_at": _format_timestamp(fields["created_at"])}
        async with _write_transaction(conn, "insert"):
            cursor = await conn.execute(
                """
                INSERT INTO comics (
                    title, author, publisher, year, genre, description,
                    price, in_stock, created_at, updated_at
                ) VALUES (
                    :title, :author, :publisher, :year, :genre, :description,
                    :price, :in_stock, :created_at, :updated_at
                )
                """,
                params,
            )
            comic_id = cursor.lastrowid
            await cursor.close()
        logger.info("created comic %s", comic_id)
        return schemas.Comic(id=comic_id, **fields)

    async def get(self, comic_id: str | int) -> schemas.Comic:
        key = parse_comic_id(comic_id)
        return await self._fetch(key)

    async def update(
        self, comic_id: str | int, request: schemas.UpdateComicRequest
    ) -> schemas.Comic:
        conn = self._require_conn()
        key = parse_comic_id(comic_id)
        changes = self._changes(request)
        params = changes | {
            "updated_at": _format_timestamp(_utcnow()),
            "comic_id": key,
        }
        assignments = ", ".join(
            f"{field} = :{field}" for field in [*changes, "updated_at"]
        )
        async with _write_transaction(conn, "update"):
            cursor = await conn.execute(
                f"UPDATE comics SET {assignments} WHERE id = :comic_id", params
            )
            try:
                if cursor.rowcount == 0:
                    raise NotFoundError()
            finally:
                await cursor.close()
        logger.info("updated comic %s fields=%s", key, sorted(changes))
        return await self._fetch(key)

    async def delete(self, comic_id: str | int) -> schemas.Comic:
        conn = self._require_conn()
        key = parse_comic_id(comic_id)
        comic = await self._fetch(key)
        async with _write_transaction(conn, "delete"):
            cursor = await conn.execute("DELETE FROM comics WHERE id = ?", (key,))
            try:
                if cursor.rowcount == 0:
                    raise NotFoundError()
            finally:
                await cursor.close()
        logger.info("deleted comic %s", key)
        return comic

    async def _fetch(self, key: int) -> schemas.Comic:
        conn = self._require_conn()
        with _store_errors("select"):
            async with conn.execute(
                f"SELECT {_COLUMNS} FROM comics WHERE id = ?", (key,)
            ) as cursor:
                row = await cursor.fetchone()
        if row is None:
            raise NotFoundError()
        return _row_to_comic(row)

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreError("database connection is closed")
        return self._conn


def _format_timestamp(value: datetime) -> str:
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _row_to_comic(row: sqlite3.Row) -> schemas.Comic:
    data = {key: row[key] for key in row.keys()}
    return schemas.Comic(**data)


def build_store(settings: Settings) -> ComicStore:
    """Return the store selected by ``settings.store``."""
    if settings.store == STORE_MEMORY:
        return InMemoryComicStore()
    return SQLiteComicStore(settings.db_path)


__all__ = [
    "ComicStore",
    "InMemoryComicStore",
    "MAX_COMIC_ID",
    "SQLiteComicStore",
    "build_store",
    "parse_comic_id",
    "text_contains",
]
