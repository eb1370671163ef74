"""Comic CRUD endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from comics_api import schemas
from comics_api.db import get_store
from comics_api.errors import ValidationError
from comics_api.store import ComicStore

router = APIRouter(prefix="/comics", tags=["comics"])

_STOCK_TRUE = {"1", "true", "t", "yes", "y", "on"}
_STOCK_FALSE = {"0", "false", "f", "no", "n", "off"}


def parse_stock_flag(value: str | None) -> bool | None:
    """Read the ``inStock`` query value; blank means no stock filter."""
    if value is None or not value.strip():
        return None
    lowered = value.strip().lower()
    if lowered in _STOCK_TRUE:
        return True
    if lowered in _STOCK_FALSE:
        return False
    raise ValidationError(f"inStock: expected true or false, got {value!r}")


@router.get(
    "",
    response_model=schemas.ComicListResponse,
    response_model_exclude_none=True,
)
async def list_comics(
    *,
    store: ComicStore = Depends(get_store),
    genre: str | None = Query(
        default=None, description="Case-insensitive substring of the genre"
    ),
    publisher: str | None = Query(
        default=None, description="Case-insensitive substring of the publisher"
    ),
    in_stock: str | None = Query(
        default=None,
        alias="inStock",
        description="Exact stock status (true/false); blank means any",
    ),
) -> schemas.ComicListResponse:
    """Return every comic matching the optional filters, newest first."""
    filters = schemas.ComicFilters(
        genre=genre, publisher=publisher, in_stock=parse_stock_flag(in_stock)
    )
    page = await store.list_comics(filters)
    return schemas.ComicListResponse(
        data=page.comics,
        count=page.count,
        total=page.total,
        filters=filters,
    )


@router.post(
    "",
    response_model=schemas.ComicResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_comic(
    request: schemas.CreateComicRequest,
    store: ComicStore = Depends(get_store),
) -> schemas.ComicResponse:
    """Create a comic; the store assigns its id and timestamps."""
    comic = await store.create(request)
    return schemas.ComicResponse(data=comic, message="Comic created successfully")


@router.get(
    "/{comic_id}",
    response_model=schemas.ComicResponse,
    response_model_exclude_none=True,
)
async def get_comic(
    comic_id: str, store: ComicStore = Depends(get_store)
) -> schemas.ComicResponse:
    """Fetch a single comic by identifier."""
    comic = await store.get(comic_id)
    return schemas.ComicResponse(data=comic)


@router.put(
    "/{comic_id}",
    response_model=schemas.ComicResponse,
    response_model_exclude_none=True,
)
async def update_comic(
    comic_id: str,
    request: schemas.UpdateComicRequest,
    store: ComicStore = Depends(get_store),
) -> schemas.ComicResponse:
    """Apply a partial update; absent fields keep their stored values."""
    comic = await store.update(comic_id, request)
    return schemas.ComicResponse(data=comic, message="Comic updated successfully")


@router.delete(
    "/{comic_id}",
    response_model=schemas.ComicResponse,
    response_model_exclude_none=True,
)
async def delete_comic(
    comic_id: str, store: ComicStore = Depends(get_store)
) -> schemas.ComicResponse:
    """Remove a comic permanently and return what was deleted."""
    comic = await store.delete(comic_id)
    return schemas.ComicResponse(data=comic, message="Comic deleted successfully")


__all__ = ["router"]
