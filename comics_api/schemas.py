"""Pydantic schema definitions for the comics API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base model with conservative defaults and camelCase JSON."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ComicBase(APIModel):
    """Fields shared by every stored comic."""

    title: str
    author: str
    publisher: str
    year: int
    genre: str = "Unknown"
    description: str = ""
    price: float = 0
    in_stock: bool = True


class Comic(ComicBase):
    """Representation of a stored comic."""

    id: int = Field(description="Store assigned identifier")
    created_at: datetime
    updated_at: datetime | None = Field(
        default=None, description="Unset until the first update"
    )


class CreateComicRequest(APIModel):
    """Payload accepted when creating a comic.

    Required fields are optional at the type level so missing values are
    reported by the comic rules rather than by the schema parser.
    """

    title: str | None = None
    author: str | None = None
    publisher: str | None = None
    year: int | None = None
    genre: str | None = None
    description: str | None = None
    price: float | None = None
    in_stock: bool | None = None


class UpdateComicRequest(APIModel):
    """Partial update; only fields present in the payload are applied."""

    title: str | None = None
    author: str | None = None
    publisher: str | None = None
    year: int | None = None
    genre: str | None = None
    description: str | None = None
    price: float | None = None
    in_stock: bool | None = None

    def changes(self) -> dict[str, Any]:
        """Return the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class ComicFilters(APIModel):
    """Optional constraints for the list endpoint."""

    genre: str | None = None
    publisher: str | None = None
    in_stock: bool | None = None


class ComicPage(APIModel):
    """Result of a list query."""

    comics: list[Comic]
    count: int = Field(description="Number of comics matching the filters")
    total: int = Field(description="Number of comics in the store")


class Envelope(APIModel):
    """Uniform wrapper for every comics response."""

    success: bool = True
    message: str | None = None
    error: str | None = None


class ComicResponse(Envelope):
    """Envelope carrying a single comic."""

    data: Comic


class ComicListResponse(Envelope):
    """Envelope carrying a filtered comic listing."""

    data: list[Comic]
    count: int
    total: int
    filters: ComicFilters


class ErrorResponse(Envelope):
    """Envelope returned for every failure."""

    success: bool = False
    error: str


class HealthResponse(APIModel):
    """Liveness report including store connectivity."""

    status: str
    timestamp: datetime
    service: str
    version: str
    environment: str
    database: str
    total_comics: int


__all__ = [
    "APIModel",
    "Comic",
    "ComicBase",
    "ComicFilters",
    "ComicListResponse",
    "ComicPage",
    "ComicResponse",
    "CreateComicRequest",
    "Envelope",
    "ErrorResponse",
    "HealthResponse",
    "UpdateComicRequest",
]
