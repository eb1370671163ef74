"""Starter catalog inserted into an empty store."""

from __future__ import annotations

from comics_api import schemas

SEED_COMICS: tuple[schemas.CreateComicRequest, ...] = (
    schemas.CreateComicRequest(
        title="Spider-Man: No Way Home",
        author="Stan Lee",
        publisher="Marvel Comics",
        year=2021,
        genre="Superhero",
        description=(
            "Peter Parker's identity is revealed and he seeks help from "
            "Doctor Strange."
        ),
        price=15.99,
        in_stock=True,
    ),
    schemas.CreateComicRequest(
        title="Batman: The Dark Knight Returns",
        author="Frank Miller",
        publisher="DC Comics",
        year=1986,
        genre="Superhero",
        description="An aged Batman comes out of retirement in a dystopian future.",
        price=24.99,
        in_stock=True,
    ),
    schemas.CreateComicRequest(
        title="Watchmen",
        author="Alan Moore",
        publisher="DC Comics",
        year=1987,
        genre="Superhero",
        description="A complex tale of retired superheroes in an alternate 1985.",
        price=29.99,
        in_stock=False,
    ),
)

__all__ = ["SEED_COMICS"]
