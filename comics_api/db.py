"""Store dependency for FastAPI routes."""

from __future__ import annotations

from fastapi import Request

from comics_api.store import ComicStore


def get_store(request: Request) -> ComicStore:
    """FastAPI dependency returning the store owned by the running app."""
    return request.app.state.store
