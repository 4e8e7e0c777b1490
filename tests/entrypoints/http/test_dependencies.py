"""Tests for FastAPI dependency providers."""

from __future__ import annotations

import pytest

from catalog_sync.domain.errors import NotFoundError
from catalog_sync.entrypoints.http.dependencies import (
    get_edit_view_query_use_case,
    get_view,
    get_view_registry,
)
from catalog_sync.use_cases.edit_view_query import EditViewQuery


def test_view_registry_is_cached() -> None:
    """The registry is built once per process."""
    assert get_view_registry() is get_view_registry()


def test_get_view_resolves_route_views() -> None:
    view = get_view("category:board-games", get_view_registry())

    assert view.name == "category:board-games"
    assert view.is_locked("category")


def test_get_view_unknown_raises_not_found() -> None:
    with pytest.raises(NotFoundError):
        get_view("outlet", get_view_registry())


def test_get_edit_view_query_use_case() -> None:
    use_case = get_edit_view_query_use_case(get_view("clearance", get_view_registry()))

    assert isinstance(use_case, EditViewQuery)
