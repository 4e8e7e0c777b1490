"""
Dependency injection for FastAPI routes.

View configurations are rebuilt per request from a stateless registry; only
the registry itself is cached.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from catalog_sync.domain.views import ViewConfig, ViewRegistry
from catalog_sync.use_cases.edit_view_query import EditViewQuery


@lru_cache
def get_view_registry() -> ViewRegistry:
    return ViewRegistry()


def get_view(view_name: str, registry: ViewRegistry = Depends(get_view_registry)) -> ViewConfig:
    """
    Resolves the ``{view_name}`` path parameter.

    Raises:
        NotFoundError: If the view is unknown (translated to 404)
    """
    return registry.resolve(view_name)


def get_edit_view_query_use_case(view: ViewConfig = Depends(get_view)) -> EditViewQuery:
    return EditViewQuery(view)
