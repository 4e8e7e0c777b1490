"""
Wiring for presentation layers.

Builds engine components from environment configuration so callers only
choose a view and supply their callbacks.
"""

from __future__ import annotations

from typing import Callable

from catalog_sync.adapters.http_catalog_page_fetcher import HttpCatalogPageFetcher
from catalog_sync.domain.catalog import ProductSummary
from catalog_sync.domain.views import ViewConfig, ViewRegistry
from catalog_sync.infra.config import EngineSettings, api_base_url, load_settings
from catalog_sync.ports.catalog_page_fetcher import CatalogPageFetcher
from catalog_sync.use_cases.catalog_session import CatalogSession
from catalog_sync.use_cases.debounced_query import DebouncedQuery, catalog_search_query
from catalog_sync.use_cases.range_input_controller import RangeInputController


def build_fetcher(settings: EngineSettings | None = None) -> CatalogPageFetcher:
    """
    Raises:
        RuntimeError: If CATALOG_API_BASE_URL is not set
    """
    settings = settings or load_settings()
    return HttpCatalogPageFetcher(api_base_url(), timeout=settings.request_timeout_seconds)


def build_catalog_session(
    view: ViewConfig | str,
    url_writer: Callable[[str], None] | None = None,
    fetcher: CatalogPageFetcher | None = None,
) -> CatalogSession:
    if isinstance(view, str):
        view = ViewRegistry().resolve(view)
    return CatalogSession(fetcher or build_fetcher(), view, url_writer=url_writer)


def build_search_suggestions(
    on_result: Callable[[str, list[ProductSummary]], None],
    on_error: Callable[[str, Exception], None] | None = None,
    on_clear: Callable[[bool], None] | None = None,
    fetcher: CatalogPageFetcher | None = None,
    settings: EngineSettings | None = None,
) -> DebouncedQuery[list[ProductSummary]]:
    settings = settings or load_settings()
    return DebouncedQuery(
        catalog_search_query(fetcher or build_fetcher(settings)),
        on_result=on_result,
        on_error=on_error,
        on_clear=on_clear,
        quiet_period=settings.search_debounce_seconds,
        min_length=settings.search_min_length,
    )


def build_price_range_controller(
    session: CatalogSession,
    settings: EngineSettings | None = None,
) -> RangeInputController:
    """
    Create a price range controller that re-seeds whenever the session's
    committed range or reported bounds change.
    """
    settings = settings or load_settings()
    controller = RangeInputController(cooldown_seconds=settings.range_cooldown_seconds)

    def on_change(current: CatalogSession) -> None:
        bounds = current.price_bounds
        if bounds is not None:
            controller.sync(current.price_range, bounds)

    session.subscribe(on_change)
    return controller
