"""Tests for engine wiring."""

from __future__ import annotations

from decimal import Decimal

import pytest

from catalog_sync.adapters.http_catalog_page_fetcher import HttpCatalogPageFetcher
from catalog_sync.adapters.in_memory_catalog_page_fetcher import InMemoryCatalogPageFetcher
from catalog_sync.domain.catalog import ProductSummary
from catalog_sync.domain.errors import NotFoundError
from catalog_sync.domain.filters import PendingRange
from catalog_sync.infra.config import EngineSettings
from catalog_sync.infra.factory import (
    build_catalog_session,
    build_fetcher,
    build_price_range_controller,
    build_search_suggestions,
)


@pytest.fixture
def fetcher() -> InMemoryCatalogPageFetcher:
    return InMemoryCatalogPageFetcher(
        [
            ProductSummary(id="1", name="Lego castle", slug="a", brand="Lego", price=Decimal("120")),
            ProductSummary(id="2", name="Hasbro game", slug="b", brand="Hasbro", price=Decimal("880")),
        ]
    )


def test_build_fetcher_requires_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CATALOG_API_BASE_URL", raising=False)

    with pytest.raises(RuntimeError):
        build_fetcher(EngineSettings())


def test_build_fetcher_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_API_BASE_URL", "https://shop.example.test/api")

    assert isinstance(build_fetcher(EngineSettings()), HttpCatalogPageFetcher)


def test_build_catalog_session_resolves_view_name(fetcher: InMemoryCatalogPageFetcher) -> None:
    session = build_catalog_session("brand:lego", fetcher=fetcher)

    assert session.view.is_locked("brand")


def test_build_catalog_session_unknown_view(fetcher: InMemoryCatalogPageFetcher) -> None:
    with pytest.raises(NotFoundError):
        build_catalog_session("outlet", fetcher=fetcher)


@pytest.mark.asyncio
async def test_price_controller_follows_session(fetcher: InMemoryCatalogPageFetcher) -> None:
    """The controller is seeded from the bounds of every settled result."""
    session = build_catalog_session("products", fetcher=fetcher)
    controller = build_price_range_controller(session, EngineSettings())

    await session.mount("minPrice=300")

    assert controller.bounds.min == 120
    assert controller.bounds.max == 880
    assert controller.pending == PendingRange(300, 880)

    controller.set_min(200)
    await session.apply_patch(controller.release())

    assert session.committed.min_price == 200
    assert session.committed.max_price == 880


@pytest.mark.asyncio
async def test_search_suggestions_use_settings(fetcher: InMemoryCatalogPageFetcher) -> None:
    results: list[tuple[str, list[ProductSummary]]] = []
    suggestions = build_search_suggestions(
        on_result=lambda text, products: results.append((text, products)),
        fetcher=fetcher,
        settings=EngineSettings(search_debounce_seconds=0.01, search_min_length=2),
    )

    suggestions.submit("ca")
    await suggestions.wait_idle()

    assert [p.id for _, products in results for p in products] == ["1"]
    assert fetcher.calls[0].limit == 5
