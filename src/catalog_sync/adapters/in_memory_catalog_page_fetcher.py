from __future__ import annotations

import math
from dataclasses import replace

from catalog_sync.domain.catalog import AvailableFilters, CatalogPageResult, ProductSummary
from catalog_sync.domain.filters import FilterState, SortBy
from catalog_sync.ports.catalog_page_fetcher import CatalogPageFetcher


RATING_OPTIONS = (4, 3, 2, 1)


class InMemoryCatalogPageFetcher(CatalogPageFetcher):
    """
    Canonical contract implementation for tests and demos.

    - Stores products in insertion order (treated as newest first)
    - Applies AND-semantics across keys, OR-semantics within a set key
    - Applies paging AFTER filtering and sorting
    - Reports available filters for the result set ignoring the price filter,
      so the price slider bounds do not collapse onto the chosen range
    - ``age_range`` is not modelled on products and is ignored
    """

    def __init__(self, products: list[ProductSummary]) -> None:
        self._products = products
        self.calls: list[FilterState] = []

    async def fetch_page(self, query: FilterState) -> CatalogPageResult:
        self.calls.append(query)

        unpriced = replace(query, min_price=None, max_price=None)
        candidates = [p for p in self._products if self._matches(p, unpriced)]
        matches = [p for p in candidates if self._matches_price(p, query)]
        matches = self._sorted(matches, query.sort_by)

        total = len(matches)
        total_pages = math.ceil(total / query.limit) if total else 0
        start = (query.page - 1) * query.limit
        page_items = matches[start : start + query.limit]

        return CatalogPageResult(
            products=page_items,
            total_pages=total_pages,
            total_products=total,
            current_page=query.page,
            available_filters=self._available_filters(candidates, matches),
        )

    def _matches(self, product: ProductSummary, query: FilterState) -> bool:
        if query.category:
            wanted = {c.lower() for c in query.category}
            if not wanted & {c.lower() for c in product.categories}:
                return False
        if query.brand and product.brand.lower() not in {b.lower() for b in query.brand}:
            return False
        if query.condition and product.condition not in query.condition:
            return False
        if query.rating is not None and product.average_rating < query.rating:
            return False
        if query.in_stock and not product.in_stock:
            return False
        if query.search and query.search.lower() not in product.name.lower():
            return False
        return True

    @staticmethod
    def _matches_price(product: ProductSummary, query: FilterState) -> bool:
        if query.min_price is not None and product.price < query.min_price:
            return False
        if query.max_price is not None and product.price > query.max_price:
            return False
        return True

    @staticmethod
    def _sorted(products: list[ProductSummary], sort_by: SortBy) -> list[ProductSummary]:
        if sort_by == SortBy.PRICE_LOW:
            return sorted(products, key=lambda p: p.price)
        if sort_by == SortBy.PRICE_HIGH:
            return sorted(products, key=lambda p: p.price, reverse=True)
        if sort_by == SortBy.RATING:
            return sorted(products, key=lambda p: p.average_rating, reverse=True)
        return list(products)

    @staticmethod
    def _available_filters(
        candidates: list[ProductSummary], matches: list[ProductSummary]
    ) -> AvailableFilters:
        if not candidates:
            return AvailableFilters()

        prices = [p.price for p in candidates]
        return AvailableFilters(
            min_price=math.floor(min(prices)),
            max_price=math.ceil(max(prices)),
            available_brands=tuple(dict.fromkeys(p.brand for p in candidates)),
            available_categories=tuple(
                dict.fromkeys(c for p in candidates for c in p.categories)
            ),
            conditions=tuple(dict.fromkeys(p.condition for p in candidates)),
            rating_options=RATING_OPTIONS,
            in_stock_count=sum(1 for p in matches if p.in_stock),
            total_products=len(matches),
        )
