"""
HTTP adapter for the storefront's unified ``GET /products`` endpoint.

Maps FilterState to the backend's query parameters and parses the
``{success, message, data}`` envelope into domain objects.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from catalog_sync.domain.catalog import AvailableFilters, CatalogPageResult, ProductSummary
from catalog_sync.domain.errors import FetchError
from catalog_sync.domain.filters import FilterState, SortBy
from catalog_sync.ports.catalog_page_fetcher import CatalogPageFetcher

logger = logging.getLogger(__name__)

# The backend has no "featured" ordering; it falls back to newest
BACKEND_SORT: dict[SortBy, str] = {
    SortBy.FEATURED: "newest",
    SortBy.NEWEST: "newest",
    SortBy.PRICE_LOW: "price-low",
    SortBy.PRICE_HIGH: "price-high",
    SortBy.RATING: "rating",
}


# ==============================================================================
# Wire models
# ==============================================================================


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NamedRefWire(_WireModel):
    name: str = ""


class ProductWire(_WireModel):
    id: str = Field(alias="_id")
    name: str
    slug: str = ""
    brand: NamedRefWire | None = None
    categories: list[NamedRefWire] = Field(default_factory=list)
    effective_price: Decimal = Field(default=Decimal("0"), alias="effectivePrice")
    condition: str = "New"
    has_stock: bool = Field(default=True, alias="hasStock")
    average_rating: float = Field(default=0.0, alias="averageRating")


class PaginationWire(_WireModel):
    current_page: int = Field(default=1, alias="currentPage")
    total_pages: int = Field(default=0, alias="totalPages")
    total_products: int = Field(default=0, alias="totalProducts")


class FiltersWire(_WireModel):
    min_price: float = Field(default=0, alias="minPrice")
    max_price: float = Field(default=0, alias="maxPrice")
    available_brands: list[str] = Field(default_factory=list, alias="availableBrands")
    available_categories: list[str] = Field(default_factory=list, alias="availableCategories")
    conditions: list[str] = Field(default_factory=list)
    rating_options: list[int] = Field(default_factory=list, alias="ratingOptions")
    in_stock_count: int = Field(default=0, alias="inStockCount")
    total_products: int = Field(default=0, alias="totalProducts")


class ProductsDataWire(_WireModel):
    products: list[ProductWire] = Field(default_factory=list)
    pagination: PaginationWire = Field(default_factory=PaginationWire)
    filters: FiltersWire = Field(default_factory=FiltersWire)


class ProductsResponseWire(_WireModel):
    success: bool = True
    message: str = ""
    data: ProductsDataWire


# ==============================================================================
# Adapter
# ==============================================================================


class HttpCatalogPageFetcher(CatalogPageFetcher):
    """Fetches catalog pages over HTTP with ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def fetch_page(self, query: FilterState) -> CatalogPageResult:
        url = f"{self._base_url}/products"
        params = self.to_params(query)

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            message = self._error_message(exc.response)
            logger.warning(
                "Catalog fetch failed",
                extra={"status_code": exc.response.status_code, "error_message": message},
            )
            raise FetchError(message, status_code=exc.response.status_code) from exc
        except httpx.RequestError as exc:
            logger.warning("Catalog fetch request error", extra={"error": str(exc)})
            raise FetchError("Failed to fetch products", error=str(exc)) from exc
        except ValueError as exc:
            raise FetchError("Failed to fetch products: response is not JSON") from exc

        try:
            envelope = ProductsResponseWire.model_validate(payload)
        except PydanticValidationError as exc:
            raise FetchError("Failed to fetch products: unexpected response shape") from exc

        if not envelope.success:
            raise FetchError(envelope.message or "Failed to fetch products")

        return self.to_result(envelope.data)

    @staticmethod
    def to_params(query: FilterState) -> dict[str, Any]:
        """Maps a FilterState to the backend's query parameters."""
        params: dict[str, Any] = {"page": query.page, "limit": query.limit}

        if query.search:
            params["search"] = query.search
        if query.brand:
            params["brand"] = ",".join(sorted(query.brand))
        if query.category:
            params["category"] = ",".join(sorted(query.category))
        if query.condition:
            params["condition"] = ",".join(sorted(query.condition))
        if query.in_stock:
            params["inStock"] = "true"
        if query.age_range:
            params["ageRange"] = query.age_range

        # The backend reads either spelling of the price bounds
        if query.min_price is not None and query.min_price > 0:
            params["minPrice"] = query.min_price
            params["price[gte]"] = query.min_price
        if query.max_price is not None and query.max_price > 0:
            params["maxPrice"] = query.max_price
            params["price[lte]"] = query.max_price

        if query.rating:
            params["rating[gte]"] = query.rating

        params["sort"] = BACKEND_SORT[query.sort_by]
        return params

    @staticmethod
    def to_result(data: ProductsDataWire) -> CatalogPageResult:
        filters = data.filters
        return CatalogPageResult(
            products=[
                ProductSummary(
                    id=product.id,
                    name=product.name,
                    slug=product.slug,
                    brand=product.brand.name if product.brand else "",
                    price=product.effective_price,
                    condition=product.condition,
                    in_stock=product.has_stock,
                    average_rating=product.average_rating,
                    categories=tuple(c.name for c in product.categories),
                )
                for product in data.products
            ],
            total_pages=data.pagination.total_pages,
            total_products=data.pagination.total_products,
            current_page=data.pagination.current_page,
            available_filters=AvailableFilters(
                min_price=math.floor(filters.min_price),
                max_price=math.ceil(filters.max_price),
                available_brands=tuple(filters.available_brands),
                available_categories=tuple(filters.available_categories),
                conditions=tuple(filters.conditions),
                rating_options=tuple(filters.rating_options),
                in_stock_count=filters.in_stock_count,
                total_products=filters.total_products,
            ),
        )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return "Failed to fetch products"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return "Failed to fetch products"
