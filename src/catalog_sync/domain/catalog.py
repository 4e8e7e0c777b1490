from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class ProductSummary:
    id: str
    name: str
    slug: str
    brand: str
    price: Decimal
    condition: str = "New"
    in_stock: bool = True
    average_rating: float = 0.0
    categories: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AvailableFilters:
    """
    Server-reported metadata for the current result set.

    Bounds what the UI may offer, not what the user has chosen. Sequences
    keep the order the server returned them in (relevance order).
    """

    min_price: int = 0
    max_price: int = 0
    available_brands: tuple[str, ...] = ()
    available_categories: tuple[str, ...] = ()
    conditions: tuple[str, ...] = ()
    rating_options: tuple[int, ...] = ()
    in_stock_count: int = 0
    total_products: int = 0


@dataclass(frozen=True, slots=True)
class CatalogPageResult:
    products: list[ProductSummary]
    total_pages: int = 0
    total_products: int = 0
    current_page: int = 1
    available_filters: AvailableFilters = field(default_factory=AvailableFilters)
