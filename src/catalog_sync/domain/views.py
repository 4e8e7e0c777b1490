from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping

from catalog_sync.domain.errors import NotFoundError
from catalog_sync.domain.filters import Condition, FilterState, SortBy


CLEARANCE_CATEGORY = "clearance-collection"

DEFAULT_SORT_REWRITES: Mapping[str, SortBy] = {
    "featured": SortBy.FEATURED,
    "newest": SortBy.NEWEST,
    "price-low": SortBy.PRICE_LOW,
    "price-high": SortBy.PRICE_HIGH,
    "rating": SortBy.RATING,
    "popular": SortBy.FEATURED,  # legacy links
}

NEW_OR_REFURBISHED = frozenset({Condition.NEW.value, Condition.REFURBISHED.value})


@dataclass(frozen=True)
class ViewConfig:
    """
    Per-view configuration injected into the engine.

    A view owns a set of locked keys: fields it forces to a fixed value and
    forbids the user or the URL from changing. ``defaults`` always reflects
    the locked values.

    ``forbidden_values`` is the permissive counterpart: the field stays
    user-editable but some values are never legal on this view (the general
    product list never shows Used items).
    """

    name: str
    defaults: FilterState = field(default_factory=FilterState)
    locked_defaults: Mapping[str, Any] = field(default_factory=dict)
    sort_rewrites: Mapping[str, SortBy] = field(default_factory=lambda: dict(DEFAULT_SORT_REWRITES))
    forbidden_values: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.locked_defaults:
            object.__setattr__(self, "defaults", replace(self.defaults, **self.locked_defaults))

    @property
    def locked_keys(self) -> frozenset[str]:
        return frozenset(self.locked_defaults)

    def is_locked(self, key: str) -> bool:
        return key in self.locked_defaults

    def default_of(self, key: str) -> Any:
        return getattr(self.defaults, key)

    # ==========================================================================
    # Built-in views
    # ==========================================================================

    @classmethod
    def products(cls) -> ViewConfig:
        """General product list: New and Refurbished only, Used never allowed."""
        return cls(
            name="products",
            defaults=FilterState(condition=NEW_OR_REFURBISHED),
            forbidden_values={"condition": frozenset({Condition.USED.value})},
        )

    @classmethod
    def clearance(cls) -> ViewConfig:
        """Clearance (used items) list: category and condition are owned by the view."""
        return cls(
            name="clearance",
            defaults=FilterState(sort_by=SortBy.NEWEST),
            locked_defaults={
                "category": frozenset({CLEARANCE_CATEGORY}),
                "condition": frozenset({Condition.USED.value}),
            },
        )

    @classmethod
    def for_brand(cls, slug: str) -> ViewConfig:
        """Brand route (``/brand/<slug>``): the brand filter cannot be removed."""
        return cls(
            name=f"brand:{slug}",
            defaults=FilterState(condition=NEW_OR_REFURBISHED),
            locked_defaults={"brand": frozenset({_route_value(slug)})},
            forbidden_values={"condition": frozenset({Condition.USED.value})},
        )

    @classmethod
    def for_category(cls, slug: str) -> ViewConfig:
        """Category route (``/category/<slug>``): the category filter cannot be removed."""
        return cls(
            name=f"category:{slug}",
            defaults=FilterState(condition=NEW_OR_REFURBISHED),
            locked_defaults={"category": frozenset({_route_value(slug)})},
            forbidden_values={"condition": frozenset({Condition.USED.value})},
        )


def _route_value(slug: str) -> str:
    return slug.replace("-", " ").strip()


class ViewRegistry:
    """Resolves view names (``products``, ``clearance``, ``brand:<slug>``, ``category:<slug>``)."""

    def __init__(self) -> None:
        self._views: dict[str, Callable[[], ViewConfig]] = {
            "products": ViewConfig.products,
            "clearance": ViewConfig.clearance,
        }
        self._routes: dict[str, Callable[[str], ViewConfig]] = {
            "brand": ViewConfig.for_brand,
            "category": ViewConfig.for_category,
        }

    def register(self, name: str, factory: Callable[[], ViewConfig]) -> None:
        self._views[name] = factory

    def resolve(self, name: str) -> ViewConfig:
        """
        Build the view configuration for ``name``.

        Raises:
            NotFoundError: If no view or route prefix matches
        """
        if name in self._views:
            return self._views[name]()

        prefix, sep, slug = name.partition(":")
        if sep and slug and prefix in self._routes:
            return self._routes[prefix](slug)

        raise NotFoundError("View", name)
