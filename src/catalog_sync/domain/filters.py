from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum

from catalog_sync.domain.errors import FilterValidationError


# ==============================================================================
# Enumerations
# ==============================================================================


class SortBy(str, Enum):
    FEATURED = "featured"
    NEWEST = "newest"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    RATING = "rating"


class Condition(str, Enum):
    NEW = "New"
    REFURBISHED = "Refurbished"
    USED = "Used"


CONDITION_VALUES = frozenset(c.value for c in Condition)

MAX_LIMIT = 100
MAX_RATING = 5

SET_FIELDS = ("category", "brand", "condition")

# Keys whose change alone does not reset the page
PAGING_FIELDS = frozenset({"page", "limit"})


@dataclass(frozen=True, slots=True)
class FilterState:
    """
    Canonical, committed description of a catalog query.

    Immutable: every change goes through ``FilterCodec.apply_patch`` and yields
    a complete new state. Set-valued fields are unordered (frozensets), so two
    states are equal regardless of the order the user picked values in.
    """

    category: frozenset[str] = frozenset()
    brand: frozenset[str] = frozenset()
    condition: frozenset[str] = frozenset()
    min_price: int | None = None
    max_price: int | None = None
    rating: int | None = None
    in_stock: bool = False
    search: str = ""
    sort_by: SortBy = SortBy.FEATURED
    page: int = 1
    limit: int = 12
    age_range: str | None = None

    def validate(self) -> None:
        """
        Validate state invariants.

        Raises:
            FilterValidationError: If the state violates an invariant
        """
        errors: list[dict[str, str]] = []

        for name in ("min_price", "max_price"):
            value = getattr(self, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                errors.append({"field": name, "message": "must be an integer or None"})
            elif value is not None and value < 0:
                errors.append({"field": name, "message": "must be >= 0"})

        if (
            isinstance(self.min_price, int)
            and isinstance(self.max_price, int)
            and self.min_price > self.max_price
        ):
            errors.append({"field": "min_price", "message": "cannot be greater than max_price"})

        if self.rating is not None and not (1 <= self.rating <= MAX_RATING):
            errors.append({"field": "rating", "message": f"must be between 1 and {MAX_RATING}"})

        unknown = self.condition - CONDITION_VALUES
        if unknown:
            errors.append(
                {"field": "condition", "message": f"unknown values: {', '.join(sorted(unknown))}"}
            )

        if self.page < 1:
            errors.append({"field": "page", "message": "must be >= 1"})
        if not (1 <= self.limit <= MAX_LIMIT):
            errors.append({"field": "limit", "message": f"must be between 1 and {MAX_LIMIT}"})

        if errors:
            raise FilterValidationError(errors=errors)


FILTER_FIELDS = frozenset(f.name for f in fields(FilterState))


@dataclass(frozen=True, slots=True)
class PriceRange:
    """A ``{min, max}`` pair; either side may be absent for committed values."""

    min: int | None = None
    max: int | None = None


@dataclass(frozen=True, slots=True)
class PendingRange:
    """Transient, uncommitted range shown by a control mid-interaction."""

    min: int
    max: int
