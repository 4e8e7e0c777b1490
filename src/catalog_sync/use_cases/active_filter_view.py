from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from catalog_sync.domain.errors import LockedKeyViolation
from catalog_sync.domain.filters import FILTER_FIELDS, SET_FIELDS, FilterState
from catalog_sync.domain.views import ViewConfig


# Chip order follows the filter sidebar
CHIP_FIELDS = (
    "category",
    "brand",
    "condition",
    "in_stock",
    "rating",
    "min_price",
    "max_price",
    "search",
    "age_range",
)

_SET_TITLES = {"category": "Category", "brand": "Brand", "condition": "Condition"}


@dataclass(frozen=True, slots=True)
class FilterChip:
    """A user-removable active filter. ``value`` names one element of a set field."""

    key: str
    label: str
    value: str | None = None


def derive_chips(
    committed: FilterState,
    locked: frozenset[str] | set[str],
    defaults: FilterState | None = None,
) -> list[FilterChip]:
    """
    Derive the removable chips for ``committed``.

    One chip per non-default, non-locked field; set fields yield one chip per
    element so that removing a chip removes exactly that element.
    """
    defaults = defaults or FilterState()
    chips: list[FilterChip] = []

    for key in CHIP_FIELDS:
        if key in locked:
            continue
        value = getattr(committed, key)
        if value == getattr(defaults, key):
            continue

        if key in SET_FIELDS:
            chips.extend(
                FilterChip(key=key, label=f"{_SET_TITLES[key]}: {item}", value=item)
                for item in sorted(value)
            )
        elif key == "in_stock" and value:
            chips.append(FilterChip(key=key, label="In Stock Only"))
        elif key == "rating" and value:
            chips.append(FilterChip(key=key, label=f"{value}+ Stars"))
        elif key == "min_price" and value is not None:
            chips.append(FilterChip(key=key, label=f"Min: ₹{value}"))
        elif key == "max_price" and value is not None:
            chips.append(FilterChip(key=key, label=f"Max: ₹{value}"))
        elif key == "search" and value:
            chips.append(FilterChip(key=key, label=f'Search: "{value}"'))
        elif key == "age_range" and value:
            chips.append(FilterChip(key=key, label=f"Age: {value.replace('-', ' ')}"))

    return chips


class ActiveFilterView:
    """Derives removable filter chips for one view and turns chip actions into patches."""

    def __init__(self, view: ViewConfig) -> None:
        self._view = view

    def derive(self, committed: FilterState) -> list[FilterChip]:
        return derive_chips(committed, self._view.locked_keys, self._view.defaults)

    def remove_filter(
        self,
        committed: FilterState,
        chip: FilterChip | str,
        value: str | None = None,
    ) -> dict[str, Any]:
        """
        Build the patch removing one chip.

        For set fields only the chip's element is removed; an emptied set
        falls back to the view default.

        Raises:
            LockedKeyViolation: If the key is locked by the view
        """
        if isinstance(chip, FilterChip):
            key, value = chip.key, chip.value
        else:
            key = chip

        if self._view.is_locked(key):
            raise LockedKeyViolation(key, self._view.name)

        if key in SET_FIELDS and value is not None:
            remaining = getattr(committed, key) - {value}
            return {key: remaining or None}

        return {key: None}

    def clear_all(self, committed: FilterState) -> dict[str, Any]:
        """Single patch resetting every non-locked key to its default."""
        return {
            key: None
            for key in sorted(FILTER_FIELDS)
            if not self._view.is_locked(key) and getattr(committed, key) != self._view.default_of(key)
        }
