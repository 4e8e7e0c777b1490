from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Union
from urllib.parse import parse_qsl, urlencode

from catalog_sync.domain.errors import DecodeWarning, FilterValidationError, LockedKeyViolation
from catalog_sync.domain.filters import (
    CONDITION_VALUES,
    FILTER_FIELDS,
    MAX_LIMIT,
    MAX_RATING,
    PAGING_FIELDS,
    SET_FIELDS,
    FilterState,
    SortBy,
)
from catalog_sync.domain.views import ViewConfig

logger = logging.getLogger(__name__)


UrlParams = Union[str, Mapping[str, Any], Iterable[tuple[str, str]]]

# FilterState field -> URL key. Order is the canonical encode order.
URL_KEYS: dict[str, str] = {
    "category": "category",
    "brand": "brand",
    "condition": "condition",
    "min_price": "minPrice",
    "max_price": "maxPrice",
    "rating": "rating",
    "in_stock": "inStock",
    "search": "search",
    "sort_by": "sort",
    "age_range": "ageRange",
    "page": "page",
    "limit": "limit",
}

FIELDS_BY_URL_KEY = {url_key: name for name, url_key in URL_KEYS.items()}

LEGACY_SORT_KEY = "sortBy"

RECOGNIZED_KEYS = frozenset(URL_KEYS.values()) | {LEGACY_SORT_KEY}

_CONDITIONS_BY_LOWER = {value.lower(): value for value in CONDITION_VALUES}


@dataclass(frozen=True, slots=True)
class DecodedQuery:
    """Result of decoding a URL: canonical state plus what the codec did not consume."""

    state: FilterState
    passthrough: tuple[tuple[str, str], ...] = ()
    warnings: tuple[DecodeWarning, ...] = ()


class FilterCodec:
    """Maps between URL query parameters and FilterState for a given view."""

    # ==========================================================================
    # Decoding
    # ==========================================================================

    @staticmethod
    def parse_params(params: UrlParams) -> list[tuple[str, str]]:
        """
        Normalizes the accepted URL representations into ordered key/value pairs.

        Accepts a raw query string (leading ``?`` optional), a mapping whose
        values are strings or sequences of strings, or an iterable of pairs.
        """
        if params is None:
            return []
        if isinstance(params, str):
            return parse_qsl(params.lstrip("?"), keep_blank_values=True)
        if isinstance(params, Mapping):
            pairs: list[tuple[str, str]] = []
            for key, value in params.items():
                if isinstance(value, (list, tuple)):
                    pairs.extend((str(key), str(item)) for item in value)
                elif value is not None:
                    pairs.append((str(key), str(value)))
            return pairs
        return [(str(key), str(value)) for key, value in params]

    @staticmethod
    def decode(params: UrlParams, view: ViewConfig) -> FilterState:
        """Decodes URL parameters into the view's canonical FilterState. Never raises."""
        return FilterCodec.decode_query(params, view).state

    @staticmethod
    def decode_query(params: UrlParams, view: ViewConfig) -> DecodedQuery:
        """
        Decodes URL parameters, keeping unrecognized keys and coercion warnings.

        Rules, in order:
            1. Keys locked by the view are ignored
            2. Values failing coercion leave the field at its view default
            3. An inverted price range is swapped
            4. Locked keys are forced back to their configured values

        Args:
            params: URL query parameters in any accepted representation
            view: View supplying defaults, locked keys and rewrite table

        Returns:
            DecodedQuery with canonical state, pass-through pairs and warnings
        """
        grouped: dict[str, list[str]] = {}
        passthrough: list[tuple[str, str]] = []
        for key, value in FilterCodec.parse_params(params):
            if key in RECOGNIZED_KEYS:
                grouped.setdefault(key, []).append(value)
            else:
                passthrough.append((key, value))

        warnings: list[DecodeWarning] = []
        values: dict[str, Any] = {name: view.default_of(name) for name in FILTER_FIELDS}

        for url_key, raw_values in grouped.items():
            name = FIELDS_BY_URL_KEY.get(url_key, "sort_by")
            if view.is_locked(name):
                warnings.append(DecodeWarning(url_key, raw_values[-1], "locked by view"))
                continue
            if url_key == LEGACY_SORT_KEY and "sort" in grouped:
                continue

            decoded = _DECODERS[name](raw_values, view, warnings, url_key)
            if decoded is not _DEFAULT:
                values[name] = decoded

        min_price, max_price = values["min_price"], values["max_price"]
        if min_price is not None and max_price is not None and min_price > max_price:
            warnings.append(
                DecodeWarning("minPrice", str(min_price), "greater than maxPrice, swapped")
            )
            values["min_price"], values["max_price"] = max_price, min_price

        # Locked keys win over anything the URL said
        values.update(view.locked_defaults)

        for warning in warnings:
            logger.debug(
                "URL value ignored",
                extra={"view": view.name, "key": warning.key, "reason": warning.reason},
            )

        return DecodedQuery(
            state=FilterState(**values),
            passthrough=tuple(passthrough),
            warnings=tuple(warnings),
        )

    # ==========================================================================
    # Encoding
    # ==========================================================================

    @staticmethod
    def encode(
        state: FilterState,
        view: ViewConfig,
        passthrough: Iterable[tuple[str, str]] = (),
    ) -> list[tuple[str, str]]:
        """
        Encodes a FilterState into minimal, stable URL parameters.

        Keys equal to the view default and keys locked by the view are omitted.
        Set values are sorted and comma-joined. Pass-through pairs are appended
        verbatim after the recognized keys.
        """
        pairs: list[tuple[str, str]] = []
        for name, url_key in URL_KEYS.items():
            if view.is_locked(name):
                continue
            value = getattr(state, name)
            if value == view.default_of(name) or value is None:
                continue
            rendered = _render(name, value)
            if rendered:
                pairs.append((url_key, rendered))

        pairs.extend(passthrough)
        return pairs

    @staticmethod
    def to_query_string(
        state: FilterState,
        view: ViewConfig,
        passthrough: Iterable[tuple[str, str]] = (),
    ) -> str:
        return urlencode(FilterCodec.encode(state, view, passthrough))

    # ==========================================================================
    # Patching
    # ==========================================================================

    @staticmethod
    def apply_patch(
        state: FilterState,
        patch: Mapping[str, Any],
        view: ViewConfig | None = None,
    ) -> FilterState:
        """
        Produces a complete new FilterState from ``state`` and ``patch``.

        A ``None`` value resets the field to its default, as does an empty
        collection for a set field. Set elements are stripped and blank ones
        dropped. Any patch that is
        not limited to ``page`` or to ``limit`` resets ``page`` to 1.

        Raises:
            FilterValidationError: Unknown key, bad value, forbidden value, or
                an invalid resulting state
            LockedKeyViolation: The patch would change a key the view locks
        """
        unknown = set(patch) - FILTER_FIELDS
        if unknown:
            raise FilterValidationError(
                errors=[{"field": key, "message": "unknown filter key"} for key in sorted(unknown)]
            )

        defaults = view.defaults if view is not None else FilterState()
        updates: dict[str, Any] = {}
        for key, value in patch.items():
            coerced = getattr(defaults, key) if value is None else _coerce(key, value)
            if key in SET_FIELDS and not coerced:
                # An emptied set means "no choice", which is the view default.
                coerced = getattr(defaults, key)

            if view is not None:
                if view.is_locked(key) and coerced != view.locked_defaults[key]:
                    raise LockedKeyViolation(key, view.name)
                forbidden = view.forbidden_values.get(key, frozenset())
                if key in SET_FIELDS and coerced & forbidden:
                    raise FilterValidationError(
                        errors=[{"field": key, "message": "value not allowed on this view"}]
                    )

            updates[key] = coerced

        new_state = replace(state, **updates)
        keys = set(patch)
        if keys and not keys <= PAGING_FIELDS:
            new_state = replace(new_state, page=1)

        new_state.validate()
        return new_state


# ==============================================================================
# Per-field decoders
# ==============================================================================

_DEFAULT = object()


def _decode_set(raw_values, view, warnings, url_key):
    name = FIELDS_BY_URL_KEY[url_key]
    forbidden = view.forbidden_values.get(name, frozenset())
    items: set[str] = set()
    for raw in raw_values:
        for part in raw.split(","):
            item = part.strip()
            if not item:
                continue
            if name == "condition":
                canonical = _CONDITIONS_BY_LOWER.get(item.lower())
                if canonical is None:
                    warnings.append(DecodeWarning(url_key, item, "unknown condition"))
                    continue
                item = canonical
            if item in forbidden:
                warnings.append(DecodeWarning(url_key, item, "not allowed on this view"))
                continue
            items.add(item)
    return frozenset(items) if items else _DEFAULT


def _decode_price(raw_values, view, warnings, url_key):
    raw = raw_values[-1].strip()
    if raw == "":
        return _DEFAULT
    number = _parse_int(raw)
    if number is None or number < 0:
        warnings.append(DecodeWarning(url_key, raw, "not a non-negative integer"))
        return _DEFAULT
    return number


def _decode_rating(raw_values, view, warnings, url_key):
    raw = raw_values[-1].strip()
    if raw == "":
        return _DEFAULT
    number = _parse_int(raw)
    if number is None or not (0 <= number <= MAX_RATING):
        warnings.append(DecodeWarning(url_key, raw, f"rating must be 0-{MAX_RATING}"))
        return _DEFAULT
    return number or None


def _decode_in_stock(raw_values, view, warnings, url_key):
    raw = raw_values[-1].strip().lower()
    if raw in ("true", "1"):
        return True
    if raw in ("false", "0", ""):
        return False
    warnings.append(DecodeWarning(url_key, raw_values[-1], "not a boolean"))
    return _DEFAULT


def _decode_search(raw_values, view, warnings, url_key):
    return raw_values[-1].strip()


def _decode_sort(raw_values, view, warnings, url_key):
    raw = raw_values[-1].strip()
    rewritten = view.sort_rewrites.get(raw)
    if rewritten is None and url_key == LEGACY_SORT_KEY:
        try:
            rewritten = SortBy(raw)
        except ValueError:
            rewritten = None
    if rewritten is None:
        warnings.append(DecodeWarning(url_key, raw, "unknown sort"))
        return _DEFAULT
    return rewritten


def _decode_page(raw_values, view, warnings, url_key):
    raw = raw_values[-1].strip()
    number = _parse_int(raw)
    if number is None or number < 1:
        warnings.append(DecodeWarning(url_key, raw, "page must be >= 1"))
        return _DEFAULT
    return number


def _decode_limit(raw_values, view, warnings, url_key):
    raw = raw_values[-1].strip()
    number = _parse_int(raw)
    if number is None or not (1 <= number <= MAX_LIMIT):
        warnings.append(DecodeWarning(url_key, raw, f"limit must be 1-{MAX_LIMIT}"))
        return _DEFAULT
    return number


def _decode_age_range(raw_values, view, warnings, url_key):
    raw = raw_values[-1].strip()
    return raw or None


_DECODERS = {
    "category": _decode_set,
    "brand": _decode_set,
    "condition": _decode_set,
    "min_price": _decode_price,
    "max_price": _decode_price,
    "rating": _decode_rating,
    "in_stock": _decode_in_stock,
    "search": _decode_search,
    "sort_by": _decode_sort,
    "page": _decode_page,
    "limit": _decode_limit,
    "age_range": _decode_age_range,
}


def _parse_int(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


def _render(name: str, value: Any) -> str:
    if name in SET_FIELDS:
        return ",".join(sorted(value))
    if name == "in_stock":
        return "true" if value else "false"
    if name == "sort_by":
        return value.value
    return str(value)


def _coerce(key: str, value: Any) -> Any:
    """Coerces one patch value to the FilterState field type."""
    if key in SET_FIELDS:
        items = [value] if isinstance(value, str) else value
        try:
            stripped = [str(item).strip() for item in items]
        except TypeError:
            raise FilterValidationError(
                errors=[{"field": key, "message": "must be a string or a collection of strings"}]
            ) from None
        # Commas separate values in the URL, so an element cannot contain one.
        if any("," in item for item in stripped):
            raise FilterValidationError(
                errors=[{"field": key, "message": "values cannot contain ','"}]
            )
        return frozenset(item for item in stripped if item)
    if key == "sort_by":
        try:
            return SortBy(value)
        except ValueError:
            raise FilterValidationError(
                errors=[{"field": key, "message": f"unknown sort '{value}'"}]
            ) from None
    if key == "in_stock":
        if not isinstance(value, bool):
            raise FilterValidationError(errors=[{"field": key, "message": "must be a boolean"}])
        return value
    if key in ("search", "age_range"):
        text = str(value).strip()
        if key == "age_range":
            return text or None
        return text
    if isinstance(value, bool) or not isinstance(value, int):
        raise FilterValidationError(errors=[{"field": key, "message": "must be an integer"}])
    if key == "rating" and value == 0:
        return None
    return value
