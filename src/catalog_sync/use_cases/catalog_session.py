from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Mapping
from urllib.parse import urlencode

from catalog_sync.codec.filter_codec import FilterCodec, UrlParams
from catalog_sync.domain.catalog import AvailableFilters, CatalogPageResult, ProductSummary
from catalog_sync.domain.errors import FetchError, GuardRejected
from catalog_sync.domain.filters import SET_FIELDS, FilterState, PriceRange, SortBy
from catalog_sync.domain.views import ViewConfig
from catalog_sync.ports.catalog_page_fetcher import CatalogPageFetcher
from catalog_sync.use_cases.active_filter_view import ActiveFilterView, FilterChip

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    SETTLED = "settled"


Listener = Callable[["CatalogSession"], None]


class CatalogSession:
    """
    Orchestrates URL, committed filters and fetched results for one view.

    States: IDLE -> FETCHING(token) -> SETTLED(token, result[, error]).

    Every admitted submission commits the new state, increments the request
    token and fetches. A resolution is applied only if its token is still the
    latest, so a slow early request can never overwrite a faster later one.
    A failed fetch keeps the previous result and attaches ``error``; the
    committed filters are not rolled back, so ``retry()`` re-issues the same
    query.

    FilterState and AvailableFilters are owned by the session and read-only to
    everyone else.
    """

    def __init__(
        self,
        fetcher: CatalogPageFetcher,
        view: ViewConfig,
        url_writer: Callable[[str], None] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._view = view
        self._url_writer = url_writer
        self._chip_view = ActiveFilterView(view)

        self._status = SessionStatus.IDLE
        self._token = 0
        self._committed: FilterState | None = None
        self._result: CatalogPageResult | None = None
        self._error: FetchError | None = None
        self._passthrough: tuple[tuple[str, str], ...] = ()
        self._url: str | None = None
        self._listeners: list[Listener] = []

        self.fetch_count = 0
        self.superseded_count = 0

    # ==========================================================================
    # Read-only state
    # ==========================================================================

    @property
    def view(self) -> ViewConfig:
        return self._view

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def token(self) -> int:
        """Latest issued request token."""
        return self._token

    @property
    def loading(self) -> bool:
        return self._status is SessionStatus.FETCHING

    @property
    def committed(self) -> FilterState | None:
        return self._committed

    @property
    def result(self) -> CatalogPageResult | None:
        return self._result

    @property
    def error(self) -> FetchError | None:
        return self._error

    @property
    def products(self) -> list[ProductSummary]:
        return list(self._result.products) if self._result else []

    @property
    def available_filters(self) -> AvailableFilters | None:
        return self._result.available_filters if self._result else None

    @property
    def query_string(self) -> str:
        """Canonical URL query for the committed state, including pass-through keys."""
        state = self._committed or self._view.defaults
        return FilterCodec.to_query_string(state, self._view, self._passthrough)

    @property
    def chips(self) -> list[FilterChip]:
        if self._committed is None:
            return []
        return self._chip_view.derive(self._committed)

    @property
    def price_range(self) -> PriceRange:
        state = self._committed or self._view.defaults
        return PriceRange(state.min_price, state.max_price)

    @property
    def price_bounds(self) -> PriceRange | None:
        available = self.available_filters
        if available is None:
            return None
        return PriceRange(available.min_price, available.max_price)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called after every state change; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ==========================================================================
    # View lifecycle
    # ==========================================================================

    async def mount(self, params: UrlParams) -> bool:
        """
        Enter the view: clear displayed results first, then decode and fetch.

        Results are cleared synchronously, before any filter derivation, so
        items from a previous view context never flash on this one.
        """
        self._reset_context()
        return await self.navigate(params)

    def unmount(self) -> None:
        """Leave the view: clear results and invalidate any in-flight request."""
        self._reset_context()
        self._token += 1

    def _reset_context(self) -> None:
        self._result = None
        self._error = None
        self._committed = None
        self._status = SessionStatus.IDLE
        self._url = None
        self._notify()

    # ==========================================================================
    # Guard
    # ==========================================================================

    def guard(self, state: FilterState) -> GuardRejected | None:
        """
        Decide whether ``state`` may trigger a fetch.

        Returns:
            None if admissible, otherwise a GuardRejected describing why
        """
        for key, value in self._view.locked_defaults.items():
            if getattr(state, key) != value:
                return GuardRejected("locked key not applied", key=key, view=self._view.name)

        for key, forbidden in self._view.forbidden_values.items():
            if getattr(state, key) & forbidden:
                return GuardRejected("forbidden value present", key=key, view=self._view.name)

        for key in SET_FIELDS:
            if not getattr(state, key) and self._view.default_of(key):
                return GuardRejected("required filter missing", key=key, view=self._view.name)

        if state == self._committed:
            return GuardRejected("unchanged", view=self._view.name)

        return None

    # ==========================================================================
    # Commands
    # ==========================================================================

    async def navigate(self, params: UrlParams) -> bool:
        """
        Handle a URL change: decode, rewrite the URL if it was not canonical, submit.

        Returns:
            True if a fetch was issued
        """
        decoded = FilterCodec.decode_query(params, self._view)
        self._passthrough = decoded.passthrough
        self._url = urlencode(FilterCodec.parse_params(params))
        self._write_url(FilterCodec.to_query_string(decoded.state, self._view, self._passthrough))
        return await self.submit_filter_state(decoded.state)

    async def submit_filter_state(self, state: FilterState) -> bool:
        """
        Submit a complete new FilterState.

        Returns:
            True if the guard admitted the state and a fetch was issued
        """
        rejection = self.guard(state)
        if rejection is not None:
            logger.debug(
                "Fetch not admitted",
                extra={"view": self._view.name, "reason": rejection.reason, **rejection.context},
            )
            return False
        return await self._fetch(state)

    async def apply_patch(self, patch: Mapping[str, Any]) -> bool:
        """
        Apply a patch to the committed state and submit the result.

        Raises:
            FilterValidationError: If the patch is invalid
            LockedKeyViolation: If the patch changes a locked key
        """
        base = self._committed or self._view.defaults
        return await self.submit_filter_state(FilterCodec.apply_patch(base, patch, self._view))

    async def set_page(self, page: int) -> bool:
        return await self.apply_patch({"page": page})

    async def set_sort(self, sort_by: SortBy | str) -> bool:
        return await self.apply_patch({"sort_by": sort_by})

    async def remove_filter(self, chip: FilterChip | str, value: str | None = None) -> bool:
        """
        Remove one active filter chip.

        Raises:
            LockedKeyViolation: If the chip's key is locked; state is unchanged
        """
        base = self._committed or self._view.defaults
        return await self.apply_patch(self._chip_view.remove_filter(base, chip, value))

    async def clear_all(self) -> bool:
        """Reset every non-locked filter in one patch (one fetch)."""
        base = self._committed or self._view.defaults
        patch = self._chip_view.clear_all(base)
        if not patch:
            return False
        return await self.apply_patch(patch)

    async def retry(self) -> bool:
        """Re-fetch the committed state, bypassing the unchanged-state guard."""
        if self._committed is None:
            return False
        return await self._fetch(self._committed)

    # ==========================================================================
    # Fetch orchestration
    # ==========================================================================

    async def _fetch(self, state: FilterState) -> bool:
        self._committed = state
        self._token += 1
        token = self._token
        self._status = SessionStatus.FETCHING
        self.fetch_count += 1
        self._write_url(self.query_string)
        self._notify()

        error: FetchError | None = None
        result: CatalogPageResult | None = None
        try:
            result = await self._fetcher.fetch_page(state)
        except FetchError as exc:
            error = exc
        except Exception as exc:
            error = FetchError(str(exc) or "Failed to fetch products", error_type=type(exc).__name__)
            error.__cause__ = exc

        if token != self._token:
            self.superseded_count += 1
            logger.debug(
                "Superseded response discarded",
                extra={"view": self._view.name, "token": token, "latest": self._token},
            )
            return True

        self._status = SessionStatus.SETTLED
        if error is not None:
            self._error = error
            logger.info(
                "Catalog fetch failed",
                extra={"view": self._view.name, "token": token, "error": error.message},
            )
        else:
            self._result = result
            self._error = None
        self._notify()
        return True

    def _write_url(self, query: str) -> None:
        if query == self._url:
            return
        self._url = query
        if self._url_writer is not None:
            self._url_writer(query)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
