from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

from catalog_sync.domain.catalog import ProductSummary
from catalog_sync.domain.filters import FilterState
from catalog_sync.ports.catalog_page_fetcher import CatalogPageFetcher

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DebouncedQuery(Generic[T]):
    """
    Debounce-with-supersession for incremental (type-ahead) search.

    Each ``submit`` restarts a quiet-period timer; only text that survives the
    quiet period is queried. Issued queries are never aborted: each carries a
    token, and a resolution whose token is no longer the latest is dropped.
    So at most one query is issued per quiet period, and the displayed result
    always belongs to the last text that was allowed to settle.

    ``submit`` must be called from a running event loop.
    """

    def __init__(
        self,
        query: Callable[[str], Awaitable[T]],
        on_result: Callable[[str, T], None],
        on_error: Callable[[str, Exception], None] | None = None,
        on_clear: Callable[[bool], None] | None = None,
        quiet_period: float = 0.3,
        min_length: int = 3,
    ) -> None:
        self._query = query
        self._on_result = on_result
        self._on_error = on_error
        self._on_clear = on_clear
        self._quiet_period = quiet_period
        self._min_length = min_length

        self._token = 0
        self._timer: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[None]] = set()

        self.issued_count = 0
        self.dropped_count = 0

    @property
    def latest_token(self) -> int:
        return self._token

    def submit(self, text: str) -> None:
        """
        Submit the current input text.

        Text shorter than ``min_length`` clears results immediately and issues
        no query; empty text also hides the suggestion panel.
        """
        text = text.strip()
        self._cancel_timer()
        self._token += 1

        if len(text) < self._min_length:
            if self._on_clear is not None:
                self._on_clear(len(text) == 0)
            return

        task = asyncio.get_running_loop().create_task(self._settle(text, self._token))
        self._timer = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and no issued query is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Discard the pending timer and any outstanding result."""
        self._cancel_timer()
        self._token += 1

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _settle(self, text: str, token: int) -> None:
        await asyncio.sleep(self._quiet_period)

        # Past the quiet period the query is issued and may only be superseded
        if self._timer is asyncio.current_task():
            self._timer = None
        self.issued_count += 1

        try:
            result = await self._query(text)
        except Exception as exc:
            if token != self._token:
                self.dropped_count += 1
                logger.debug("Superseded query failed", extra={"text": text, "token": token})
                return
            logger.info("Query failed", extra={"text": text, "error": str(exc)})
            if self._on_error is not None:
                self._on_error(text, exc)
            return

        if token != self._token:
            self.dropped_count += 1
            logger.debug("Superseded query result dropped", extra={"text": text, "token": token})
            return

        self._on_result(text, result)


def catalog_search_query(
    fetcher: CatalogPageFetcher, limit: int = 5
) -> Callable[[str], Awaitable[list[ProductSummary]]]:
    """Adapts the catalog fetch port into a quick-search suggestion query."""

    async def query(text: str) -> list[ProductSummary]:
        result = await fetcher.fetch_page(FilterState(search=text, limit=limit))
        return result.products

    return query
