from __future__ import annotations

from abc import ABC, abstractmethod

from catalog_sync.domain.catalog import CatalogPageResult
from catalog_sync.domain.filters import FilterState


class CatalogPageFetcher(ABC):
    """
    Port for fetching one page of the catalog.

    The engine treats this as opaque I/O and never specifies the wire format.

    Contract:
        - ``query`` has been admitted by the session guard; implementations
          trust it and do not re-validate
        - Failures are raised as ``FetchError`` (anything else is wrapped by
          the session)
        - Implementations need not support cancellation; the session discards
          superseded results by token
    """

    @abstractmethod
    async def fetch_page(self, query: FilterState) -> CatalogPageResult:
        """
        Fetch the catalog page described by ``query``.

        Args:
            query: Committed filter state (pre-validated)

        Returns:
            CatalogPageResult with products, paging and available filters
        """
        ...
