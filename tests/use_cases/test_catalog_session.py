"""
Tests for the CatalogSession use case.

Covers the fetch guard, request-token supersession, failure handling and the
chip and paging commands on top of the in-memory and scripted fetchers.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal
from unittest.mock import Mock

import pytest

from catalog_sync.adapters.in_memory_catalog_page_fetcher import InMemoryCatalogPageFetcher
from catalog_sync.domain.catalog import CatalogPageResult, ProductSummary
from catalog_sync.domain.errors import FetchError, FilterValidationError, LockedKeyViolation
from catalog_sync.domain.filters import FilterState, SortBy
from catalog_sync.domain.views import NEW_OR_REFURBISHED, ViewConfig
from catalog_sync.ports.catalog_page_fetcher import CatalogPageFetcher
from catalog_sync.use_cases.catalog_session import CatalogSession, SessionStatus


class ScriptedFetcher(CatalogPageFetcher):
    """Fetcher whose responses are resolved by the test, in any order."""

    def __init__(self) -> None:
        self.pending: list[tuple[FilterState, asyncio.Future]] = []

    async def fetch_page(self, query: FilterState) -> CatalogPageResult:
        future = asyncio.get_running_loop().create_future()
        self.pending.append((query, future))
        return await future


def _product(id: str, brand: str, price: str, condition: str = "New") -> ProductSummary:
    return ProductSummary(
        id=id, name=f"{brand} {id}", slug=id, brand=brand, price=Decimal(price), condition=condition
    )


def _result(*ids: str) -> CatalogPageResult:
    return CatalogPageResult(products=[_product(i, "Lego", "100") for i in ids], total_products=len(ids))


@pytest.fixture
def catalog() -> list[ProductSummary]:
    return [
        _product("1", "Lego", "499"),
        _product("2", "Hasbro", "1299"),
        _product("3", "Lego", "250", condition="Refurbished"),
        _product("4", "Mattel", "150", condition="Used"),
    ]


@pytest.fixture
def fetcher(catalog: list[ProductSummary]) -> InMemoryCatalogPageFetcher:
    return InMemoryCatalogPageFetcher(catalog)


@pytest.fixture
def url_writer() -> Mock:
    return Mock()


@pytest.fixture
def session(fetcher: InMemoryCatalogPageFetcher, url_writer: Mock) -> CatalogSession:
    return CatalogSession(fetcher, ViewConfig.products(), url_writer=url_writer)


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


# ==============================================================================
# Mount and navigation
# ==============================================================================


@pytest.mark.asyncio
async def test_mount_fetches_view_defaults(
    session: CatalogSession, fetcher: InMemoryCatalogPageFetcher, url_writer: Mock
) -> None:
    """A clean URL fetches the default state and leaves the URL alone."""
    issued = await session.mount("")

    assert issued is True
    assert fetcher.calls == [FilterState(condition=NEW_OR_REFURBISHED)]
    assert session.status is SessionStatus.SETTLED
    assert [p.id for p in session.products] == ["1", "2", "3"]
    assert session.chips == []
    url_writer.assert_not_called()


@pytest.mark.asyncio
async def test_mount_rewrites_non_canonical_url(session: CatalogSession, url_writer: Mock) -> None:
    """Forbidden values and bad numbers are dropped; pass-through keys survive."""
    await session.mount("condition=Used&minPrice=abc&brand=Lego&utm_source=mail")

    url_writer.assert_called_once_with("brand=Lego&utm_source=mail")
    assert session.query_string == "brand=Lego&utm_source=mail"


@pytest.mark.asyncio
async def test_mount_clears_previous_results_before_fetching() -> None:
    """Results from a previous context are gone before the new fetch settles."""
    fetcher = ScriptedFetcher()
    session = CatalogSession(fetcher, ViewConfig.products())
    first = asyncio.create_task(session.mount(""))
    await _settle()
    fetcher.pending[0][1].set_result(_result("old"))
    await first

    second = asyncio.create_task(session.mount("brand=Lego"))
    await _settle()

    assert session.products == []
    assert session.loading is True

    fetcher.pending[1][1].set_result(_result("new"))
    await second
    assert [p.id for p in session.products] == ["new"]


@pytest.mark.asyncio
async def test_navigate_to_same_state_is_not_fetched(
    session: CatalogSession, fetcher: InMemoryCatalogPageFetcher
) -> None:
    await session.mount("brand=Lego")

    issued = await session.navigate("brand=Lego")

    assert issued is False
    assert len(fetcher.calls) == 1


@pytest.mark.asyncio
async def test_clearance_mount_applies_locked_defaults_before_first_fetch(
    fetcher: InMemoryCatalogPageFetcher,
) -> None:
    """The first fetch on a locked view already carries the locked values."""
    session = CatalogSession(fetcher, ViewConfig.clearance())

    await session.mount("?condition=New&minPrice=abc")

    assert len(fetcher.calls) == 1
    assert fetcher.calls[0].condition == frozenset({"Used"})
    assert fetcher.calls[0].category == frozenset({"clearance-collection"})
    assert fetcher.calls[0].min_price is None
    assert session.query_string == ""


# ==============================================================================
# Guard
# ==============================================================================


def test_guard_rejections(session: CatalogSession) -> None:
    """Each inadmissible state is rejected with a reason."""
    clearance = CatalogSession(Mock(spec=CatalogPageFetcher), ViewConfig.clearance())

    assert clearance.guard(FilterState()).reason == "locked key not applied"
    assert session.guard(FilterState(condition=frozenset({"Used"}))).reason == (
        "forbidden value present"
    )
    assert session.guard(FilterState()).reason == "required filter missing"
    assert session.guard(FilterState(condition=NEW_OR_REFURBISHED)) is None


@pytest.mark.asyncio
async def test_guard_rejects_unchanged_state(session: CatalogSession) -> None:
    await session.mount("")

    assert session.guard(session.committed).reason == "unchanged"
    assert await session.submit_filter_state(session.committed) is False


@pytest.mark.asyncio
async def test_rejected_state_is_not_committed(
    session: CatalogSession, fetcher: InMemoryCatalogPageFetcher
) -> None:
    await session.mount("")

    issued = await session.submit_filter_state(FilterState(condition=frozenset({"Used"})))

    assert issued is False
    assert session.committed == FilterState(condition=NEW_OR_REFURBISHED)
    assert len(fetcher.calls) == 1


# ==============================================================================
# Supersession
# ==============================================================================


@pytest.mark.asyncio
async def test_stale_response_never_overwrites_newer_one() -> None:
    """A slow early response resolving after a later one is discarded."""
    fetcher = ScriptedFetcher()
    session = CatalogSession(fetcher, ViewConfig.products())

    first = asyncio.create_task(session.apply_patch({"brand": ["Lego"]}))
    await _settle()
    second = asyncio.create_task(session.apply_patch({"brand": ["Hasbro"]}))
    await _settle()

    assert session.token == 2
    fetcher.pending[1][1].set_result(_result("hasbro"))
    await second
    fetcher.pending[0][1].set_result(_result("lego"))
    await first

    assert [p.id for p in session.products] == ["hasbro"]
    assert session.committed.brand == frozenset({"Hasbro"})
    assert session.superseded_count == 1
    assert session.status is SessionStatus.SETTLED


@pytest.mark.asyncio
async def test_stale_failure_is_discarded() -> None:
    fetcher = ScriptedFetcher()
    session = CatalogSession(fetcher, ViewConfig.products())

    first = asyncio.create_task(session.apply_patch({"search": "car"}))
    await _settle()
    second = asyncio.create_task(session.apply_patch({"search": "train"}))
    await _settle()

    fetcher.pending[1][1].set_result(_result("train"))
    await second
    fetcher.pending[0][1].set_exception(FetchError("timeout"))
    await first

    assert session.error is None
    assert [p.id for p in session.products] == ["train"]


@pytest.mark.asyncio
async def test_unmount_discards_in_flight_response() -> None:
    fetcher = ScriptedFetcher()
    session = CatalogSession(fetcher, ViewConfig.products())

    task = asyncio.create_task(session.mount(""))
    await _settle()
    session.unmount()
    fetcher.pending[0][1].set_result(_result("late"))
    await task

    assert session.products == []
    assert session.status is SessionStatus.IDLE


# ==============================================================================
# Failures and retry
# ==============================================================================


@pytest.mark.asyncio
async def test_failure_keeps_previous_result_and_filters(
    session: CatalogSession, fetcher: InMemoryCatalogPageFetcher
) -> None:
    """A failed fetch attaches the error without rolling back filters or results."""
    await session.mount("")
    previous = session.products

    fetcher.fetch_page = Mock(side_effect=FetchError("Catalog unavailable"))
    await session.apply_patch({"brand": ["Lego"]})

    assert session.error is not None
    assert session.error.message == "Catalog unavailable"
    assert session.products == previous
    assert session.committed.brand == frozenset({"Lego"})
    assert session.status is SessionStatus.SETTLED


@pytest.mark.asyncio
async def test_unexpected_exception_is_wrapped() -> None:
    fetcher = Mock(spec=CatalogPageFetcher)
    fetcher.fetch_page.side_effect = RuntimeError("socket closed")
    session = CatalogSession(fetcher, ViewConfig.products())

    await session.mount("")

    assert isinstance(session.error, FetchError)
    assert session.error.context["error_type"] == "RuntimeError"
    assert isinstance(session.error.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_retry_refetches_committed_state(
    session: CatalogSession, fetcher: InMemoryCatalogPageFetcher
) -> None:
    """Retry bypasses the unchanged guard and clears the error on success."""
    real_fetch = fetcher.fetch_page
    fetcher.fetch_page = Mock(side_effect=FetchError("timeout"))
    await session.mount("brand=Lego")
    assert session.error is not None

    fetcher.fetch_page = real_fetch
    issued = await session.retry()

    assert issued is True
    assert session.error is None
    assert [p.id for p in session.products] == ["1", "3"]


@pytest.mark.asyncio
async def test_retry_before_mount_does_nothing(session: CatalogSession) -> None:
    assert await session.retry() is False


# ==============================================================================
# Commands
# ==============================================================================


@pytest.mark.asyncio
async def test_remove_brand_chip_on_multi_brand(
    session: CatalogSession, fetcher: InMemoryCatalogPageFetcher
) -> None:
    """Removing one brand chip keeps the other brand, fetches once and resets the page."""
    await session.mount("brand=Lego,Hasbro&page=2")
    chip = next(c for c in session.chips if c.value == "Hasbro")

    await session.remove_filter(chip)

    assert session.committed.brand == frozenset({"Lego"})
    assert session.committed.page == 1
    assert len(fetcher.calls) == 2


@pytest.mark.asyncio
async def test_remove_locked_chip_raises_and_keeps_state(fetcher: InMemoryCatalogPageFetcher) -> None:
    session = CatalogSession(fetcher, ViewConfig.clearance())
    await session.mount("")
    before = session.committed

    with pytest.raises(LockedKeyViolation):
        await session.remove_filter("condition")

    assert session.committed == before
    assert len(fetcher.calls) == 1


@pytest.mark.asyncio
async def test_clear_all_is_single_fetch(
    session: CatalogSession, fetcher: InMemoryCatalogPageFetcher, url_writer: Mock
) -> None:
    await session.mount("brand=Lego&inStock=true&sort=price-low&page=3")

    issued = await session.clear_all()

    assert issued is True
    assert len(fetcher.calls) == 2
    assert session.committed == FilterState(condition=NEW_OR_REFURBISHED)
    assert url_writer.call_args.args == ("",)


@pytest.mark.asyncio
async def test_clear_all_with_nothing_to_clear(session: CatalogSession) -> None:
    await session.mount("")

    assert await session.clear_all() is False


@pytest.mark.asyncio
async def test_set_page_and_sort(session: CatalogSession, url_writer: Mock) -> None:
    await session.mount("")

    await session.set_page(2)
    assert session.committed.page == 2
    url_writer.assert_called_with("page=2")

    await session.set_sort(SortBy.PRICE_HIGH)
    assert session.committed.page == 1
    url_writer.assert_called_with("sort=price-high")


@pytest.mark.asyncio
async def test_invalid_patch_raises_without_fetch(
    session: CatalogSession, fetcher: InMemoryCatalogPageFetcher
) -> None:
    await session.mount("")

    with pytest.raises(FilterValidationError):
        await session.apply_patch({"min_price": 900, "max_price": 100})

    assert len(fetcher.calls) == 1


@pytest.mark.asyncio
async def test_emptying_condition_fetches_view_default(
    session: CatalogSession, fetcher: InMemoryCatalogPageFetcher, url_writer: Mock
) -> None:
    """An empty condition list is a reset, not a state the guard has to refuse."""
    await session.mount("condition=New")

    issued = await session.apply_patch({"condition": []})

    assert issued is True
    assert session.committed.condition == NEW_OR_REFURBISHED
    assert fetcher.calls[-1].condition == NEW_OR_REFURBISHED
    url_writer.assert_called_with("")


# ==============================================================================
# Derived state and listeners
# ==============================================================================


@pytest.mark.asyncio
async def test_price_bounds_follow_available_filters(session: CatalogSession) -> None:
    assert session.price_bounds is None

    await session.mount("minPrice=200")

    assert session.price_range.min == 200
    assert session.price_bounds.min == 250
    assert session.price_bounds.max == 1299


@pytest.mark.asyncio
async def test_listeners_are_notified_until_unsubscribed(session: CatalogSession) -> None:
    seen: list[SessionStatus] = []
    unsubscribe = session.subscribe(lambda s: seen.append(s.status))

    await session.mount("")
    unsubscribe()
    await session.set_page(2)

    assert seen == [SessionStatus.IDLE, SessionStatus.FETCHING, SessionStatus.SETTLED]
