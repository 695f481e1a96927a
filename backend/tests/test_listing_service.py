import asyncio
import time

import pytest

from backend.app.catalog.base import Pagination, SellerLabel, SortKey
from backend.app.catalog.memory import InMemoryCatalog, StaticSellerDirectory, demo_items
from backend.app.services.errors import CatalogUnavailable
from backend.app.services.facet_resolver import FacetOptionResolver
from backend.app.services.filter_state import FilterState
from backend.app.services.listing_service import ListingService


class FacetsDownCatalog(InMemoryCatalog):
    async def aggregate_facets(self, state):
        raise CatalogUnavailable("facets down", operation="aggregate_facets")


class ItemsDownCatalog(InMemoryCatalog):
    async def query_items(self, state, pagination, sort):
        raise CatalogUnavailable("items down", operation="query_items")


class BrokenSellers(StaticSellerDirectory):
    async def list_sellers(self):
        raise CatalogUnavailable("sellers down", operation="list_sellers")


SELLERS = [SellerLabel(account="D100", name="Sound Auto", seller_type="Dealer", city="Seattle", state="WA")]


def _service(catalog=None, sellers=None) -> ListingService:
    catalog = catalog or InMemoryCatalog(demo_items())
    return ListingService(catalog, FacetOptionResolver(catalog), sellers)


def test_search_combines_items_facets_and_sellers():
    service = _service(sellers=StaticSellerDirectory(SELLERS))
    result = asyncio.run(service.search(FilterState(make=["Toyota"]), Pagination(page=1, page_size=20)))
    payload = result.to_payload()

    assert payload["success"] is True
    assert payload["meta"]["totalRecords"] == 2
    assert {item["model"] for item in payload["data"]} == {"Camry", "RAV4"}
    assert [o["name"] for o in payload["filters"]["make"]] == ["BMW", "Ford", "Honda", "Toyota"]
    assert payload["sellers"] == [SELLERS[0].as_dict()]
    assert payload["appliedFilters"]["make"] == ["Toyota"]
    assert payload["canonicalUrl"] == "/cars/toyota"


def test_facet_failure_degrades_to_empty_filters():
    result = asyncio.run(_service(FacetsDownCatalog(demo_items())).search(FilterState(condition=["Used"])))
    payload = result.to_payload()
    assert payload["success"] is True
    assert payload["filters"] == {}
    assert len(payload["data"]) == 4


def test_seller_failure_degrades_to_empty_sellers():
    result = asyncio.run(_service(sellers=BrokenSellers([])).search(FilterState()))
    payload = result.to_payload()
    assert payload["success"] is True
    assert payload["sellers"] == []
    assert payload["filters"]["make"]


def test_items_failure_gives_failure_payload():
    result = asyncio.run(_service(ItemsDownCatalog(demo_items())).search(FilterState(make=["Ford"])))
    payload = result.to_payload()
    assert result.success is False
    assert payload["success"] is False
    assert payload["error"]
    assert payload["data"] == []
    assert payload["filters"] == {}
    assert payload["sellers"] == []
    assert payload["meta"]["totalRecords"] == 0
    assert payload["meta"]["hasNextPage"] is False
    assert payload["canonicalUrl"] == "/cars/ford"


def test_pagination_meta():
    service = _service()
    result = asyncio.run(service.search(FilterState(), Pagination(page=2, page_size=4)))
    meta = result.to_payload()["meta"]
    assert meta == {
        "totalRecords": 6,
        "totalPages": 2,
        "currentPage": 2,
        "pageSize": 4,
        "hasNextPage": False,
        "hasPreviousPage": True,
    }
    assert len(result.page.items) == 2


def test_sorting():
    service = _service()
    cheapest = asyncio.run(service.search(FilterState(), sort="price-low")).page.items
    assert [i.price for i in cheapest][:2] == [18500.0, 19900.0]
    newest = asyncio.run(service.search(FilterState(), sort=SortKey.YEAR_NEWEST)).page.items
    assert newest[0].year == 2024
    default = asyncio.run(service.search(FilterState(), sort="bogus")).page.items
    assert default[0].id == "6"


def test_inverted_ranges_are_swapped_before_querying():
    result = asyncio.run(_service().search(FilterState(price_min="30000", price_max="20000")))
    assert result.state.price_min == "20000"
    assert result.state.price_max == "30000"
    assert {i.id for i in result.page.items} == {"1", "2"}


def test_lossy_url_values_match_catalog_names():
    service = _service()
    result = asyncio.run(service.search(FilterState(make=["Ford"], model=["F 150"])))
    assert result.page.total_count == 1
    result = asyncio.run(service.search(FilterState(make=["Bmw"])))
    assert result.page.total_count == 1


def test_cancellation_reaches_sub_calls():
    cancelled = []

    class SlowCatalog(InMemoryCatalog):
        async def query_items(self, state, pagination, sort):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append("items")
                raise

    async def run():
        task = asyncio.create_task(_service(SlowCatalog(demo_items())).search(FilterState()))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert cancelled == ["items"]


def test_sub_calls_run_concurrently():
    delay = 0.2

    class SlowCatalog(InMemoryCatalog):
        async def query_items(self, state, pagination, sort):
            await asyncio.sleep(delay)
            return await self._query_items(state, pagination, sort)

        async def aggregate_facets(self, state):
            await asyncio.sleep(delay)
            return await self._aggregate_facets(state)

    class SlowSellers(StaticSellerDirectory):
        async def list_sellers(self):
            await asyncio.sleep(delay)
            return await super().list_sellers()

    service = _service(SlowCatalog(demo_items()), SlowSellers(SELLERS))
    started = time.perf_counter()
    result = asyncio.run(service.search(FilterState()))
    elapsed = time.perf_counter() - started

    assert result.success
    assert result.facets["make"]
    assert result.sellers
    assert elapsed < delay * 2
