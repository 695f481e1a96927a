import asyncio
from datetime import datetime

import httpx
import pytest

from backend.app.catalog.base import Pagination, SortKey
from backend.app.catalog.remote import RemoteCatalog, build_params, map_filters
from backend.app.services.errors import CatalogUnavailable
from backend.app.services.filter_state import FilterState

BASE_URL = "http://inventory.test/wp-json/custom/v1"

VEHICLES = {
    "success": True,
    "data": [
        {
            "id": 11,
            "name": "2022 Toyota Camry LE",
            "price": "26900",
            "featured_image": "https://img.test/11.jpg",
            "date_created": "2025-01-02T10:00:00",
            "acf": {
                "make": "Toyota",
                "model": "Camry",
                "year": 2022,
                "trim": "LE",
                "mileage": "24000",
                "condition": "Used",
                "body_style": "Sedan",
                "drivetrain": "FWD",
                "transmission": "Automatic",
                "fuel_type": "Gasoline",
                "exterior_color": "White",
                "interior_color": "Black",
                "account_name_seller": "Sound Auto",
                "account_number_seller": "D100",
                "account_type_seller": "Dealer",
                "city_seller": "Seattle",
                "state_seller": "WA",
                "payment": "449",
            },
        }
    ],
    "pagination": {"total": 41, "page": 2, "per_page": 20, "total_pages": 3},
}

FILTERS = {
    "success": True,
    "filters": {
        "make": [{"name": "Toyota", "count": 12}, {"name": "Ford", "count": 5}],
        "model": [{"name": "Camry", "count": 4}, {"name": "", "count": 2}],
        "body_style": [{"name": "SUV / Crossover", "count": 3}],
        "account_name_seller": [{"name": "Sound Auto", "count": 6, "accountId": "D100"}],
        "certified": [{"name": "1", "count": 2}],
    },
}


def _catalog(handler) -> RemoteCatalog:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteCatalog(BASE_URL, client=client)


def test_query_items_maps_listings_and_sends_wire_params():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path.endswith("/filters"):
            return httpx.Response(200, json=FILTERS)
        return httpx.Response(200, json=VEHICLES)

    catalog = _catalog(handler)
    page = asyncio.run(
        catalog.query_items(FilterState(make=["toyota"]), Pagination(page=2, page_size=20), SortKey.PRICE_LOW)
    )

    vehicles_req = [r for r in seen if r.url.path.endswith("/vehicles")][0]
    assert vehicles_req.url.params["make"] == "Toyota"
    assert vehicles_req.url.params["orderby"] == "price"
    assert vehicles_req.url.params["order"] == "asc"
    assert vehicles_req.url.params["page"] == "2"
    assert vehicles_req.url.params["per_page"] == "20"
    assert page.total_count == 41
    assert page.total_pages == 3
    item = page.items[0]
    assert item.id == "11"
    assert (item.make, item.model, item.year, item.mileage) == ("Toyota", "Camry", 2022, 24000)
    assert item.price == 26900.0
    assert item.payment == 449.0
    assert item.vehicle_type == "Sedan"
    assert item.dealer == "Sound Auto"
    assert item.dealer_account == "D100"
    assert item.listed_at == datetime(2025, 1, 2, 10, 0)


def test_aggregate_facets_maps_wire_keys():
    catalog = _catalog(lambda request: httpx.Response(200, json=FILTERS))
    facets = asyncio.run(catalog.aggregate_facets(FilterState()))
    assert [o.name for o in facets["make"]] == ["Toyota", "Ford"]
    assert [o.name for o in facets["model"]] == ["Camry"]
    assert facets["vehicle_type"][0].name == "SUV / Crossover"
    assert facets["dealer"][0].id == "D100"
    assert facets["trim"] == []


def test_build_params():
    state = FilterState(
        vehicle_type=["SUV / Crossover"],
        dealer=["Sound Auto"],
        make=["Toyota", "Honda"],
        mileage="Under 15,000",
        price_min="10000",
        year_max="abc",
    )
    assert build_params(state) == {
        "make": "Toyota,Honda",
        "body_style": "SUV / Crossover",
        "account_name_seller": "Sound Auto",
        "min_price": "10000",
        "max_mileage": "15000",
    }


def test_transport_errors_are_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        if len(attempts) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=VEHICLES)

    page = asyncio.run(_catalog(handler).query_items(FilterState(), Pagination(), SortKey.RELEVANCE))
    assert len(attempts) == 3
    assert page.total_count == 41


def test_persistent_transport_error_is_catalog_unavailable():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(1)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CatalogUnavailable) as exc:
        asyncio.run(_catalog(handler).query_items(FilterState(), Pagination(), SortKey.RELEVANCE))
    assert exc.value.operation == "query_items"
    assert len(attempts) == 3


def test_bad_responses_are_catalog_unavailable():
    responses = [
        httpx.Response(500, json={"message": "boom"}),
        httpx.Response(200, content=b"<html>maintenance</html>"),
        httpx.Response(200, json={"success": False, "message": "db error"}),
    ]
    for response in responses:
        catalog = _catalog(lambda request, r=response: r)
        with pytest.raises(CatalogUnavailable):
            asyncio.run(catalog.aggregate_facets(FilterState()))


def test_map_filters_skips_junk_entries():
    facets = map_filters({"make": [{"name": "BMW", "count": "3"}, "bad", {"count": 4}]})
    assert [(o.name, o.count) for o in facets["make"]] == [("BMW", 3)]


def test_aclose_leaves_injected_client_open():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=FILTERS)))
    catalog = RemoteCatalog(BASE_URL, client=client)
    asyncio.run(catalog.aclose())
    assert client.is_closed is False
