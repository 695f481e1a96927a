from fastapi.testclient import TestClient

from backend.app.catalog.base import SellerLabel
from backend.app.catalog.memory import InMemoryCatalog, StaticSellerDirectory, demo_items
from backend.app.main import create_app
from backend.app.services.errors import CatalogUnavailable


class ItemsDownCatalog(InMemoryCatalog):
    async def query_items(self, state, pagination, sort):
        raise CatalogUnavailable("items down", operation="query_items")


def _client(catalog=None) -> TestClient:
    sellers = StaticSellerDirectory([SellerLabel(account="D100", name="Sound Auto")])
    return TestClient(create_app(catalog=catalog or InMemoryCatalog(demo_items()), sellers=sellers))


def test_combined_endpoint():
    with _client() as client:
        resp = client.get("/api/vehicles/combined", params={"make": "toyota", "pageSize": 1, "sortBy": "price-high"})
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["success"] is True
    assert payload["meta"]["totalRecords"] == 2
    assert payload["meta"]["hasNextPage"] is True
    assert payload["data"][0]["model"] == "RAV4"
    assert payload["canonicalUrl"] == "/cars/toyota"
    assert [o["name"] for o in payload["filters"]["make"]] == ["BMW", "Ford", "Honda", "Toyota"]
    assert payload["sellers"][0]["account"] == "D100"
    assert "X-Process-Time" in resp.headers


def test_combined_endpoint_validates_paging():
    with _client() as client:
        assert client.get("/api/vehicles/combined", params={"pageSize": 0}).status_code == 422
        assert client.get("/api/vehicles/combined", params={"page": 0}).status_code == 422


def test_combined_endpoint_primary_failure():
    with _client(ItemsDownCatalog(demo_items())) as client:
        resp = client.get("/api/vehicles/combined?make=ford")
    assert resp.status_code == 503
    payload = resp.json()
    assert payload["success"] is False
    assert payload["data"] == []
    assert payload["filters"] == {}
    assert payload["meta"]["totalRecords"] == 0


def test_filters_endpoint():
    with _client() as client:
        resp = client.get("/api/filters?make=toyota")
    assert resp.status_code == 200
    filters = resp.json()["filters"]
    assert [o["name"] for o in filters["model"]] == ["Camry", "RAV4"]
    assert filters["dealer"] == [{"name": "Sound Auto", "count": 2, "id": "D100"}]


def test_apply_filter_cascades_and_returns_url():
    body = {
        "state": {"make": ["Toyota"], "model": ["Camry"], "trim": ["LE"]},
        "dimension": "make",
        "value": "Honda",
    }
    with _client() as client:
        resp = client.post("/api/filters/apply", json=body)
    assert resp.status_code == 200
    data = resp.json()
    assert data["state"]["make"] == ["Toyota", "Honda"]
    assert data["state"]["model"] == []
    assert data["state"]["trim"] == []
    assert data["url"] == "/cars?make=toyota,honda"


def test_apply_filter_scalar_and_values():
    with _client() as client:
        resp = client.post("/api/filters/apply", json={"dimension": "price_max", "value": "30000"})
        assert resp.json()["url"] == "/cars?price_max=30000"
        resp = client.post(
            "/api/filters/apply",
            json={"state": {"make": ["Ford"]}, "dimension": "model", "values": ["F-150"]},
        )
        assert resp.json()["url"] == "/cars/ford/f-150"
        assert client.post("/api/filters/apply", json={"dimension": "color", "value": "red"}).status_code == 422


def test_non_canonical_listing_urls_redirect():
    with _client() as client:
        cases = {
            "/cars/Toyota": "/cars/toyota",
            "/cars?make=toyota": "/cars/toyota",
            "/cars?body_type=suv-crossover&make=toyota": "/cars/toyota?body_type=suv-crossover",
            "/cars?make=toyota&page=2": "/cars/toyota?page=2",
            "/cars/toyota?price_min=abc": "/cars/toyota",
        }
        for url, target in cases.items():
            resp = client.get(url, follow_redirects=False)
            assert resp.status_code == 301, url
            assert resp.headers["location"] == target, url


def test_redirect_target_is_canonical():
    with _client() as client:
        resp = client.get("/cars?price_min=1,000&sortBy=price-low", follow_redirects=False)
        assert resp.status_code == 301
        assert resp.headers["location"] == "/cars?price_min=1000&sortBy=price-low"
        resp = client.get(resp.headers["location"], follow_redirects=False)
        assert resp.status_code == 200
        assert resp.json()["canonicalUrl"] == "/cars?price_min=1000"
        resp = client.get("/cars/toyota?price_max=25000.5", follow_redirects=False)
        assert resp.status_code == 200


def test_apply_filter_toggles_off_lossy_make():
    body = {
        "state": {"make": ["Land Rover"], "model": ["Defender"], "trim": ["X"]},
        "dimension": "make",
        "value": "Land-Rover",
    }
    with _client() as client:
        data = client.post("/api/filters/apply", json=body).json()
    assert data["state"]["make"] == []
    assert data["state"]["model"] == []
    assert data["state"]["trim"] == []
    assert data["url"] == "/cars"


def test_canonical_listing_urls_render():
    with _client() as client:
        resp = client.get("/cars/toyota/camry?trim=le", follow_redirects=False)
        assert resp.status_code == 200
        assert resp.json()["meta"]["totalRecords"] == 1
        resp = client.get("/cars/toyota?page=1&sortBy=price-low", follow_redirects=False)
        assert resp.status_code == 200
        assert resp.json()["data"][0]["model"] == "Camry"


def test_lossy_path_segments_resolve_against_catalog():
    with _client() as client:
        assert client.get("/cars/ford/f-150").json()["meta"]["totalRecords"] == 1
        assert client.get("/cars/bmw").json()["meta"]["totalRecords"] == 1


def test_health():
    with _client() as client:
        assert client.get("/health").json() == {"status": "ok"}
