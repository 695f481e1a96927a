import asyncio

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from backend.app.catalog.base import Pagination, SortKey
from backend.app.catalog.memory import demo_items
from backend.app.catalog.sql import SqlCatalog, SqlSellerDirectory
from backend.app.models import Base, Seller, Vehicle
from backend.app.services.facet_resolver import FacetOptionResolver
from backend.app.services.filter_state import FilterState


def _session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'inventory.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    with factory() as db:
        for item in demo_items():
            db.add(
                Vehicle(
                    external_id=item.id,
                    title=item.title,
                    make=item.make,
                    model=item.model,
                    trim=item.trim,
                    year=item.year,
                    mileage=item.mileage,
                    price=item.price,
                    payment=item.payment,
                    condition=item.condition,
                    body_style=item.vehicle_type,
                    drivetrain=item.drive_type,
                    transmission=item.transmission,
                    fuel_type=item.fuel_type,
                    exterior_color=item.exterior_color,
                    interior_color=item.interior_color,
                    seller_type=item.seller_type,
                    dealer_name=item.dealer,
                    dealer_account=item.dealer_account,
                    city=item.city,
                    state=item.state,
                    listed_at=item.listed_at,
                    is_available=True,
                )
            )
        db.add(Vehicle(external_id="sold-1", make="Toyota", model="Camry", year=2020, is_available=False))
        db.add(Seller(account_number="D100", name="Sound Auto", seller_type="Dealer", city="Seattle", state="WA"))
        db.add(Seller(account_number="D200", name="Metro Motors", seller_type="Dealer", city="Tacoma", state="WA"))
        db.commit()
    return factory


def _query(catalog, state, **kwargs):
    pagination = kwargs.pop("pagination", Pagination())
    sort = kwargs.pop("sort", SortKey.RELEVANCE)
    return asyncio.run(catalog.query_items(state, pagination, sort))


def test_query_filters_and_skips_unavailable(tmp_path):
    catalog = SqlCatalog(_session_factory(tmp_path))
    page = _query(catalog, FilterState(make=["toyota"]))
    assert page.total_count == 2
    assert {i.model for i in page.items} == {"Camry", "RAV4"}
    assert all(isinstance(i.price, float) for i in page.items)


def test_query_ranges_years_and_mileage(tmp_path):
    catalog = SqlCatalog(_session_factory(tmp_path))
    assert _query(catalog, FilterState(price_min="20000", price_max="30000")).total_count == 2
    assert _query(catalog, FilterState(year=["2018", "2019"])).total_count == 2
    assert _query(catalog, FilterState(year_min="2022")).total_count == 3
    assert _query(catalog, FilterState(mileage="Under 15,000")).total_count == 2
    assert _query(catalog, FilterState(mileage="60,000 – 100,000")).total_count == 1


def test_query_matches_lossy_url_values(tmp_path):
    catalog = SqlCatalog(_session_factory(tmp_path))
    page = _query(catalog, FilterState(make=["Ford"], model=["F 150"]))
    assert page.total_count == 1
    assert page.items[0].model == "F-150"
    assert _query(catalog, FilterState(vehicle_type=["Suv Crossover"])).total_count == 3


def test_query_sort_and_pages(tmp_path):
    catalog = SqlCatalog(_session_factory(tmp_path))
    page = _query(catalog, FilterState(), pagination=Pagination(page=1, page_size=4), sort=SortKey.PRICE_HIGH)
    assert page.total_count == 6
    assert page.total_pages == 2
    assert [i.price for i in page.items] == [68900.0, 45900.0, 29900.0, 26900.0]
    newest = _query(catalog, FilterState(), sort=SortKey.RELEVANCE)
    assert newest.items[0].id == "6"


def test_aggregate_facets(tmp_path):
    catalog = SqlCatalog(_session_factory(tmp_path))
    facets = asyncio.run(catalog.aggregate_facets(FilterState()))
    assert {o.name: o.count for o in facets["make"]} == {"BMW": 1, "Ford": 1, "Honda": 2, "Toyota": 2}
    assert {o.name: o.count for o in facets["year"]}["2022"] == 1
    dealers = {(o.name, o.id): o.count for o in facets["dealer"]}
    assert dealers[("Sound Auto", "D100")] == 2
    assert dealers[("Jordan Lee", "P001")] == 1


def test_resolver_over_sql(tmp_path):
    catalog = SqlCatalog(_session_factory(tmp_path))
    options = asyncio.run(FacetOptionResolver(catalog).resolve(FilterState(make=["Honda"])))
    assert [o.name for o in options["make"]] == ["BMW", "Ford", "Honda", "Toyota"]
    assert [(o.name, o.count) for o in options["model"]] == [("Civic", 1), ("CR-V", 1)]


def test_seller_directory(tmp_path):
    directory = SqlSellerDirectory(_session_factory(tmp_path))
    sellers = asyncio.run(directory.list_sellers())
    assert [s.account for s in sellers] == ["D200", "D100"]
    assert sellers[1].name == "Sound Auto"
