from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..services.facet_resolver import count_facets
from ..services.filter_state import FacetDimension, FacetOption, FilterState, MileageBucket, to_float
from .base import BaseCatalog, ItemPage, ItemSummary, Pagination, SellerDirectory, SellerLabel, SortKey


def _within(value: Optional[float], low: Optional[float], high: Optional[float]) -> bool:
    if low is None and high is None:
        return True
    if value is None:
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def matches(item: ItemSummary, state: FilterState) -> bool:
    """AND across facets, OR within a facet; text compares case-insensitively."""
    for dim in FacetDimension:
        selected = state.values(dim)
        if not selected:
            continue
        value = item.facet_value(dim)
        if value is None or value.casefold() not in {s.casefold() for s in selected}:
            return False
    bucket = MileageBucket.lookup(state.mileage)
    if bucket is not None:
        low, high = bucket.bounds
        if not _within(item.mileage, low, high):
            return False
    ranges: Tuple[Tuple[Optional[float], str, str], ...] = (
        (item.price, state.price_min, state.price_max),
        (item.year, state.year_min, state.year_max),
        (item.payment, state.payment_min, state.payment_max),
    )
    for value, low, high in ranges:
        if not _within(None if value is None else float(value), to_float(low), to_float(high)):
            return False
    return True


def _nulls_last(getter: Callable[[ItemSummary], Optional[float]], reverse: bool):
    def key(item: ItemSummary):
        value = getter(item)
        if value is None:
            return (1, 0.0)
        return (0, -float(value) if reverse else float(value))

    return key


_SORTS: Dict[SortKey, Callable[[ItemSummary], object]] = {
    SortKey.RELEVANCE: _nulls_last(lambda i: i.listed_at.timestamp() if i.listed_at else None, reverse=True),
    SortKey.PRICE_LOW: _nulls_last(lambda i: i.price, reverse=False),
    SortKey.PRICE_HIGH: _nulls_last(lambda i: i.price, reverse=True),
    SortKey.MILES_LOW: _nulls_last(lambda i: i.mileage, reverse=False),
    SortKey.MILES_HIGH: _nulls_last(lambda i: i.mileage, reverse=True),
    SortKey.YEAR_NEWEST: _nulls_last(lambda i: i.year, reverse=True),
    SortKey.YEAR_OLDEST: _nulls_last(lambda i: i.year, reverse=False),
}


def sort_items(items: List[ItemSummary], sort: SortKey) -> List[ItemSummary]:
    # sorted() is stable, so ties keep catalog order
    return sorted(items, key=_SORTS.get(sort, _SORTS[SortKey.RELEVANCE]))


class InMemoryCatalog(BaseCatalog):
    """Catalog over a list of listings held in memory (tests, demos, fixtures)."""

    def __init__(self, items: Iterable[ItemSummary], *, vocabulary_ttl: float = 300.0) -> None:
        super().__init__(vocabulary_ttl=vocabulary_ttl)
        self._items = list(items)

    def candidates(self, state: FilterState) -> List[ItemSummary]:
        return [item for item in self._items if matches(item, state)]

    async def _query_items(self, state: FilterState, pagination: Pagination, sort: SortKey) -> ItemPage:
        found = sort_items(self.candidates(state), sort)
        total = len(found)
        page_items = found[pagination.offset: pagination.offset + pagination.page_size]
        return ItemPage(items=page_items, total_count=total, total_pages=pagination.total_pages(total))

    async def _aggregate_facets(self, state: FilterState) -> Dict[str, List[FacetOption]]:
        return count_facets(self.candidates(state))


class StaticSellerDirectory(SellerDirectory):
    def __init__(self, sellers: Iterable[SellerLabel]) -> None:
        self._sellers = list(sellers)

    async def list_sellers(self) -> List[SellerLabel]:
        return list(self._sellers)


def demo_items() -> List[ItemSummary]:
    """Small fixed inventory used when CATALOG_BACKEND=memory."""
    rows = [
        ("1", 2022, "Toyota", "Camry", "LE", 26900, 24000, "Used", "Sedan", "FWD", "Automatic", "Gasoline", "White", "Black", "D100", "Sound Auto", "Seattle", "WA"),
        ("2", 2021, "Toyota", "RAV4", "XLE", 29900, 31000, "Used", "SUV / Crossover", "AWD", "Automatic", "Hybrid", "Silver", "Gray", "D100", "Sound Auto", "Seattle", "WA"),
        ("3", 2023, "Ford", "F-150", "XLT", 45900, 9000, "Certified", "Truck", "4WD", "Automatic", "Gasoline", "Blue", "Black", "D200", "Metro Motors", "Tacoma", "WA"),
        ("4", 2019, "Honda", "Civic", "EX", 18500, 52000, "Used", "Sedan", "FWD", "CVT", "Gasoline", "Black", "Black", "D300", "City Cars", "Portland", "OR"),
        ("5", 2024, "BMW", "X5", "xDrive40i", 68900, 1200, "New", "SUV / Crossover", "AWD", "Automatic", "Gasoline", "Black", "Beige", "D200", "Metro Motors", "Tacoma", "WA"),
        ("6", 2018, "Honda", "CR-V", "LX", 19900, 88000, "Used", "SUV / Crossover", "AWD", "CVT", "Gasoline", "Red", "Gray", "P001", "Jordan Lee", "Bellevue", "WA"),
    ]
    items = []
    for idx, row in enumerate(rows):
        (ident, year, make, model, trim, price, mileage, condition, body, drive, trans, fuel,
         ext, inner, account, dealer, city, state) = row
        items.append(
            ItemSummary(
                id=ident,
                title=f"{year} {make} {model} {trim}",
                year=year,
                make=make,
                model=model,
                trim=trim,
                price=float(price),
                payment=round(price / 60.0, 2),
                mileage=mileage,
                condition=condition,
                vehicle_type=body,
                drive_type=drive,
                transmission=trans,
                fuel_type=fuel,
                exterior_color=ext,
                interior_color=inner,
                seller_type="Private Seller" if account.startswith("P") else "Dealer",
                dealer=dealer,
                dealer_account=account,
                city=city,
                state=state,
                listed_at=datetime(2025, 1, 1 + idx),
            )
        )
    return items


__all__ = ["InMemoryCatalog", "StaticSellerDirectory", "demo_items", "matches", "sort_items"]
