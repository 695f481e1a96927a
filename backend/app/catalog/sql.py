from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..models import Seller, Vehicle
from ..services.errors import CatalogUnavailable
from ..services.filter_state import FacetDimension, FacetOption, FilterState, MileageBucket, to_float
from .base import BaseCatalog, ItemPage, ItemSummary, Pagination, SellerDirectory, SellerLabel, SortKey

logger = logging.getLogger(__name__)

_COLUMNS = {
    FacetDimension.MAKE: Vehicle.make,
    FacetDimension.MODEL: Vehicle.model,
    FacetDimension.TRIM: Vehicle.trim,
    FacetDimension.YEAR: Vehicle.year,
    FacetDimension.CONDITION: Vehicle.condition,
    FacetDimension.VEHICLE_TYPE: Vehicle.body_style,
    FacetDimension.DRIVE_TYPE: Vehicle.drivetrain,
    FacetDimension.TRANSMISSION: Vehicle.transmission,
    FacetDimension.FUEL_TYPE: Vehicle.fuel_type,
    FacetDimension.EXTERIOR_COLOR: Vehicle.exterior_color,
    FacetDimension.INTERIOR_COLOR: Vehicle.interior_color,
    FacetDimension.SELLER_TYPE: Vehicle.seller_type,
    FacetDimension.DEALER: Vehicle.dealer_name,
    FacetDimension.CITY: Vehicle.city,
    FacetDimension.STATE: Vehicle.state,
}

_ORDER = {
    SortKey.RELEVANCE: (Vehicle.listed_at.desc(), Vehicle.id.desc()),
    SortKey.PRICE_LOW: (Vehicle.price.asc(), Vehicle.id.asc()),
    SortKey.PRICE_HIGH: (Vehicle.price.desc(), Vehicle.id.asc()),
    SortKey.MILES_LOW: (Vehicle.mileage.asc(), Vehicle.id.asc()),
    SortKey.MILES_HIGH: (Vehicle.mileage.desc(), Vehicle.id.asc()),
    SortKey.YEAR_NEWEST: (Vehicle.year.desc(), Vehicle.id.asc()),
    SortKey.YEAR_OLDEST: (Vehicle.year.asc(), Vehicle.id.asc()),
}


def _as_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _to_summary(row: Vehicle) -> ItemSummary:
    return ItemSummary(
        id=row.external_id,
        title=row.title or " ".join(str(p) for p in (row.year, row.make, row.model, row.trim) if p),
        year=row.year,
        make=row.make,
        model=row.model,
        trim=row.trim,
        price=_as_float(row.price),
        payment=_as_float(row.payment),
        mileage=row.mileage,
        condition=row.condition,
        vehicle_type=row.body_style,
        drive_type=row.drivetrain,
        transmission=row.transmission,
        fuel_type=row.fuel_type,
        exterior_color=row.exterior_color,
        interior_color=row.interior_color,
        seller_type=row.seller_type,
        dealer=row.dealer_name,
        dealer_account=row.dealer_account,
        city=row.city,
        state=row.state,
        image=row.image_url,
        listed_at=row.listed_at,
    )


def build_conditions(state: FilterState) -> list:
    conditions = [Vehicle.is_available.is_(True)]
    for dim, column in _COLUMNS.items():
        selected = state.values(dim)
        if not selected:
            continue
        if dim is FacetDimension.YEAR:
            years = [int(v) for v in (to_float(s) for s in selected) if v is not None]
            # no numeric year selected matches nothing
            conditions.append(Vehicle.year.in_(years))
        else:
            # case-insensitive equality
            conditions.append(func.lower(column).in_([s.lower() for s in selected]))
    bucket = MileageBucket.lookup(state.mileage)
    if bucket is not None:
        low, high = bucket.bounds
        if low is not None:
            conditions.append(Vehicle.mileage >= low)
        if high is not None:
            conditions.append(Vehicle.mileage <= high)
    for column, low_raw, high_raw in (
        (Vehicle.price, state.price_min, state.price_max),
        (Vehicle.year, state.year_min, state.year_max),
        (Vehicle.payment, state.payment_min, state.payment_max),
    ):
        low = to_float(low_raw)
        high = to_float(high_raw)
        if low is not None:
            conditions.append(column >= low)
        if high is not None:
            conditions.append(column <= high)
    return conditions


class SqlCatalog(BaseCatalog):
    """Catalog over the local ``vehicles`` mirror table.

    Queries run in the threadpool, each call on its own session.
    """

    def __init__(self, session_factory: Callable[[], Session], *, vocabulary_ttl: float = 300.0) -> None:
        super().__init__(vocabulary_ttl=vocabulary_ttl)
        self.session_factory = session_factory

    def query_items_sync(self, state: FilterState, pagination: Pagination, sort: SortKey) -> ItemPage:
        where_expr = and_(*build_conditions(state))
        with self.session_factory() as db:
            total = db.execute(select(func.count()).select_from(Vehicle).where(where_expr)).scalar_one()
            stmt = (
                select(Vehicle)
                .where(where_expr)
                .order_by(*_ORDER.get(sort, _ORDER[SortKey.RELEVANCE]))
                .offset(pagination.offset)
                .limit(pagination.page_size)
            )
            rows = list(db.execute(stmt).scalars().all())
            items = [_to_summary(row) for row in rows]
        return ItemPage(items=items, total_count=int(total), total_pages=pagination.total_pages(int(total)))

    def aggregate_facets_sync(self, state: FilterState) -> Dict[str, List[FacetOption]]:
        where_expr = and_(*build_conditions(state))
        out: Dict[str, List[FacetOption]] = {}
        with self.session_factory() as db:
            for dim, column in _COLUMNS.items():
                if dim is FacetDimension.DEALER:
                    stmt = (
                        select(Vehicle.dealer_name, Vehicle.dealer_account, func.count().label("count"))
                        .where(where_expr, Vehicle.dealer_name.is_not(None))
                        .group_by(Vehicle.dealer_name, Vehicle.dealer_account)
                    )
                    rows = db.execute(stmt).all()
                    out[dim.value] = [
                        FacetOption(name=str(r[0]), count=int(r[2]), id=r[1] or None) for r in rows if r[0]
                    ]
                    continue
                stmt = (
                    select(column, func.count().label("count"))
                    .where(where_expr, column.is_not(None))
                    .group_by(column)
                )
                rows = db.execute(stmt).all()
                out[dim.value] = [FacetOption(name=str(r[0]), count=int(r[1])) for r in rows if r[0] not in (None, "")]
        return out

    async def _query_items(self, state: FilterState, pagination: Pagination, sort: SortKey) -> ItemPage:
        try:
            return await run_in_threadpool(self.query_items_sync, state, pagination, sort)
        except SQLAlchemyError as exc:
            logger.warning("sql catalog query failed: %s", exc)
            raise CatalogUnavailable(str(exc), operation="query_items") from exc

    async def _aggregate_facets(self, state: FilterState) -> Dict[str, List[FacetOption]]:
        try:
            return await run_in_threadpool(self.aggregate_facets_sync, state)
        except SQLAlchemyError as exc:
            logger.warning("sql catalog aggregation failed: %s", exc)
            raise CatalogUnavailable(str(exc), operation="aggregate_facets") from exc


class SqlSellerDirectory(SellerDirectory):
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def list_sellers_sync(self) -> List[SellerLabel]:
        with self.session_factory() as db:
            rows = db.execute(select(Seller).order_by(Seller.name.asc(), Seller.account_number.asc())).scalars().all()
            return [
                SellerLabel(
                    account=r.account_number,
                    name=r.name,
                    seller_type=r.seller_type,
                    city=r.city,
                    state=r.state,
                    phone=r.phone,
                )
                for r in rows
            ]

    async def list_sellers(self) -> List[SellerLabel]:
        try:
            return await run_in_threadpool(self.list_sellers_sync)
        except SQLAlchemyError as exc:
            raise CatalogUnavailable(str(exc), operation="list_sellers") from exc


__all__ = ["SqlCatalog", "SqlSellerDirectory", "build_conditions"]
