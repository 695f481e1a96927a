from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import settings
from ..services.errors import CatalogUnavailable
from ..services.filter_state import FacetDimension, FacetOption, FilterState, MileageBucket, to_float
from .base import BaseCatalog, ItemPage, ItemSummary, Pagination, SortKey

logger = logging.getLogger(__name__)

# FilterState field -> inventory API parameter / facet key
WIRE_KEYS: Dict[str, str] = {
    "make": "make",
    "model": "model",
    "trim": "trim",
    "year": "year",
    "condition": "condition",
    "vehicle_type": "body_style",
    "drive_type": "drivetrain",
    "transmission": "transmission",
    "fuel_type": "fuel_type",
    "exterior_color": "exterior_color",
    "interior_color": "interior_color",
    "seller_type": "account_type_seller",
    "dealer": "account_name_seller",
    "city": "city_seller",
    "state": "state_seller",
}

RANGE_KEYS: Dict[str, str] = {
    "price_min": "min_price",
    "price_max": "max_price",
    "year_min": "min_year",
    "year_max": "max_year",
    "payment_min": "min_payment",
    "payment_max": "max_payment",
}

SORT_PARAMS: Dict[SortKey, Dict[str, str]] = {
    SortKey.RELEVANCE: {"orderby": "date", "order": "desc"},
    SortKey.PRICE_LOW: {"orderby": "price", "order": "asc"},
    SortKey.PRICE_HIGH: {"orderby": "price", "order": "desc"},
    SortKey.MILES_LOW: {"orderby": "mileage", "order": "asc"},
    SortKey.MILES_HIGH: {"orderby": "mileage", "order": "desc"},
    SortKey.YEAR_NEWEST: {"orderby": "year", "order": "desc"},
    SortKey.YEAR_OLDEST: {"orderby": "year", "order": "asc"},
}

RetryableError = httpx.TransportError


def _retryable():
    return retry(
        retry=retry_if_exception_type(RetryableError),
        stop=stop_after_attempt(max(int(settings.CATALOG_MAX_ATTEMPTS), 1)),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
    )


def build_params(state: FilterState) -> Dict[str, str]:
    """Inventory API query parameters; list facets are comma-joined display names."""
    params: Dict[str, str] = {}
    for field_name, wire in WIRE_KEYS.items():
        values = getattr(state, field_name)
        if values:
            params[wire] = ",".join(values)
    for field_name, wire in RANGE_KEYS.items():
        value = to_float(getattr(state, field_name))
        if value is not None:
            params[wire] = str(int(value)) if value.is_integer() else str(value)
    bucket = MileageBucket.lookup(state.mileage)
    if bucket is not None:
        low, high = bucket.bounds
        if low is not None:
            params["min_mileage"] = str(low)
        if high is not None:
            params["max_mileage"] = str(high)
    return params


def _as_int(value: Any) -> Optional[int]:
    number = to_float(value)
    return None if number is None else int(number)


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    return text or None


def _parse_dt(value: Any) -> Optional[datetime]:
    text = _as_text(value)
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def map_vehicle(raw: Dict[str, Any]) -> ItemSummary:
    acf = raw.get("acf") or {}
    year = _as_int(acf.get("year"))
    make = _as_text(acf.get("make"))
    model = _as_text(acf.get("model"))
    title = _as_text(raw.get("name")) or " ".join(str(p) for p in (year, make, model) if p)
    price = to_float(raw.get("price"))
    if not price:
        price = to_float(acf.get("price"))
    return ItemSummary(
        id=str(raw.get("id")),
        title=title,
        year=year,
        make=make,
        model=model,
        trim=_as_text(acf.get("trim")),
        price=price or None,
        payment=to_float(acf.get("payment")),
        mileage=_as_int(acf.get("mileage")),
        condition=_as_text(acf.get("condition")),
        vehicle_type=_as_text(acf.get("body_style")),
        drive_type=_as_text(acf.get("drivetrain")),
        transmission=_as_text(acf.get("transmission")),
        fuel_type=_as_text(acf.get("fuel_type")),
        exterior_color=_as_text(acf.get("exterior_color")),
        interior_color=_as_text(acf.get("interior_color")),
        seller_type=_as_text(acf.get("account_type_seller")),
        dealer=_as_text(acf.get("account_name_seller")) or _as_text(acf.get("business_name_seller")),
        dealer_account=_as_text(acf.get("account_number_seller")),
        city=_as_text(acf.get("city_seller")),
        state=_as_text(acf.get("state_seller")),
        image=_as_text(raw.get("featured_image")),
        listed_at=_parse_dt(raw.get("date_created") or acf.get("listed_at")),
    )


def map_filters(raw: Dict[str, Any]) -> Dict[str, List[FacetOption]]:
    out: Dict[str, List[FacetOption]] = {}
    for dim in FacetDimension:
        entries = raw.get(WIRE_KEYS[dim.value]) or []
        options: List[FacetOption] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            name = _as_text(entry.get("name"))
            count = _as_int(entry.get("count")) or 0
            if not name:
                continue
            ident = _as_text(entry.get("id") or entry.get("accountId"))
            options.append(FacetOption(name=name, count=count, id=ident))
        out[dim.value] = options
    return out


class RemoteCatalog(BaseCatalog):
    """Client for the external inventory REST API (``/vehicles`` and ``/filters``)."""

    def __init__(
        self,
        base_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        vocabulary_ttl: float = 300.0,
    ) -> None:
        super().__init__(vocabulary_ttl=vocabulary_ttl)
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": settings.CATALOG_USER_AGENT, "Accept": "application/json"},
        )

    @_retryable()
    async def _get(self, path: str, params: Dict[str, str]) -> httpx.Response:
        return await self.client.get(f"{self.base_url}{path}", params=params)

    async def _fetch_json(self, path: str, params: Dict[str, str], operation: str) -> Dict[str, Any]:
        try:
            resp = await self._get(path, params)
        except httpx.HTTPError as exc:
            logger.warning("catalog %s transport error: %s", operation, exc)
            raise CatalogUnavailable(f"transport error: {exc}", operation=operation) from exc
        if resp.status_code != 200:
            logger.warning("catalog %s status=%s", operation, resp.status_code)
            raise CatalogUnavailable(f"unexpected status {resp.status_code}", operation=operation)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise CatalogUnavailable("invalid JSON from catalog", operation=operation) from exc
        if not isinstance(payload, dict) or payload.get("success") is False:
            raise CatalogUnavailable("catalog reported failure", operation=operation)
        return payload

    async def _query_items(self, state: FilterState, pagination: Pagination, sort: SortKey) -> ItemPage:
        params = build_params(state)
        params.update(SORT_PARAMS.get(sort, SORT_PARAMS[SortKey.RELEVANCE]))
        params["page"] = str(pagination.page)
        params["per_page"] = str(pagination.page_size)
        payload = await self._fetch_json("/vehicles", params, "query_items")
        rows = payload.get("data") or []
        items = [map_vehicle(row) for row in rows if isinstance(row, dict)]
        meta = payload.get("pagination") or {}
        total = _as_int(meta.get("total"))
        if total is None:
            total = len(items)
        total_pages = _as_int(meta.get("total_pages"))
        if total_pages is None:
            total_pages = pagination.total_pages(total)
        return ItemPage(items=items, total_count=total, total_pages=total_pages)

    async def _aggregate_facets(self, state: FilterState) -> Dict[str, List[FacetOption]]:
        payload = await self._fetch_json("/filters", build_params(state), "aggregate_facets")
        return map_filters(payload.get("filters") or {})

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()


__all__ = ["RemoteCatalog", "build_params", "map_filters", "map_vehicle"]
