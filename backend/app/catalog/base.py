from __future__ import annotations

import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..services.filter_state import FacetDimension, FacetOption, FilterState, canonicalize_state

logger = logging.getLogger(__name__)


@dataclass
class ItemSummary:
    id: str
    title: str = ""
    year: Optional[int] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    price: Optional[float] = None
    payment: Optional[float] = None
    mileage: Optional[int] = None
    condition: Optional[str] = None
    vehicle_type: Optional[str] = None
    drive_type: Optional[str] = None
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    exterior_color: Optional[str] = None
    interior_color: Optional[str] = None
    seller_type: Optional[str] = None
    dealer: Optional[str] = None
    dealer_account: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    image: Optional[str] = None
    listed_at: Optional[datetime] = None

    def facet_value(self, dimension: FacetDimension) -> Optional[str]:
        value = getattr(self, dimension.value)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def as_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        if self.listed_at is not None:
            out["listed_at"] = self.listed_at.isoformat()
        return out


@dataclass
class ItemPage:
    items: List[ItemSummary]
    total_count: int
    total_pages: int


@dataclass
class Pagination:
    page: int = 1
    page_size: int = 20

    def __post_init__(self) -> None:
        self.page = max(int(self.page or 1), 1)
        self.page_size = min(max(int(self.page_size or 1), 1), 100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.page_size) if total > 0 else 0


class SortKey(str, Enum):
    RELEVANCE = "relevance"
    PRICE_LOW = "price-low"
    PRICE_HIGH = "price-high"
    MILES_LOW = "miles-low"
    MILES_HIGH = "miles-high"
    YEAR_NEWEST = "year-newest"
    YEAR_OLDEST = "year-oldest"

    @classmethod
    def parse(cls, value: Optional[str]) -> "SortKey":
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.RELEVANCE


class Catalog(ABC):
    """Asynchronous inventory backend; methods raise CatalogUnavailable on transport failure."""

    @abstractmethod
    async def query_items(self, state: FilterState, pagination: Pagination, sort: SortKey) -> ItemPage:
        ...

    @abstractmethod
    async def aggregate_facets(self, state: FilterState) -> Dict[str, List[FacetOption]]:
        ...

    async def aclose(self) -> None:
        return None


class BaseCatalog(Catalog):
    """Resolves decoded filter values against the catalog's own vocabulary.

    URL decoding is lossy ("F 150" for "F-150"), so list facets are mapped to
    the facet names of the unfiltered catalog sharing the same slug before a
    query is delegated to ``_query_items`` / ``_aggregate_facets``. The
    vocabulary is cached in-process for ``vocabulary_ttl`` seconds.
    """

    def __init__(self, *, vocabulary_ttl: float = 300.0) -> None:
        self.vocabulary_ttl = vocabulary_ttl
        self._vocabulary: Optional[Dict[str, List[str]]] = None
        self._vocabulary_ts: Optional[float] = None

    @abstractmethod
    async def _query_items(self, state: FilterState, pagination: Pagination, sort: SortKey) -> ItemPage:
        ...

    @abstractmethod
    async def _aggregate_facets(self, state: FilterState) -> Dict[str, List[FacetOption]]:
        ...

    async def vocabulary(self) -> Dict[str, List[str]]:
        now = time.time()
        if self._vocabulary is not None and self._vocabulary_ts and now - self._vocabulary_ts < self.vocabulary_ttl:
            return self._vocabulary
        universe = await self._aggregate_facets(FilterState())
        self._vocabulary = {dim: [opt.name for opt in options] for dim, options in universe.items()}
        self._vocabulary_ts = now
        logger.debug("catalog vocabulary refreshed dims=%s", len(self._vocabulary))
        return self._vocabulary

    async def canonical(self, state: FilterState) -> FilterState:
        if not state.active_dimensions():
            return state
        return canonicalize_state(state, await self.vocabulary())

    async def query_items(self, state: FilterState, pagination: Pagination, sort: SortKey) -> ItemPage:
        return await self._query_items(await self.canonical(state), pagination, sort)

    async def aggregate_facets(self, state: FilterState) -> Dict[str, List[FacetOption]]:
        return await self._aggregate_facets(await self.canonical(state))


@dataclass(frozen=True)
class SellerLabel:
    account: str
    name: str
    seller_type: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    phone: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SellerDirectory(ABC):
    @abstractmethod
    async def list_sellers(self) -> List[SellerLabel]:
        ...


__all__ = [
    "BaseCatalog",
    "Catalog",
    "ItemPage",
    "ItemSummary",
    "Pagination",
    "SellerDirectory",
    "SellerLabel",
    "SortKey",
]
