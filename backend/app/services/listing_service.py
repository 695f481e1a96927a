from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..catalog.base import Catalog, ItemPage, ItemSummary, Pagination, SellerDirectory, SellerLabel, SortKey
from ..utils.redis_cache import build_items_page_key, cache_get_json, cache_set_json
from .errors import CatalogUnavailable
from .facet_resolver import FacetOptionResolver, option_set_to_json
from .filter_state import FacetOptionSet, FilterState, normalize_ranges
from .url_canonicalizer import DEFAULT_ROOT, generate

logger = logging.getLogger(__name__)

FAILURE_MESSAGE = "Inventory is temporarily unavailable"


@dataclass
class ListingResult:
    state: FilterState
    pagination: Pagination
    sort: SortKey
    page: Optional[ItemPage] = None
    facets: Optional[FacetOptionSet] = None
    sellers: List[SellerLabel] = field(default_factory=list)
    error: Optional[str] = None
    root: str = DEFAULT_ROOT

    @property
    def success(self) -> bool:
        return self.error is None and self.page is not None

    def meta(self) -> Dict[str, Any]:
        total = self.page.total_count if self.success else 0
        pages = self.page.total_pages if self.success else 0
        current = self.pagination.page
        return {
            "totalRecords": total,
            "totalPages": pages,
            "currentPage": current,
            "pageSize": self.pagination.page_size,
            "hasNextPage": current < pages,
            "hasPreviousPage": current > 1 and pages > 0,
        }

    def to_payload(self) -> Dict[str, Any]:
        if not self.success:
            return {
                "success": False,
                "error": self.error or FAILURE_MESSAGE,
                "data": [],
                "meta": self.meta(),
                "filters": {},
                "sellers": [],
                "appliedFilters": self.state.as_dict(),
                "canonicalUrl": generate(self.state, root=self.root),
            }
        return {
            "success": True,
            "data": [item.as_dict() for item in self.page.items],
            "meta": self.meta(),
            "filters": option_set_to_json(self.facets) if self.facets is not None else {},
            "sellers": [s.as_dict() for s in self.sellers],
            "appliedFilters": self.state.as_dict(),
            "canonicalUrl": generate(self.state, root=self.root),
        }


def _page_to_json(page: ItemPage) -> Dict[str, Any]:
    return {
        "items": [item.as_dict() for item in page.items],
        "total_count": page.total_count,
        "total_pages": page.total_pages,
    }


def _page_from_json(raw: Dict[str, Any]) -> ItemPage:
    items = []
    for entry in raw.get("items") or []:
        data = dict(entry)
        if data.get("listed_at"):
            data["listed_at"] = datetime.fromisoformat(data["listed_at"])
        items.append(ItemSummary(**data))
    return ItemPage(items=items, total_count=int(raw["total_count"]), total_pages=int(raw["total_pages"]))


class ListingService:
    """Runs the item page, facet options and seller labels for one filter state concurrently.

    Only the item page is required: when it fails the result is a failure
    payload, while facet or seller failures degrade to empty sections.
    """

    def __init__(
        self,
        catalog: Catalog,
        resolver: FacetOptionResolver,
        sellers: Optional[SellerDirectory] = None,
        *,
        items_cache_ttl: int = 0,
        root: str = DEFAULT_ROOT,
    ) -> None:
        self.catalog = catalog
        self.resolver = resolver
        self.sellers = sellers
        self.items_cache_ttl = items_cache_ttl
        self.root = root

    async def _items(self, state: FilterState, pagination: Pagination, sort: SortKey) -> ItemPage:
        cache_key = None
        if self.items_cache_ttl > 0:
            cache_key = build_items_page_key(state, sort.value, pagination.page, pagination.page_size)
            cached = await cache_get_json(cache_key)
            if cached is not None:
                return _page_from_json(cached)
        page = await self.catalog.query_items(state, pagination, sort)
        if cache_key:
            await cache_set_json(cache_key, _page_to_json(page), self.items_cache_ttl)
        return page

    async def _sellers(self) -> List[SellerLabel]:
        if self.sellers is None:
            return []
        return await self.sellers.list_sellers()

    async def search(
        self,
        state: Optional[FilterState] = None,
        pagination: Optional[Pagination] = None,
        sort: SortKey | str = SortKey.RELEVANCE,
    ) -> ListingResult:
        state = normalize_ranges(state or FilterState())
        pagination = pagination or Pagination()
        sort = sort if isinstance(sort, SortKey) else SortKey.parse(sort)
        t0 = time.perf_counter()

        items_res, facets_res, sellers_res = await asyncio.gather(
            self._items(state, pagination, sort),
            self.resolver.resolve(state),
            self._sellers(),
            return_exceptions=True,
        )
        for res in (items_res, facets_res, sellers_res):
            if isinstance(res, asyncio.CancelledError):
                raise res

        result = ListingResult(state=state, pagination=pagination, sort=sort, root=self.root)
        if isinstance(items_res, BaseException):
            self._log_failure("items", items_res)
            result.error = FAILURE_MESSAGE
            return result
        result.page = items_res

        if isinstance(facets_res, BaseException):
            self._log_failure("facets", facets_res)
        else:
            result.facets = facets_res
        if isinstance(sellers_res, BaseException):
            self._log_failure("sellers", sellers_res)
        else:
            result.sellers = list(sellers_res)

        logger.info(
            "listing search total=%s page=%s sort=%s facets=%s took_ms=%.1f",
            items_res.total_count,
            pagination.page,
            sort.value,
            "ok" if result.facets is not None else "degraded",
            (time.perf_counter() - t0) * 1000,
        )
        return result

    @staticmethod
    def _log_failure(part: str, exc: BaseException) -> None:
        if isinstance(exc, CatalogUnavailable):
            logger.warning("listing %s unavailable (%s): %s", part, exc.operation or "-", exc)
        else:
            logger.error("listing %s failed", part, exc_info=(type(exc), exc, exc.__traceback__))


__all__ = ["FAILURE_MESSAGE", "ListingResult", "ListingService"]
