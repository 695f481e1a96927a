from fastapi import APIRouter, Depends, Query, HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Optional
import logging

from ..config import settings
from ..catalog.base import Pagination, SortKey
from ..dependencies import get_listing_service
from ..schemas import ApplyFilterIn, ApplyFilterOut, CombinedResponse, FiltersResponse
from ..services.cascade import clear, set_scalar, set_values, toggle
from ..services.errors import CatalogUnavailable
from ..services.facet_resolver import option_set_to_json
from ..services.filter_state import LIST_FIELDS, SCALAR_FIELDS, FilterState, normalize_ranges
from ..services.listing_service import FAILURE_MESSAGE, ListingService
from ..services.url_canonicalizer import canonical_state, generate

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/vehicles/combined", response_model=CombinedResponse)
async def combined_vehicles(
    request: Request,
    page: int = Query(default=1, ge=1),
    pageSize: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sortBy: Optional[str] = Query(default=None, description="relevance, price-low, price-high, ..."),
    service: ListingService = Depends(get_listing_service),
):
    state = canonical_state(None, request.query_params, root=settings.URL_ROOT)
    result = await service.search(state, Pagination(page=page, page_size=pageSize), SortKey.parse(sortBy))
    return JSONResponse(result.to_payload(), status_code=200 if result.success else 503)


@router.get("/filters", response_model=FiltersResponse)
async def filter_options(
    request: Request,
    service: ListingService = Depends(get_listing_service),
):
    state = normalize_ranges(canonical_state(None, request.query_params, root=settings.URL_ROOT))
    try:
        options = await service.resolver.resolve(state)
    except CatalogUnavailable as exc:
        logger.warning("filter options unavailable: %s", exc)
        return JSONResponse({"success": False, "error": FAILURE_MESSAGE, "filters": {}}, status_code=503)
    return {"success": True, "filters": option_set_to_json(options)}


@router.post("/filters/apply", response_model=ApplyFilterOut)
def apply_filter(body: ApplyFilterIn):
    state = FilterState.from_partial(body.state.model_dump())
    name = body.dimension.strip()
    if name in LIST_FIELDS:
        if body.values is not None:
            updated = set_values(state, name, body.values)
        elif body.value:
            updated = toggle(state, name, body.value)
        else:
            updated = clear(state, name)
    elif name in SCALAR_FIELDS:
        updated = set_scalar(state, name, body.value)
    else:
        raise HTTPException(status_code=422, detail=f"Unknown filter: {name}")
    return {"state": updated.as_dict(), "url": generate(updated, root=settings.URL_ROOT)}
