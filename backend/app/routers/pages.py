from typing import Optional
from urllib.parse import unquote, urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from ..config import settings
from ..catalog.base import Pagination, SortKey
from ..dependencies import get_listing_service
from ..services.listing_service import ListingService
from ..services.url_canonicalizer import canonical_state, generate

router = APIRouter()

ROOT = "/" + settings.URL_ROOT.strip("/")
# paging/sorting ride along with the canonical URL but are not filters
VIEW_PARAMS = ("page", "pageSize", "sortBy")


def _current_url(request: Request) -> str:
    """Path and filter query as decoded by the server, view params removed."""
    pairs = [(k, v) for k, v in request.query_params.multi_items() if k not in VIEW_PARAMS]
    path = request.url.path
    if len(path) > 1:
        path = path.rstrip("/")
    if not pairs:
        return path
    return path + "?" + "&".join(f"{k}={v}" for k, v in pairs)


def _view_query(request: Request) -> str:
    return urlencode([(k, v) for k, v in request.query_params.multi_items() if k in VIEW_PARAMS])


async def _listing(
    request: Request,
    page: int,
    page_size: int,
    sort_by: Optional[str],
    service: ListingService,
):
    state = canonical_state(request.url.path, request.query_params, root=settings.URL_ROOT)
    canonical = generate(state, root=settings.URL_ROOT)
    if _current_url(request) != unquote(canonical):
        target = canonical
        view = _view_query(request)
        if view:
            target += ("&" if "?" in target else "?") + view
        return RedirectResponse(url=target, status_code=301)
    result = await service.search(state, Pagination(page=page, page_size=page_size), SortKey.parse(sort_by))
    return JSONResponse(result.to_payload(), status_code=200 if result.success else 503)


@router.get(ROOT)
async def listing_root(
    request: Request,
    page: int = Query(default=1, ge=1),
    pageSize: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sortBy: Optional[str] = Query(default=None),
    service: ListingService = Depends(get_listing_service),
):
    return await _listing(request, page, pageSize, sortBy, service)


@router.get(ROOT + "/{make}")
async def listing_make(
    request: Request,
    make: str,
    page: int = Query(default=1, ge=1),
    pageSize: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sortBy: Optional[str] = Query(default=None),
    service: ListingService = Depends(get_listing_service),
):
    return await _listing(request, page, pageSize, sortBy, service)


@router.get(ROOT + "/{make}/{model}")
async def listing_make_model(
    request: Request,
    make: str,
    model: str,
    page: int = Query(default=1, ge=1),
    pageSize: int = Query(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    sortBy: Optional[str] = Query(default=None),
    service: ListingService = Depends(get_listing_service),
):
    return await _listing(request, page, pageSize, sortBy, service)
