from __future__ import annotations

import logging
from typing import Optional

from fastapi import Request

from .catalog.base import Catalog, SellerDirectory, SellerLabel
from .catalog.memory import InMemoryCatalog, StaticSellerDirectory, demo_items
from .catalog.remote import RemoteCatalog
from .config import Settings, settings
from .services.facet_resolver import FacetOptionResolver, FacetPolicy
from .services.listing_service import ListingService

logger = logging.getLogger(__name__)


def build_catalog(cfg: Settings = settings) -> Catalog:
    backend = (cfg.CATALOG_BACKEND or "sql").strip().lower()
    if backend == "memory":
        return InMemoryCatalog(demo_items(), vocabulary_ttl=cfg.VOCABULARY_TTL_SECONDS)
    if backend == "remote":
        if not cfg.CATALOG_BASE_URL:
            raise RuntimeError("CATALOG_BASE_URL is required for CATALOG_BACKEND=remote")
        return RemoteCatalog(
            cfg.CATALOG_BASE_URL,
            timeout=cfg.CATALOG_TIMEOUT_SECONDS,
            vocabulary_ttl=cfg.VOCABULARY_TTL_SECONDS,
        )
    if backend != "sql":
        logger.warning("unknown CATALOG_BACKEND=%s, using sql", backend)
    from .catalog.sql import SqlCatalog
    from .db import SessionLocal

    return SqlCatalog(SessionLocal, vocabulary_ttl=cfg.VOCABULARY_TTL_SECONDS)


def build_sellers(cfg: Settings = settings) -> Optional[SellerDirectory]:
    backend = (cfg.CATALOG_BACKEND or "sql").strip().lower()
    if backend == "memory":
        labels = {}
        for item in demo_items():
            if item.dealer_account and item.dealer_account not in labels:
                labels[item.dealer_account] = SellerLabel(
                    account=item.dealer_account,
                    name=item.dealer or item.dealer_account,
                    seller_type=item.seller_type,
                    city=item.city,
                    state=item.state,
                )
        return StaticSellerDirectory(labels.values())
    if backend == "remote":
        # the inventory API carries seller labels on each listing
        return None
    from .catalog.sql import SqlSellerDirectory
    from .db import SessionLocal

    return SqlSellerDirectory(SessionLocal)


def build_listing_service(
    catalog: Catalog,
    sellers: Optional[SellerDirectory] = None,
    cfg: Settings = settings,
) -> ListingService:
    resolver = FacetOptionResolver(
        catalog,
        policy=FacetPolicy.parse(cfg.FACET_POLICY),
        cache_ttl=cfg.FACET_CACHE_TTL_SECONDS,
    )
    return ListingService(
        catalog,
        resolver,
        sellers,
        items_cache_ttl=cfg.ITEMS_CACHE_TTL_SECONDS,
        root=cfg.URL_ROOT,
    )


def get_listing_service(request: Request) -> ListingService:
    return request.app.state.listing_service
