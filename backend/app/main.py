from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from .config import settings
from .catalog.base import Catalog, SellerDirectory
from .dependencies import build_catalog, build_listing_service, build_sellers
import logging
import time
import os
import uuid
from .routers.pages import router as pages_router
from .routers.catalog import router as catalog_router


def create_app(catalog: Optional[Catalog] = None, sellers: Optional[SellerDirectory] = None) -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        own = catalog is None
        active = catalog or build_catalog()
        directory = sellers if catalog is not None else build_sellers()
        app.state.catalog = active
        app.state.listing_service = build_listing_service(active, directory)
        logger.info(
            "storefront started backend=%s policy=%s",
            type(active).__name__,
            app.state.listing_service.resolver.policy.value,
        )
        try:
            yield
        finally:
            if own:
                await active.aclose()

    app = FastAPI(title="Vehicle Storefront", version="0.1.0", lifespan=lifespan)

    @app.middleware("http")
    async def timing_middleware(request: Request, call_next):
        t0 = time.perf_counter()
        req_id = uuid.uuid4().hex[:8]
        response = await call_next(request)
        total = time.perf_counter() - t0
        response.headers["X-Process-Time"] = f"{total:.3f}"
        if os.environ.get("REQ_TIMING", "0") == "1":
            response.headers["Server-Timing"] = f"app;dur={total*1000:.1f}"
            logger.info(
                "req_timing id=%s path=%s status=%s total_ms=%.1f",
                req_id,
                request.url.path,
                response.status_code,
                total * 1000,
            )
        return response

    app.include_router(pages_router)
    app.include_router(catalog_router, prefix="/api", tags=["catalog"])

    @app.get("/health", include_in_schema=False)
    def healthcheck():
        return {"status": "ok"}

    return app


app = create_app()
