# storefront/main.py
from __future__ import annotations

import logging
import traceback
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from storefront.app.core.logging import setup_logging
from storefront.app.core.config import settings
from storefront.app.core.metrics import cart_request_counter

from storefront.app.api.routes_health import router as health_router
from storefront.app.api.routes_products import router as products_router
from storefront.app.api.routes_cart import router as cart_router
from storefront.app.api.routes_orders import router as orders_router
from storefront.app.api.routes_metrics import router as metrics_router

log = logging.getLogger(__name__)


def create_app() -> FastAPI:
    # Initialize logging early so all imports use correct handlers/levels
    setup_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title=settings.service_name or "Storefront",
        version=settings.version or "0.1.0",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
    )

    # --- Global JSON error handler: convert unexpected 500s to JSON so clients can parse ---
    @app.exception_handler(Exception)
    async def _unhandled_exc_to_json(request: Request, exc: Exception):
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        log.error("unhandled exception on %s %s\n%s", request.method, request.url.path, tb)
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "detail": str(exc),
                "path": str(request.url),
                "method": request.method,
            },
        )

    @app.middleware("http")
    async def _count_cart_requests(request: Request, call_next):
        response = await call_next(request)
        if request.url.path.startswith("/api/cart"):
            cart_request_counter.inc(
                labels={"method": request.method, "status": str(response.status_code)}
            )
        return response

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins or ["*"],
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods or ["*"],
        allow_headers=settings.cors_allow_headers or ["*"],
    )

    # Routes
    app.include_router(health_router)
    app.include_router(products_router)
    app.include_router(cart_router)
    app.include_router(orders_router)
    app.include_router(metrics_router)

    # Friendly root
    @app.get("/")
    def root():
        return {
            "service": settings.service_name or "storefront",
            "version": settings.version or "0.1.0",
            "environment": settings.environment or "dev",
            "docs": "/docs",
            "openapi": "/openapi.json",
            "tips": {
                "health": "/api/health",
                "products": "GET|POST /api/products, PUT /api/products/{id}",
                "cart": "GET|POST|PUT|DELETE /api/cart (X-User-Id header)",
                "clear_cart": "POST /api/cart/clear",
                "orders": "GET|POST /api/orders (X-User-Id header)",
                "metrics": "/api/metrics",
            },
        }

    return app


app = create_app()
