from __future__ import annotations

from fastapi import APIRouter

from storefront.app.core.config import settings

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health():
    store_root = settings.store_root
    return {
        "service": settings.service_name,
        "version": settings.version,
        "env": {
            "environment": settings.environment,
            "log_level": settings.log_level,
        },
        "store": {
            "root": str(store_root),
            "exists": store_root.exists(),
        },
        "status": "ok",
    }
