# storefront/app.py
from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .auth import SessionStore
from .config import Config, load_config
from .repository import RepositoryError, build_stores
from .routers.admin import router as admin_router
from .routers.catalog import router as catalog_router
from .routers.chatbot import router as chatbot_router
from .routers.orders import router as orders_router
from .seed import ensure_admin, seed_stores

logger = logging.getLogger("uvicorn")


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the API with its own stores.

    Storage is chosen once here: SQL when a database URL is configured,
    process memory otherwise. A database that cannot be reached is an error.
    """
    config = config or load_config()
    app = FastAPI(title="Bloom Storefront")

    logger.info("=== App startup: preparing stores ===")
    stores = build_stores(config.database_url)
    seed_stores(stores, config)
    ensure_admin(stores, config)
    logger.info(f"Storage backend: {stores.backend}; {stores.counts()}")

    app.state.config = config
    app.state.stores = stores
    app.state.sessions = SessionStore(ttl_secs=config.session_ttl_secs)

    @app.exception_handler(RepositoryError)
    def _storage_unavailable(request: Request, exc: RepositoryError):
        logger.error(f"Storage error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Storage unavailable"})

    @app.get("/api/health")
    def health():
        return {
            "ok": True,
            "storage": stores.backend,
            "counts": stores.counts(),
            "admin_key_configured": bool(config.admin_key),
        }

    app.include_router(chatbot_router)
    app.include_router(catalog_router)
    app.include_router(orders_router)
    app.include_router(admin_router)
    return app


app = create_app()

# ============================================================
# Local dev entrypoint
# ============================================================
if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    import uvicorn
    uvicorn.run("storefront.app:app", host=host, port=port, reload=True)
