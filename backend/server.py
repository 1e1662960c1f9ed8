"""
CRM Console - API Backend

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config import CORS_ORIGINS

# Configuration logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("crm_console")


def create_app(rpc_client=None, **store_options) -> FastAPI:
    """
    Build the app.

    rpc_client: remote procedure caller; built from the environment at
    startup when omitted (and closed at shutdown).
    """
    from routes import cache, clients, dashboard, orders, reminders
    from services.data_store import StoreRegistry
    from services.rpc_client import get_rpc_client

    app = FastAPI(
        title="CRM Console",
        description="Clients, orders, reminders - cached over remote procedures",
        version="1.0.0"
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ==================== ROUTES ====================

    app.include_router(dashboard.router, prefix="/api")
    app.include_router(clients.router, prefix="/api")
    app.include_router(orders.router, prefix="/api")
    app.include_router(reminders.router, prefix="/api")
    app.include_router(cache.router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "name": "CRM Console API",
            "version": "1.0.0",
            "status": "running",
            "docs": "/docs"
        }

    # ==================== STARTUP / SHUTDOWN ====================

    owns_client = rpc_client is None
    if rpc_client is not None:
        app.state.store_registry = StoreRegistry(rpc_client, **store_options)

    @app.on_event("startup")
    async def startup():
        if owns_client:
            app.state.store_registry = StoreRegistry(get_rpc_client(), **store_options)
        logger.info("🚀 CRM Console started")

    @app.on_event("shutdown")
    async def shutdown():
        if owns_client:
            await app.state.store_registry.rpc.aclose()
        logger.info("CRM Console stopped")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
