# storefront/api/__init__.py
from fastapi import FastAPI

from storefront.api.routers import carts, catalog, cron, health, webhooks


def include_routers(app: FastAPI) -> FastAPI:
    app.include_router(health.router)
    app.include_router(carts.router)
    app.include_router(catalog.router)
    app.include_router(webhooks.router)
    app.include_router(cron.router)
    return app
