"""Main FastAPI application for the Truck Repair Assistant API.

Startup builds the long-lived collaborators (AI providers and their
selector, the record store, the truck catalogue, geocoding and video
clients) and keeps them on ``app.state``; route handlers reach them
through the dependencies in ``api.deps``.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from truck_assistant.ai.providers import build_providers
from truck_assistant.ai.selector import ProviderSelector
from truck_assistant.api.deps import get_selector, get_settings
from truck_assistant.api.errors import register_exception_handlers
from truck_assistant.cache.local_cache import LocalCache
from truck_assistant.catalog.static_data import StaticData
from truck_assistant.catalog.truck_catalog import TruckCatalog
from truck_assistant.config import Settings, settings
from truck_assistant.log_setup import configure_logging
from truck_assistant.services.geocoding import NominatimClient
from truck_assistant.services.youtube import YouTubeClient
from truck_assistant.storage import build_store

configure_logging(settings.log_level, settings.log_format)
logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Truck Repair Assistant - AI diagnosis, fleet records and service search",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.on_event("startup")
async def startup_event() -> None:
    """Construct and open the application's collaborators."""
    logger.info(
        "app_starting",
        app=settings.app_name,
        version=settings.app_version,
        storage_backend=settings.resolved_storage_backend,
        primary_provider=settings.ai_primary_provider,
        fallback_provider=settings.ai_fallback_provider,
        fallback_enabled=settings.ai_fallback_enabled,
    )
    static = StaticData(settings.data_dir)
    app.state.static = static
    app.state.selector = ProviderSelector.from_settings(settings, build_providers(settings))
    app.state.catalog = TruckCatalog.from_settings(settings, static)
    app.state.geocoder = NominatimClient.from_settings(settings, cache=LocalCache())
    app.state.youtube = YouTubeClient.from_settings(settings)

    store = build_store(settings, static)
    await asyncio.to_thread(store.open)
    app.state.store = store


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """Close clients and release the record store."""
    logger.info("app_stopping", app=settings.app_name)
    if getattr(app.state, "selector", None) is not None:
        await app.state.selector.close()
    if getattr(app.state, "geocoder", None) is not None:
        await app.state.geocoder.close()
    if getattr(app.state, "youtube", None) is not None:
        await app.state.youtube.close()
    if getattr(app.state, "store", None) is not None:
        await asyncio.to_thread(app.state.store.close)


@app.get("/", tags=["Root"])
async def root() -> Dict[str, str]:
    """Root endpoint.

    Returns:
        Welcome message with API information
    """
    return {
        "message": "Truck Repair Assistant API",
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/api/health",
    }


@app.get("/api/health", tags=["Health"])
async def health_check(
    config: Settings = Depends(get_settings),
    selector: ProviderSelector = Depends(get_selector),
) -> dict:
    """Liveness plus which optional integrations are configured."""
    services = selector.configured_providers()
    services.update(config.configured_integrations())
    return {
        "success": True,
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": config.app_version,
        "storageBackend": config.resolved_storage_backend,
        "services": services,
    }


from truck_assistant.api.endpoints import (  # noqa: E402
    ai,
    chat_history,
    data,
    database,
    fleet,
    integrations,
    locations,
    maps,
    trucks,
)

# Include routers
app.include_router(ai.router, prefix="/api/ai", tags=["AI"])
app.include_router(trucks.router, prefix="/api/trucks", tags=["Trucks"])
app.include_router(data.router, prefix="/api/data", tags=["Data"])
app.include_router(database.router, prefix="/api/database", tags=["Database"])
app.include_router(fleet.router, prefix="/api/fleet", tags=["Fleet"])
app.include_router(chat_history.router, prefix="/api/chat", tags=["Chat history"])
# /api owns: locations → /service-locations, /repair-guides
app.include_router(locations.router, prefix="/api", tags=["Locations"])
app.include_router(maps.router, prefix="/api/maps", tags=["Maps"])
app.include_router(integrations.router, prefix="/api/integrations", tags=["Integrations"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )
