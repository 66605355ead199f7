"""Poolmap FastAPI Application.

Serves the cached stake pool snapshot, proxies the chain tip and pushes
live block updates over WebSocket.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .dependencies import AppServices, init_services, reset_services
from .models import StakePool
from .routers import blocks, health, pools, render
from .routers import websocket as ws_router
from .services.blockfrost import BlockfrostClient
from .services.block_poller import LiveBlockPoller
from .services.cache_store import CacheStore, CacheUnavailable, CacheCorrupt
from .services.config import (
    config_service,
    configure_logging,
    ConfigValidationException,
    ServerSettings,
    Settings,
)
from .services.live_updates import live_update_manager

logger = logging.getLogger(__name__)


def _load_settings_or_exit() -> Settings:
    try:
        settings = config_service.load_settings()
        print("Configuration validated successfully")
        return settings
    except ConfigValidationException as e:
        print(f"FATAL: {e}")
        print("Server cannot start with invalid configuration.")
        sys.exit(1)


def _cached_pools(store: CacheStore) -> List[StakePool]:
    """Pools used to resolve slot leader names; empty until ingested."""
    try:
        return store.read().pools
    except CacheUnavailable:
        return []
    except (CacheCorrupt, OSError) as e:
        logger.warning(f"Cannot resolve pool names: {e}")
        return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: settings passed to create_app win over the config file
    settings = app.state.settings or _load_settings_or_exit()
    configure_logging(settings.logging)

    if not settings.blockfrost.project_id:
        logger.warning("No Blockfrost project id configured; upstream calls will fail")

    store = CacheStore(settings.cache.directory)
    client = BlockfrostClient(settings.blockfrost)
    poller = LiveBlockPoller(
        fetch_latest=client.get_latest_block,
        pools_provider=lambda: _cached_pools(store),
        interval_seconds=settings.poller.interval_seconds,
        history_size=settings.poller.history_size,
    )

    live_update_manager.set_history_provider(lambda: poller.history)
    poller.add_listener(live_update_manager.broadcast_block)

    init_services(AppServices(
        settings=settings,
        cache_store=store,
        client=client,
        poller=poller,
    ))

    if settings.poller.enabled:
        await poller.start()
    else:
        logger.info("Block poller disabled by configuration")

    yield

    # Shutdown
    logger.info("Initiating graceful shutdown...")

    await poller.stop()
    await live_update_manager.stop()
    await client.close()
    reset_services()

    logger.info("Graceful shutdown complete")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API application.

    Args:
        settings: Pre-loaded settings. If None, the lifespan handler loads
            them from the config file at startup.
    """
    server = settings.server if settings else ServerSettings()

    app = FastAPI(
        title="Poolmap API",
        description="Cardano stake pool map and live block API",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(pools.router, prefix="/api", tags=["Pools"])
    app.include_router(blocks.router, prefix="/api", tags=["Blocks"])
    app.include_router(render.router, prefix="/api", tags=["Render"])
    app.include_router(ws_router.router, prefix="/api", tags=["WebSocket"])

    @app.get("/")
    async def root():
        """Root endpoint redirect to docs."""
        return {"message": "Poolmap API", "docs": "/docs"}

    return app


app = create_app()


def run() -> None:
    """Console entrypoint: serve the API with uvicorn."""
    import uvicorn

    settings = _load_settings_or_exit()
    uvicorn.run(create_app(settings), host=settings.server.host, port=settings.server.port)
