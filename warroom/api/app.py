"""FastAPI application factory.

Collaborators are built once here (or injected) and stored on app.state;
routes read them from the request instead of module globals.

    uvicorn warroom.api.app:create_app --factory
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from warroom import __version__
from warroom.api.routes import matchups_router
from warroom.config import Settings, configure_logging, load_settings
from warroom.consumers.cache import SnapshotCoordinator
from warroom.consumers.scheduler import RefreshScheduler
from warroom.services.factory import create_coordinator, current_week

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    coordinator: SnapshotCoordinator | None = None,
    scheduler: RefreshScheduler | None = None,
) -> FastAPI:
    """Build the app.

    Args:
        settings: Settings (defaults to load_settings())
        coordinator: Pre-built coordinator; when given, league discovery
            is left to the caller and the coordinator is not closed on exit
        scheduler: Pre-built scheduler (default: one over the coordinator
            when settings.scheduler.enabled)
    """
    if settings is None:
        settings = load_settings()
        configure_logging(settings.log_level)

    owns_coordinator = coordinator is None
    if coordinator is None:
        coordinator = create_coordinator(settings)
    if scheduler is None and settings.scheduler.enabled:
        scheduler = RefreshScheduler(coordinator)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if owns_coordinator:
            week = await asyncio.to_thread(current_week, settings)
            result = await asyncio.to_thread(coordinator.discover_leagues, settings.season, week)
            logger.info("[API] Tracking %d leagues for week %d", result["leagues"], week)
        if scheduler is not None:
            scheduler.start()
        yield
        if scheduler is not None:
            scheduler.stop()
        if owns_coordinator:
            coordinator.close()

    app = FastAPI(title="War Room", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.coordinator = coordinator
    app.state.scheduler = scheduler
    app.include_router(matchups_router)

    @app.get("/health")
    def health() -> dict:
        return {"ok": True, "version": __version__}

    return app
