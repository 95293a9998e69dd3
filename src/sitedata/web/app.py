"""FastAPI application for the property enrichment service."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from sitedata.core.config import Settings
from sitedata.enrichment.orchestrator import Orchestrator, create_orchestrator
from sitedata.sources.solar_store import SolarStore
from sitedata.web.enrichment_router import router as enrichment_router


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    environment: str
    sources: dict[str, str]
    version: str = "0.1.0"


# --- Application factory ---


def create_app(
    settings: Settings | None = None,
    orchestrator: Orchestrator | None = None,
    solar_store: SolarStore | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with their own orchestrator and stores.

    Args:
        settings: Application settings. Defaults to Settings().
        orchestrator: Optional pre-built Orchestrator.
        solar_store: Optional SolarStore shared with the solar provider.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()
    if solar_store is None:
        solar_store = SolarStore(settings.solar.freshness_seconds)
    if orchestrator is None:
        orchestrator = create_orchestrator(settings, solar_store=solar_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await orchestrator.close()

    app = FastAPI(
        title="sitedata",
        description="Property data enrichment for solar permit projects",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS for development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.orchestrator = orchestrator
    app.state.solar_store = solar_store

    app.include_router(enrichment_router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            service="sitedata",
            environment=settings.environment,
            sources={
                name: str(status)
                for name, status in orchestrator.registry.health_check_all().items()
            },
        )

    return app
