from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.cache import build_cache_from_env
from app.crs.catalog import CRSCatalogService
from app.crs.projection import ExternalProjectionClient, build_projection_client_from_env
from app.crs.search import RemoteCRSSearch, build_search_client_from_env
from app.crs_api import router as crs_router
from app.location import router as location_router
from app.logging_setup import configure_logging, logging_middleware
from app.resolver import SourceResolutionOrchestrator
from extract.providers import SourceProvider, build_source_provider_from_env

_FROM_ENV = object()


def create_app(
    provider: SourceProvider | None = None,
    projection: ExternalProjectionClient | None | object = _FROM_ENV,
    search: RemoteCRSSearch | None | object = _FROM_ENV,
) -> FastAPI:
    """Application factory. Collaborators default to their env-configured builds."""
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cache = await build_cache_from_env()
        app.state.cache = cache
        app.state.catalog.json_cache = cache
        try:
            yield
        finally:
            await cache.close()

    app = FastAPI(title="Point cloud location service", lifespan=lifespan)
    app.middleware("http")(logging_middleware)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.include_router(location_router)
    app.include_router(crs_router)

    if projection is _FROM_ENV:
        projection = build_projection_client_from_env()
    if search is _FROM_ENV:
        search = build_search_client_from_env()

    app.state.resolver = SourceResolutionOrchestrator(
        provider or build_source_provider_from_env(),
        projection=projection,
    )
    app.state.catalog = CRSCatalogService(remote=search)
    app.state.cache = None
    return app


app = create_app()
