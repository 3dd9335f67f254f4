"""
lanehub - Workflow Context Assembly and Lane Progress Hub

FastAPI application entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from lanehub import __version__
from lanehub.app.api import context_router, events_router
from lanehub.app.dependencies import Services, build_services, get_settings
from lanehub.config.schemas import AppSettings

logger = logging.getLogger(__name__)


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Services are wired in create_app(); shutdown releases the store client.
    """
    logger.info("Starting lanehub...")
    yield

    logger.info("Shutting down lanehub...")
    try:
        await app.state.services.aclose()
        logger.info("lanehub services shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


def create_app(settings: AppSettings | None = None, services: Services | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings override (defaults to environment)
        services: Pre-wired services (tests inject a memory-backed store here)
    """
    settings = settings or (services.settings if services else get_settings())
    configure_logging(settings)

    app = FastAPI(
        title="lanehub",
        description="Assembles workflow context for the lane execution engine and streams lane progress",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.services = services or build_services(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(context_router)
    app.include_router(events_router)

    @app.get("/", tags=["root"])
    async def root() -> dict[str, str]:
        """Root endpoint with service info."""
        return {
            "service": settings.service_name,
            "version": __version__,
            "status": "running",
        }

    @app.get("/health", tags=["health"])
    async def health_check(request: Request) -> dict[str, Any]:
        """Liveness plus live subscription count."""
        current: Services = request.app.state.services
        return {
            "status": "healthy",
            "store": current.store.name,
            "streaming": current.settings.streaming_enabled,
            "subscriptions": len(current.registry),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lanehub.app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=get_settings().debug,
    )
