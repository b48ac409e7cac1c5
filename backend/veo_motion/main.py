from __future__ import annotations
"""Veo Motion: FastAPI application entry point.

Mounts the API routes, configures CORS, serves generated media, and owns the
single generation workflow for the process.
"""

import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from veo_motion.api.router import api_router
from veo_motion.api.ws import router as ws_router
from veo_motion.config import get_settings
from veo_motion.services.credentials import CredentialGate, EnvironmentCredentialHost
from veo_motion.services.workflow import GenerationWorkflow

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_workflow() -> GenerationWorkflow:
    """Default workflow: key read live from the process environment."""
    return GenerationWorkflow(CredentialGate(EnvironmentCredentialHost()))


def create_app(workflow: GenerationWorkflow | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: build the workflow, cancel it on shutdown."""
        logger.info("%s starting up...", settings.APP_NAME)
        app.state.workflow = workflow or build_workflow()
        logger.info("Model: %s, API key configured: %s",
                    settings.VEO_MODEL, app.state.workflow.has_credential())

        yield

        if app.state.workflow.cancel():
            await app.state.workflow.wait()
        logger.info("%s shut down", settings.APP_NAME)

    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Turn still photos into seamless looping videos with Veo",
        version="0.1.0",
        lifespan=lifespan,
        redirect_slashes=False,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount API routes
    app.include_router(api_router)
    app.include_router(ws_router)

    # Mount media static files
    os.makedirs(settings.MEDIA_VOLUME, exist_ok=True)
    app.mount("/media", StaticFiles(directory=settings.MEDIA_VOLUME), name="media")

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {
            "service": settings.APP_NAME,
            "status": "running",
        }

    @app.get("/health")
    async def health():
        """Detailed health check."""
        return {
            "status": "healthy",
            "model": settings.VEO_MODEL,
            "credential_configured": app.state.workflow.has_credential(),
        }

    return app


app = create_app()


def serve() -> None:
    """Run the API with uvicorn on HOST:PORT."""
    logger.info("Serving %s on %s:%d", settings.APP_NAME, settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    serve()
