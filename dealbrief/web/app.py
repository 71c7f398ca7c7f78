"""FastAPI application exposing the research pipeline."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from dealbrief.web.deps import get_config
from dealbrief.web.routers.research import router as research_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: fail fast when credentials are missing."""
    logger.info("Starting DealBrief API...")
    get_config()
    yield
    logger.info("DealBrief API shut down.")


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="DealBrief",
        description="Open-source due-diligence research on a company and its owners",
        lifespan=lifespan if use_lifespan else None,
    )
    app.include_router(research_router, prefix="/api")
    return app


app = create_app()


def serve() -> None:
    import uvicorn

    config = get_config()
    uvicorn.run(app, host=config.web_host, port=config.web_port)
