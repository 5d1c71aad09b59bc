"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from facematch.api.routes import router
from facematch.config import get_settings
from facematch.matching.gallery import InvalidInputError
from facematch.matching.pool import MatchPool

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()
    app.state.settings = settings

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting FaceMatch (threshold=%s, max_concurrent=%s, parallel_probes=%s, auth=%s)",
        settings.match_threshold,
        settings.max_concurrent,
        settings.parallel_probes,
        settings.api_key is not None,
    )

    match_pool = MatchPool(settings)
    app.state.match_pool = match_pool

    logger.info("FaceMatch ready")
    yield

    logger.info("Shutting down FaceMatch")
    match_pool.shutdown()
    logger.info("FaceMatch shutdown complete")


async def invalid_input_handler(request: Request, exc: Exception) -> JSONResponse:
    """Descriptor dimension mismatch: the request is rejected, never reported as no match."""
    logger.warning("Rejected %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def pool_timeout_handler(request: Request, exc: Exception) -> JSONResponse:
    """No match slot freed up within FACEMATCH_QUEUE_TIMEOUT."""
    match_pool: MatchPool = request.app.state.match_pool
    logger.warning("Match pool saturated on %s (queue_depth=%s)", request.url.path, match_pool.queue_depth)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Matcher busy, retry later"},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="FaceMatch",
        description="Exact nearest-neighbor matching of face descriptors against an enrolled gallery",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(InvalidInputError, invalid_input_handler)
    application.add_exception_handler(TimeoutError, pool_timeout_handler)
    application.include_router(router)
    return application


app = create_app()


def run() -> None:
    """Serve the application with uvicorn using FACEMATCH_HOST / FACEMATCH_PORT."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
